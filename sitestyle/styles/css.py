#!/usr/bin/env python3
"""CSS text <-> rule map conversion on top of tinycss2.

Parsing turns CSS text into the selector -> declarations maps the store
keeps; ``@import`` at-rules become ``at<N>`` pseudo-rules. crunch_css goes the
other way for the injection layer.

Example:
    >>> parser = CSSParser()
    >>> sheet = parser.parse("a { color: red } p, li { margin: 0 }")
    >>> get_rules_from_parser_object(sheet)
    {'a': {'color': 'red'}, 'p, li': {'margin': '0'}}
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional

import tinycss2

from sitestyle.core.constants import ErrorCode, ImportField, Rules
from sitestyle.core.validators import is_import_selector
from sitestyle.styles.models import is_import_rule, make_import_rule, next_import_selector


class CSSParseError(Exception):
    """CSS text could not be parsed."""

    def __init__(self, message: str, line: int = 0, column: int = 0):
        super().__init__(message)
        self.line = line
        self.column = column
        self.error_code = ErrorCode.PARSE_ERROR


@dataclass
class ParsedStylesheet:
    """Top-level nodes of a parsed stylesheet."""

    css_text: str
    nodes: List[Any] = field(default_factory=list)


def _raise_if_error(node: Any) -> None:
    if node.type == "error":
        raise CSSParseError(
            f"CSS parse error at {node.source_line}:{node.source_column}: {node.message}",
            node.source_line,
            node.source_column,
        )


class CSSParser:
    """Parses CSS text into tinycss2 nodes, failing on any parse error."""

    def parse(self, css_text: str) -> ParsedStylesheet:
        """Parse a stylesheet.

        Args:
            css_text: CSS source

        Returns:
            Parsed stylesheet

        Raises:
            CSSParseError: On the first parse error
        """
        nodes = tinycss2.parse_stylesheet(css_text, skip_comments=True, skip_whitespace=True)
        for node in nodes:
            _raise_if_error(node)
        return ParsedStylesheet(css_text=css_text, nodes=nodes)


def _parse_declarations(content: List[Any]) -> Dict[str, str]:
    declarations: Dict[str, str] = {}
    for node in tinycss2.parse_declaration_list(content, skip_comments=True, skip_whitespace=True):
        _raise_if_error(node)
        if node.type != "declaration":
            continue
        value = tinycss2.serialize(node.value).strip()
        if node.important:
            value = f"{value} !important"
        declarations[node.lower_name] = value
    return declarations


def _import_url(prelude: List[Any]) -> Optional[str]:
    for token in prelude:
        if token.type in ("url", "string"):
            return token.value
        if token.type == "function" and token.lower_name == "url":
            for arg in token.arguments:
                if arg.type == "string":
                    return arg.value
    return None


def get_rule_from_parser_object(sheet: ParsedStylesheet) -> Dict[str, str]:
    """Declarations of the first qualified rule in sheet."""
    for node in sheet.nodes:
        if node.type == "qualified-rule":
            return _parse_declarations(node.content)
    return {}


def get_rules_from_parser_object(sheet: ParsedStylesheet) -> Rules:
    """Selector -> declarations map for every rule in sheet.

    Declarations for a selector repeated in the sheet are merged, later ones
    winning. Selectors without declarations are dropped.
    """
    rules: Rules = {}
    for node in sheet.nodes:
        if node.type == "qualified-rule":
            selector = " ".join(tinycss2.serialize(node.prelude).split())
            declarations = _parse_declarations(node.content)
            if selector and declarations:
                rules.setdefault(selector, {}).update(declarations)
        elif node.type == "at-rule" and node.lower_at_keyword == "import":
            url = _import_url(node.prelude)
            if url:
                rules[next_import_selector(rules)] = make_import_rule(url)
    return rules


def parse_declarations(selector: str, css_text: str, parser: Optional[CSSParser] = None) -> Dict[str, str]:
    """Parse a declaration block (``color: red; margin: 0``) for selector."""
    parser = parser or CSSParser()
    return get_rule_from_parser_object(parser.parse(f"{selector} {{{css_text}}}"))


def parse_css(css_text: str, parser: Optional[CSSParser] = None) -> Rules:
    """Parse a whole stylesheet into a rules map."""
    parser = parser or CSSParser()
    return get_rules_from_parser_object(parser.parse(css_text))


def crunch_css_for_declaration(prop: str, value: str, set_important: bool = False) -> str:
    value = str(value).strip()
    if set_important and not value.endswith("!important"):
        value = f"{value} !important"
    return f"{prop}: {value};"


def crunch_css(
    rules: Optional[Mapping[str, Any]],
    set_important: bool = False,
    expand_imports: bool = True,
) -> str:
    """Serialize a rules map to CSS text.

    Args:
        rules: Selector -> declarations map (None yields "")
        set_important: Append !important to every declaration
        expand_imports: Emit fetched CSS for @import rules when available

    Returns:
        CSS text, @import rules first
    """
    if not rules:
        return ""

    imports: List[str] = []
    blocks: List[str] = []
    for selector, rule in rules.items():
        if is_import_rule(rule) or is_import_selector(selector):
            text = rule.get(ImportField.EXPANDED_TEXT) if expand_imports else None
            imports.append(text or rule.get(ImportField.TEXT, ""))
            continue

        declarations = [
            "  " + crunch_css_for_declaration(prop, value, set_important)
            for prop, value in rule.items()
            if "comment" not in prop
        ]
        if declarations:
            blocks.append(selector + " {\n" + "\n".join(declarations) + "\n}")

    return "\n".join(filter(None, imports + blocks))
