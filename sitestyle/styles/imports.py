#!/usr/bin/env python3
"""Expansion of @import pseudo-rules.

An @import pseudo-rule (``{"text", "type": "@import", "url"}``) is expanded by
attaching the CSS fetched from its URL as ``expanded_text``. Fetched text is
kept in an LRU cache keyed by URL.

Expansion never blocks: when the URL is not cached yet, ``expanded_text`` is
set to None, a fetch is started on a worker thread and the rule is returned
unexpanded. When the fetch succeeds the text is cached and the None is
replaced on the very same rule object, after the resolution that asked for it
has returned. The next resolution picks the text up from the cache.

The worker only ever replaces the value of a key that is already present, so
the caller may iterate or copy returned rules while fetches complete. Readers
must treat a None ``expanded_text`` as not expanded yet.

Each fetch is tracked by an ImportFetch, which reports success or failure and
can be cancelled. A failed fetch is not cached, so a later expansion retries.
After shutdown() new fetches are cancelled at once and rules stay unexpanded.

Example:
    >>> expander = ImportExpander()
    >>> rule = make_import_rule("https://fonts.example/css?family=Lato")
    >>> expander.expand(rule)          # starts the fetch
    >>> expander.fetch(rule["url"]).wait(5)
    >>> rule["expanded_text"]
    '@font-face { ... }'
"""

import threading
from concurrent.futures import Future, ThreadPoolExecutor
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

import httpx

from sitestyle.core.constants import ErrorCode, ImportField, Limits
from sitestyle.core.validators import is_import_selector
from sitestyle.infrastructure.cache_manager import LRUCache
from sitestyle.infrastructure.logger import Logger, get_logger
from sitestyle.styles.models import is_import_rule

Fetcher = Callable[[str], str]


class ImportFetchError(Exception):
    """CSS for an @import rule could not be fetched."""

    def __init__(self, message: str, url: str, error_code: ErrorCode = ErrorCode.NETWORK_ERROR):
        super().__init__(message)
        self.url = url
        self.error_code = error_code


class FetchStatus(Enum):
    """State of an @import fetch."""

    PENDING = "pending"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    CANCELLED = "cancelled"


class ImportFetch:
    """Asynchronous result of fetching the CSS behind one @import URL."""

    def __init__(self, url: str, future: Optional[Future] = None):
        self.url = url
        self._future = future
        self._cancelled = threading.Event()
        self._done = threading.Event()
        self._status = FetchStatus.PENDING
        self._text: Optional[str] = None
        self._error: Optional[ImportFetchError] = None
        self._rules: List[Dict[str, Any]] = []

    @classmethod
    def completed(cls, url: str, text: str) -> "ImportFetch":
        """A fetch already satisfied from the cache."""
        fetch = cls(url)
        fetch._finish(FetchStatus.SUCCEEDED, text=text)
        return fetch

    @property
    def status(self) -> FetchStatus:
        return self._status

    @property
    def text(self) -> Optional[str]:
        return self._text

    @property
    def error(self) -> Optional[ImportFetchError]:
        return self._error

    @property
    def done(self) -> bool:
        return self._done.is_set()

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    def cancel(self) -> bool:
        """Cancel the fetch; its rules will not be expanded.

        Returns:
            False if the fetch had already completed
        """
        if self.done:
            return False
        self._cancelled.set()
        if self._future is not None:
            self._future.cancel()
        self._finish(FetchStatus.CANCELLED)
        return True

    def wait(self, timeout: Optional[float] = None) -> FetchStatus:
        """Block until the fetch completes (or timeout) and return its status."""
        self._done.wait(timeout)
        return self._status

    def _finish(
        self,
        status: FetchStatus,
        text: Optional[str] = None,
        error: Optional[ImportFetchError] = None,
    ) -> bool:
        if self._done.is_set():
            return False
        self._status = status
        self._text = text
        self._error = error
        self._done.set()
        return True

    def __repr__(self) -> str:
        return f"ImportFetch(url={self.url!r}, status={self._status.value})"


def http_fetcher(timeout: float = Limits.IMPORT_TIMEOUT_SECONDS) -> Fetcher:
    """Build a fetcher that GETs CSS over HTTP with httpx.

    Args:
        timeout: Request timeout in seconds

    Returns:
        Callable mapping a URL to its response text
    """

    def fetch(url: str) -> str:
        try:
            response = httpx.get(url, timeout=timeout, follow_redirects=True)
            response.raise_for_status()
        except httpx.TimeoutException as e:
            raise ImportFetchError(f"Timed out fetching {url}", url, ErrorCode.TIMEOUT) from e
        except httpx.HTTPError as e:
            raise ImportFetchError(f"Failed to fetch {url}: {e}", url) from e
        return response.text

    return fetch


class ImportExpander:
    """Expands @import pseudo-rules using cached or asynchronously fetched CSS."""

    def __init__(
        self,
        fetcher: Optional[Fetcher] = None,
        cache: Optional[LRUCache] = None,
        max_workers: int = Limits.IMPORT_MAX_WORKERS,
        logger: Optional[Logger] = None,
    ):
        """Initialize the expander.

        Args:
            fetcher: Callable returning the CSS text for a URL (httpx by default)
            cache: URL -> CSS text cache
            max_workers: Fetch worker threads
            logger: Logger instance
        """
        self.fetcher = fetcher or http_fetcher()
        self.cache = cache if cache is not None else LRUCache()
        self.logger = logger or get_logger()
        self._executor = ThreadPoolExecutor(max_workers=max_workers,
                                            thread_name_prefix="sitestyle-import")
        self._lock = threading.RLock()
        self._in_flight: Dict[str, ImportFetch] = {}
        self._last: Dict[str, ImportFetch] = {}
        self._closed = False

    def expand(self, rule: Any) -> Any:
        """Expand an @import rule in place.

        Args:
            rule: Any rule value

        Returns:
            The same rule object; non-import rules are returned unchanged
        """
        if not is_import_rule(rule):
            return rule

        url = rule[ImportField.URL]
        with self._lock:
            text = self.cache.get(url)
            if text is not None:
                rule[ImportField.EXPANDED_TEXT] = text
            else:
                rule.setdefault(ImportField.EXPANDED_TEXT, None)
                self._start_fetch(url, rule)
        return rule

    def expand_selector(self, selector: str, rule: Any) -> Any:
        """Expand rule only when selector names an @import pseudo-rule."""
        if is_import_selector(selector):
            return self.expand(rule)
        return rule

    def expand_rules(self, rules: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
        """Expand every @import pseudo-rule in a rules map, in place."""
        if not rules:
            return rules
        for selector, rule in rules.items():
            rules[selector] = self.expand_selector(selector, rule)
        return rules

    def fetch(self, url: str) -> ImportFetch:
        """Get the fetch for url, starting one if nothing is cached or in flight.

        Returns:
            The in-flight fetch, a completed fetch for cached text, or a new fetch
        """
        with self._lock:
            text = self.cache.get(url)
            if text is not None:
                return ImportFetch.completed(url, text)
            return self._start_fetch(url, None)

    def last_fetch(self, url: str) -> Optional[ImportFetch]:
        """Most recent fetch for url (in flight or finished), if any."""
        with self._lock:
            return self._in_flight.get(url) or self._last.get(url)

    def cached(self, url: str) -> Optional[str]:
        """CSS text cached for url."""
        return self.cache.get(url)

    def pending(self) -> List[ImportFetch]:
        """Fetches still in flight."""
        with self._lock:
            return list(self._in_flight.values())

    def wait_all(self, timeout: Optional[float] = None) -> bool:
        """Wait for every in-flight fetch.

        Returns:
            True if nothing is left in flight
        """
        for fetch in self.pending():
            fetch.wait(timeout)
        return not self.pending()

    @property
    def closed(self) -> bool:
        return self._closed

    def shutdown(self, wait: bool = True) -> None:
        """Stop the worker threads, cancelling pending fetches unless wait.

        Later expansions leave their rules unexpanded.
        """
        with self._lock:
            self._closed = True
        if not wait:
            for fetch in self.pending():
                fetch.cancel()
        self._executor.shutdown(wait=wait, cancel_futures=not wait)
        self.logger.debug("@import expander stopped", **self.cache.get_stats())

    def _start_fetch(self, url: str, rule: Optional[Dict[str, Any]]) -> ImportFetch:
        with self._lock:
            fetch = self._in_flight.get(url)
            if fetch is not None and not fetch.done:
                if rule is not None:
                    fetch._rules.append(rule)
                return fetch

            fetch = ImportFetch(url)
            if self._closed:
                self.logger.debug("Expander shut down, @import not fetched", url=url)
                fetch._finish(FetchStatus.CANCELLED)
                self._last[url] = fetch
                return fetch

            if rule is not None:
                fetch._rules.append(rule)
            self._in_flight[url] = fetch

        self.logger.debug("Fetching @import CSS", url=url)
        future = self._executor.submit(self.fetcher, url)
        fetch._future = future
        future.add_done_callback(lambda f, fetch=fetch: self._on_fetched(fetch, f))
        return fetch

    def _on_fetched(self, fetch: ImportFetch, future: Future) -> None:
        url = fetch.url
        # Cache, rules and status change together with respect to expand()/fetch()
        with self._lock:
            if self._in_flight.get(url) is fetch:
                del self._in_flight[url]
            self._last[url] = fetch
            rules, fetch._rules = fetch._rules, []

            if fetch.cancelled or future.cancelled():
                self.logger.debug("@import fetch cancelled", url=url)
                fetch._finish(FetchStatus.CANCELLED)
                return

            error = future.exception()
            if error is not None:
                if not isinstance(error, ImportFetchError):
                    error = ImportFetchError(f"Failed to fetch {url}: {error}", url)
                self.logger.warning("@import fetch failed", url=url, error=str(error))
                fetch._finish(FetchStatus.FAILED, error=error)
                return

            text = future.result()
            self.cache.set(url, text)
            for rule in rules:
                rule[ImportField.EXPANDED_TEXT] = text
            self.logger.debug("@import fetched", url=url, rules=len(rules))
            fetch._finish(FetchStatus.SUCCEEDED, text=text)
