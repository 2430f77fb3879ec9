"""Shared pytest fixtures for SiteStyle tests."""
import tempfile
import threading
from pathlib import Path
from typing import Callable, Dict, Generator, List
from unittest.mock import MagicMock

import pytest

from sitestyle.infrastructure.logger import Logger
from sitestyle.storage.backends import MemoryStorage
from sitestyle.styles.imports import ImportExpander, ImportFetchError
from sitestyle.styles.resolver import RuleResolver
from sitestyle.styles.store import StyleStore


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for tests."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def mock_logger() -> MagicMock:
    """Logger double that records calls."""
    return MagicMock(spec=Logger)


@pytest.fixture
def storage() -> MemoryStorage:
    """Empty in-memory backend."""
    return MemoryStorage()


@pytest.fixture
def store(storage: MemoryStorage, mock_logger: MagicMock) -> StyleStore:
    """Empty style store over the in-memory backend."""
    return StyleStore(storage, logger=mock_logger)


@pytest.fixture
def sample_styles() -> Dict[str, Dict]:
    """Serialized styles snapshot covering global, social and page entries."""
    return {
        "*": {
            "_rules": {"body": {"font-family": "Georgia"}},
            "_enabled": True,
        },
        "example.com": {
            "_rules": {"p": {"color": "red"}, "h1": {"font-size": "2em"}},
            "_enabled": True,
        },
        "www.example.com": {
            "_rules": {"p": {"color": "blue", "margin": "1px"}},
            "_enabled": True,
            "_social": {"id": 7, "timestamp": 1700000000},
        },
        "stylebot.me": {
            "_rules": {"#header": {"display": "none"}},
            "_enabled": True,
            "_social": {"id": 1, "timestamp": 1600000000},
        },
    }


class FakeFetcher:
    """Controllable @import fetcher.

    Responses are returned from a URL -> text map; URLs listed in ``fail``
    raise ImportFetchError. When ``gate`` is cleared, fetches block until it
    is set again.
    """

    def __init__(self, responses: Dict[str, str] = None, fail: List[str] = None):
        self.responses = dict(responses or {})
        self.fail = set(fail or [])
        self.calls: List[str] = []
        self.gate = threading.Event()
        self.gate.set()
        self._lock = threading.Lock()

    def __call__(self, url: str) -> str:
        with self._lock:
            self.calls.append(url)
        self.gate.wait(5)
        if url in self.fail:
            raise ImportFetchError(f"Failed to fetch {url}", url)
        return self.responses.get(url, f"/* {url} */")


@pytest.fixture
def fetcher() -> FakeFetcher:
    """Fake fetcher that answers every URL."""
    return FakeFetcher()


@pytest.fixture
def expander(fetcher: FakeFetcher, mock_logger: MagicMock) -> Generator[ImportExpander, None, None]:
    """ImportExpander over the fake fetcher."""
    exp = ImportExpander(fetcher=fetcher, max_workers=2, logger=mock_logger)
    yield exp
    fetcher.gate.set()
    exp.shutdown(wait=True)


@pytest.fixture
def resolver(store: StyleStore, expander: ImportExpander, mock_logger: MagicMock) -> RuleResolver:
    """Resolver over the store and fake-fetching expander."""
    return RuleResolver(store, expander=expander, logger=mock_logger)


@pytest.fixture
def make_store(storage: MemoryStorage, mock_logger: MagicMock) -> Callable[..., StyleStore]:
    """Factory building a store from a serialized snapshot."""

    def _make(snapshot: Dict[str, Dict]) -> StyleStore:
        return StyleStore(storage, snapshot=snapshot, logger=mock_logger)

    return _make
