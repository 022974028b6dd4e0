"""Root conftest.py for test configuration.

Ensures local src/ directory takes priority over any installed packages and
provides shared document fixtures.
"""

import sys
from pathlib import Path
from typing import Any

import pytest

# Insert local src directory at the beginning of sys.path
# This ensures that the local searchmirror package is used, not any installed one
_src_dir = Path(__file__).parent.parent / "src"
if str(_src_dir) not in sys.path:
    sys.path.insert(0, str(_src_dir))

from searchmirror.config.models import IndexConfig  # noqa: E402
from searchmirror.sync.engine import SyncEngine  # noqa: E402


@pytest.fixture
def animal_docs() -> list[dict[str, Any]]:
    return [
        {"id": 1, "text": "red fox"},
        {"id": 2, "text": "blue dog"},
    ]


@pytest.fixture
def book_docs() -> list[dict[str, Any]]:
    return [
        {"id": "b1", "title": "Moby Dick", "text": "call me ishmael", "year": 1851},
        {"id": "b2", "title": "Zen and the Art of Motorcycle Maintenance", "text": "quality", "year": 1974},
        {"id": "b3", "title": "Neuromancer", "text": "the sky above the port", "year": 1984},
        {"id": "b4", "title": "Zen in the Art of Archery", "text": "the art of archery", "year": 1948},
    ]


@pytest.fixture
def book_config() -> IndexConfig:
    return IndexConfig(fields=["title", "text"], store_fields=["year"])


@pytest.fixture
def engine() -> SyncEngine:
    return SyncEngine()


@pytest.fixture
def book_engine(book_docs: list[dict[str, Any]], book_config: IndexConfig) -> SyncEngine:
    return SyncEngine(book_docs, book_config)
