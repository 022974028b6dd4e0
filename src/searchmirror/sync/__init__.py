"""Sync module exports."""

from searchmirror.sync.engine import SyncEngine
from searchmirror.sync.projection import Listener, SearchProjection, SearchSnapshot

__all__ = [
    "Listener",
    "SearchProjection",
    "SearchSnapshot",
    "SyncEngine",
]
