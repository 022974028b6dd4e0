"""Observable projection of sync engine state for UI consumers."""

from __future__ import annotations

import dataclasses
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

import structlog

from searchmirror.index.models import SearchHit, Suggestion

logger = structlog.get_logger()


@dataclass(frozen=True)
class SearchSnapshot:
    """Immutable view of the current query state.

    ``results`` and ``raw_results`` are None until a search runs and after
    ``clear_results``; ``suggestions`` likewise for auto-suggest.
    """

    results: list[Any] | None = None
    raw_results: list[SearchHit] | None = None
    suggestions: list[Suggestion] | None = None
    is_indexing: bool = False


Listener = Callable[[SearchSnapshot], None]


class SearchProjection:
    """Holds the latest SearchSnapshot and notifies subscribers on change.

    A pure consumer of engine state: it never touches the mirror or the
    index. Listeners run synchronously, in subscription order, and their
    exceptions propagate to the engine operation that published.
    """

    def __init__(self) -> None:
        self._snapshot = SearchSnapshot()
        self._listeners: list[Listener] = []

    @property
    def snapshot(self) -> SearchSnapshot:
        return self._snapshot

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a listener. Returns a function that unsubscribes it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def publish(self, **changes: Any) -> SearchSnapshot:
        """Replace snapshot fields and notify listeners if anything changed."""
        if all(getattr(self._snapshot, name) is value for name, value in changes.items()):
            return self._snapshot

        snapshot = dataclasses.replace(self._snapshot, **changes)
        self._snapshot = snapshot
        logger.debug("projection_published", changed=sorted(changes), listeners=len(self._listeners))
        for listener in list(self._listeners):
            listener(snapshot)
        return snapshot
