"""Identity -> document side table kept coherent with the index."""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping
from typing import Any

from searchmirror.index.identity import Identity


class MirrorStore:
    """Mapping from identity to the last added document payload.

    Owned by exactly one SyncEngine, which is the only writer. Performs no
    validation of its own; deletes of unknown identities are no-ops.
    """

    __slots__ = ("_documents",)

    def __init__(self) -> None:
        self._documents: dict[Identity, Any] = {}

    def set(self, identity: Identity, document: Any) -> None:
        self._documents[identity] = document

    def get(self, identity: Identity, default: Any = None) -> Any:
        return self._documents.get(identity, default)

    def merge(self, batch: Mapping[Identity, Any]) -> None:
        self._documents.update(batch)

    def delete_one(self, identity: Identity) -> None:
        self._documents.pop(identity, None)

    def delete_many(self, identities: Iterable[Identity]) -> None:
        for identity in identities:
            self._documents.pop(identity, None)

    def clear(self) -> None:
        self._documents.clear()

    def identities(self) -> set[Identity]:
        return set(self._documents)

    def __contains__(self, identity: object) -> bool:
        return identity in self._documents

    def __len__(self) -> int:
        return len(self._documents)

    def __iter__(self) -> Iterator[Identity]:
        return iter(self._documents)
