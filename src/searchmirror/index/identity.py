"""Document identity extraction.

The identity strategy is a pair of hooks (field name + field extractor)
resolved once when an ``IdentityExtractor`` is built. The same extractor is
shared by the sync engine and the index so both key documents identically.
"""

from __future__ import annotations

from collections.abc import Callable, Hashable, Mapping
from typing import Any

from searchmirror.config.constants import DEFAULT_ID_FIELD, FIELD_PATH_SEPARATOR

Identity = Hashable
FieldExtractor = Callable[[Any, str], Any]


def default_extract_field(document: Any, field_name: str) -> Any:
    """Read a field from a mapping or an object, following dotted paths.

    Returns None as soon as a path step is missing.
    """
    value = document
    for key in field_name.split(FIELD_PATH_SEPARATOR):
        if value is None:
            return None
        if isinstance(value, Mapping):
            value = value.get(key)
        else:
            value = getattr(value, key, None)
    return value


class IdentityExtractor:
    """Maps a document to its identity value.

    No validation happens here: a missing field yields whatever the field
    extractor returns (None with the default one).
    """

    __slots__ = ("id_field", "extract_field")

    def __init__(
        self,
        id_field: str = DEFAULT_ID_FIELD,
        extract_field: FieldExtractor | None = None,
    ) -> None:
        self.id_field = id_field
        self.extract_field = extract_field or default_extract_field

    def __call__(self, document: Any) -> Identity:
        return self.extract_field(document, self.id_field)

    def gather(self, documents: list[Any]) -> dict[Identity, Any]:
        """Build an identity -> document batch. Later duplicates win."""
        return {self(doc): doc for doc in documents}

    def __repr__(self) -> str:
        return f"IdentityExtractor(id_field={self.id_field!r})"
