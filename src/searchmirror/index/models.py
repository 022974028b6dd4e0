"""Result types returned by the index service."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from searchmirror.index.identity import Identity


@dataclass
class SearchHit:
    """A single raw search hit, identified by document identity."""

    id: Identity
    score: float
    terms: list[str] = field(default_factory=list)
    match: dict[str, list[str]] = field(default_factory=dict)
    stored: dict[str, Any] = field(default_factory=dict)


@dataclass
class Suggestion:
    """A query completion built from the terms matched by a group of hits."""

    suggestion: str
    terms: list[str]
    score: float
    count: int = 1
