"""Pydantic configuration models with env var support.

Configuration Hierarchy (highest to lowest precedence):
1. Direct kwargs to load_config()
2. Environment variables (SEARCHMIRROR__SECTION__KEY)
3. YAML config file passed to load_config()
4. Built-in defaults (this file)

Environment Variable Format:
    SEARCHMIRROR__<SECTION>__<KEY>=<VALUE>

Examples:
    SEARCHMIRROR__LOGGING__LEVEL=DEBUG
    SEARCHMIRROR__INDEX__ID_FIELD=slug
    SEARCHMIRROR__INDEX__CHUNK_SIZE=100
"""

from pathlib import Path
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from searchmirror.config.constants import (
    DEFAULT_CHUNK_SIZE,
    DEFAULT_ID_FIELD,
    FUZZY_MAX_DISTANCE,
    SEARCH_MAX_LIMIT,
    WRITER_HEAP_MIN,
)

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


class LogOutputConfig(BaseModel):
    """Single logging output configuration."""

    format: Literal["json", "console"] = "console"
    destination: str = "stderr"  # stderr, stdout, or absolute file path
    level: LogLevel | None = None  # Inherits from parent if None

    @field_validator("destination")
    @classmethod
    def validate_destination(cls, v: str) -> str:
        if v in ("stderr", "stdout"):
            return v
        path = Path(v).expanduser()
        if not path.is_absolute():
            raise ValueError(f"File destination must be absolute path: {v}")
        return str(path)


class LoggingConfig(BaseModel):
    """Logging configuration.

    Env vars:
        SEARCHMIRROR__LOGGING__LEVEL: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    """

    level: LogLevel = Field(
        default="INFO",
        description="Root log level. DEBUG logs every index mutation.",
    )
    outputs: list[LogOutputConfig] = Field(default_factory=lambda: [LogOutputConfig()])


class SearchOptions(BaseModel):
    """Query options. Used as config defaults and as per-call overrides."""

    # Reject misspelt per-call option keys
    model_config = ConfigDict(extra="forbid")

    fields: list[str] | None = Field(
        default=None,
        description="Fields to search. None searches every indexed field.",
    )
    prefix: bool = Field(
        default=False,
        description="Match document terms that start with a query term.",
    )
    fuzzy: int = Field(
        default=0,
        ge=0,
        le=FUZZY_MAX_DISTANCE,
        description="Maximum edit distance for fuzzy term matching (0 disables).",
    )
    combine_with: Literal["OR", "AND"] = Field(
        default="OR",
        description="Whether any (OR) or every (AND) query term must match.",
    )
    limit: int = Field(
        default=100,
        ge=1,
        le=SEARCH_MAX_LIMIT,
        description="Maximum hits per query.",
    )


class IndexConfig(BaseModel):
    """Index configuration.

    Env vars:
        SEARCHMIRROR__INDEX__ID_FIELD: Identity field name
        SEARCHMIRROR__INDEX__CHUNK_SIZE: Default chunk size for async bulk adds
    """

    id_field: str = Field(
        default=DEFAULT_ID_FIELD,
        description="Document field holding the identity. Dotted paths reach nested fields.",
    )
    fields: list[str] = Field(
        default_factory=lambda: ["text"],
        description="Document fields to tokenize and index for full-text search.",
    )
    store_fields: list[str] = Field(
        default_factory=list,
        description="Document fields copied onto raw search hits.",
    )
    chunk_size: int = Field(
        default=DEFAULT_CHUNK_SIZE,
        ge=1,
        description="Documents per chunk for asynchronous bulk adds.",
    )
    writer_heap_size: int = Field(
        default=50_000_000,
        ge=WRITER_HEAP_MIN,
        description="Tantivy writer memory budget in bytes.",
    )
    search: SearchOptions = Field(default_factory=SearchOptions)

    @model_validator(mode="after")
    def validate_fields(self) -> "IndexConfig":
        if not self.fields:
            raise ValueError("At least one field must be indexed")
        if len(set(self.fields)) != len(self.fields):
            raise ValueError(f"Indexed fields must be unique: {self.fields}")
        if self.search.fields is not None:
            unknown = sorted(set(self.search.fields) - set(self.fields))
            if unknown:
                raise ValueError(f"Search fields are not indexed: {unknown}")
        return self


class SearchMirrorConfig(BaseModel):
    """Root configuration model."""

    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    index: IndexConfig = Field(default_factory=IndexConfig)
