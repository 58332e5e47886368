"""Pydantic models for the synchronization engine.

Defines the core data contracts used across all sync modules:

- ``DocumentState``: Enum of the five states a tracked document can be in.
- ``DocumentMetadata``: One tracked document, persisted in the config file.
- ``SyncResult``: Outcome of syncing one document.
- ``SyncReport``: Aggregate results for a full sync run.

``DocumentMetadata`` is mutable: the orchestrator and the remote adapters
update it in place as documents are created, updated and deleted.  Its
equality is deliberately narrow (source path and title only) so that
"is this file already tracked" does not depend on sync state.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    field_serializer,
    field_validator,
)
from pydantic.alias_generators import to_camel

TIMESTAMP_FORMAT = "%Y-%m-%dT%H:%M:%S.%f%z"

# Extra property owned by the user: any value marks a document for deletion.
DELETE_MARKER = "delete"


def parse_timestamp(value: str) -> datetime:
    """Parse a persisted timestamp (``2018-08-22T02:27:48.644+0000``).

    Falls back to ISO 8601 for timestamps written by other tools.
    """
    try:
        return datetime.strptime(value, TIMESTAMP_FORMAT)
    except ValueError:
        return datetime.fromisoformat(value)


def format_timestamp(value: datetime) -> str:
    """Format a timestamp with millisecond precision and a numeric offset.

    Naive datetimes are assumed to be UTC.
    """
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    millis = value.microsecond // 1000
    return (
        value.strftime("%Y-%m-%dT%H:%M:%S")
        + f".{millis:03d}"
        + value.strftime("%z")
    )


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class DocumentState(str, Enum):
    """Remote operation required for a tracked document."""

    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"
    DELETED = "deleted"
    CURRENT = "current"


class DocumentMetadata(BaseModel):
    """A tracked document.

    Attributes:
        source_path: Source file path, relative to the config file directory.
        title: Display name on the remote.
        remote_uri: Human-facing locator on the remote; ``None`` means the
            document has never been created.
        tags: Document-specific tags (merged with configured defaults).
        source_checksum: CRC-32 of the source file at the last sync.
        converted_checksum: CRC-32 of the converted artifact at the last
            conversion.
        created_on: Remote creation timestamp.
        last_updated: Remote last-modified timestamp.
        deleted_on: Set once the document has been removed from the remote.
        extra_props: Adapter-specific bookkeeping (content id, parent place,
            tracking tag) and the user-owned ``delete`` marker.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
    )

    source_path: str
    title: str
    remote_uri: str | None = Field(
        default=None,
        validation_alias=AliasChoices("remoteURI", "remoteUri", "remote_uri"),
        serialization_alias="remoteURI",
    )
    tags: list[str] | None = None
    source_checksum: int | None = None
    converted_checksum: int | None = None
    created_on: datetime | None = None
    last_updated: datetime | None = None
    deleted_on: datetime | None = None
    extra_props: dict[str, str] | None = None

    @field_validator("created_on", "last_updated", "deleted_on", mode="before")
    @classmethod
    def _parse_timestamps(cls, value):
        if isinstance(value, str):
            return parse_timestamp(value)
        return value

    @field_validator("source_path", mode="before")
    @classmethod
    def _normalize_source_path(cls, value):
        return str(value).replace("\\", "/")

    @field_serializer("created_on", "last_updated", "deleted_on")
    def _serialize_timestamps(self, value: datetime | None) -> str | None:
        if value is None:
            return None
        return format_timestamp(value)

    # ------------------------------------------------------------------
    # Identity
    # ------------------------------------------------------------------

    @property
    def identity(self) -> tuple[str, str]:
        """The ``(source_path, title)`` pair that identifies this document."""
        return (self.source_path, self.title)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, DocumentMetadata):
            return NotImplemented
        return self.identity == other.identity

    def __hash__(self) -> int:
        return hash(self.identity)

    # ------------------------------------------------------------------
    # Extra properties
    # ------------------------------------------------------------------

    def has_extra_property(self, key: str) -> bool:
        return bool(self.extra_props) and key in self.extra_props

    def get_extra_property(self, key: str) -> str | None:
        if not self.extra_props:
            return None
        return self.extra_props.get(key)

    def set_extra_property(self, key: str, value: str) -> None:
        if self.extra_props is None:
            self.extra_props = {}
        self.extra_props[key] = value

    def to_dict(self) -> dict:
        """Serialize for the config file (camelCase keys, absent fields omitted)."""
        return self.model_dump(by_alias=True, exclude_none=True)


class SyncResult(BaseModel):
    """Result of syncing one document.

    Attributes:
        source_path: Source file path of the document.
        title: Display name of the document.
        state: State the document was resolved to.
        success: Whether the remote operation succeeded.
        remote_uri: Remote locator after the operation, if any.
        error: Error message if the operation failed.
    """

    source_path: str
    title: str
    state: DocumentState
    success: bool
    remote_uri: str | None = None
    error: str | None = None

    model_config = {"frozen": True}


class SyncReport(BaseModel):
    """Aggregate report for a full sync run.

    Attributes:
        remote: Base URL (or adapter label) of the remote synced against.
        dry_run: Whether this was a dry-run (no changes applied).
        results: List of individual sync results.
        total: Number of tracked documents in the batch.
        started_at: ISO 8601 timestamp when sync started.
        completed_at: ISO 8601 timestamp when sync completed.
    """

    remote: str
    dry_run: bool = False
    results: list[SyncResult] = []
    total: int = 0
    started_at: str
    completed_at: str | None = None

    model_config = {"frozen": True}

    def _with_state(self, state: DocumentState) -> list[SyncResult]:
        return [r for r in self.results if r.state == state]

    @property
    def created(self) -> list[SyncResult]:
        """Results where state is CREATE."""
        return self._with_state(DocumentState.CREATE)

    @property
    def updated(self) -> list[SyncResult]:
        """Results where state is UPDATE."""
        return self._with_state(DocumentState.UPDATE)

    @property
    def deleted(self) -> list[SyncResult]:
        """Results where state is DELETE."""
        return self._with_state(DocumentState.DELETE)

    @property
    def unchanged(self) -> list[SyncResult]:
        """Results that needed no remote call (CURRENT or DELETED)."""
        return [
            r
            for r in self.results
            if r.state in (DocumentState.CURRENT, DocumentState.DELETED)
        ]

    @property
    def errors(self) -> list[SyncResult]:
        """Results where success is False."""
        return [r for r in self.results if not r.success]

    @property
    def succeeded(self) -> int:
        return self.total - len(self.errors)

    def summary(self) -> str:
        """Format a human-readable summary of the sync run.

        Returns:
            Multi-line summary string with counts by state.
        """
        lines = [
            f"Synced {self.succeeded} out of {self.total} documents "
            f"with remote {self.remote}"
            + (" (dry run)" if self.dry_run else ""),
            f"  Created:   {len(self.created)}",
            f"  Updated:   {len(self.updated)}",
            f"  Deleted:   {len(self.deleted)}",
            f"  Unchanged: {len(self.unchanged)}",
            f"  Errors:    {len(self.errors)}",
        ]
        return "\n".join(lines)
