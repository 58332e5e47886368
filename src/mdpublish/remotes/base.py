"""Capability contract every remote adapter satisfies.

Adapters receive the run ``Context`` at construction time and mutate the
``DocumentMetadata`` they are given in place: remote URI, timestamps and
adapter-owned extra properties are written straight onto the tracked
record, which is how results flow back to the orchestrator.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:
    import requests

    from ..sync.models import DocumentMetadata


@runtime_checkable
class Remote(Protocol):
    """Operations the synchronization engine needs from a remote service."""

    #: Registry label of the adapter (``remote.adapter`` in the config file).
    name: str

    def validate_config(self) -> None:
        """Fail fast on missing settings.

        Raises:
            ConfigurationError: A required setting is missing or invalid.
        """
        ...

    def authenticate(
        self, request: requests.PreparedRequest
    ) -> requests.PreparedRequest:
        """Attach credentials to an outgoing request (a ``requests`` auth hook)."""
        ...

    def create(self, metadata: DocumentMetadata) -> None: ...

    def update(self, metadata: DocumentMetadata) -> None: ...

    def delete(self, metadata: DocumentMetadata) -> None: ...

    def find(self, metadata: DocumentMetadata) -> Any | None:
        """Return the remote record for *metadata*, or ``None`` if absent."""
        ...

    @property
    def supports_native_markdown(self) -> bool: ...
