"""Exception hierarchy for mdpublish.

Four kinds of failure are distinguished:

- ``PublishError`` -- failure processing one document.  Carries the
  document's metadata (when known) so batch reports can say which file
  failed.
- ``HttpError`` -- failure of one remote call.  Carries the prepared
  request and, when one was received, the response.
- ``BatchProcessError`` -- raised once per batch, wrapping every
  ``PublishError`` collected while processing it.
- ``ConfigurationError`` -- raised before any batch runs (bad config file,
  unknown adapter label, missing credentials).
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    import requests

    from .sync.models import DocumentMetadata


class PublishError(Exception):
    """Failure processing a single document.

    Args:
        message: Human-readable description.
        metadata: The document being processed, if any.
    """

    def __init__(
        self,
        message: str,
        metadata: DocumentMetadata | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.metadata = metadata

    def __str__(self) -> str:
        if self.metadata is not None:
            return f"{self.message} [{self.metadata.source_path}]"
        return self.message


class HttpError(PublishError):
    """Failure of a single HTTP call against the remote service."""

    def __init__(
        self,
        message: str,
        request: requests.PreparedRequest | None = None,
        response: requests.Response | None = None,
        metadata: DocumentMetadata | None = None,
    ) -> None:
        super().__init__(message, metadata)
        self.request = request
        self.response = response

    @property
    def status_code(self) -> int | None:
        """HTTP status of the response, or ``None`` if nothing was received."""
        if self.response is None:
            return None
        return self.response.status_code

    def describe(self) -> dict[str, Any]:
        """Return request/response details for diagnostics."""
        details: dict[str, Any] = {"message": self.message}
        if self.request is not None:
            details["request"] = f"{self.request.method} {self.request.url}"
        if self.response is not None:
            details["status"] = self.response.status_code
            details["body"] = self.response.text[:500]
        return details


class BatchProcessError(PublishError):
    """Aggregate of every error collected while processing one batch."""

    def __init__(
        self, message: str, errors: list[PublishError] | None = None
    ) -> None:
        super().__init__(message)
        self.errors: list[PublishError] = list(errors or [])

    def __str__(self) -> str:
        lines = [f"{self.message} ({len(self.errors)} errors)"]
        lines.extend(f"  - {err}" for err in self.errors)
        return "\n".join(lines)


class ConfigurationError(PublishError, ValueError):
    """Configuration problem detected before any document is processed."""


class ConversionError(PublishError):
    """Markdown could not be converted to the remote's artifact format."""
