"""Remote that performs no remote calls (dry runs, tests, offline use)."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    import requests

    from ..context import Context
    from ..sync.models import DocumentMetadata

logger = logging.getLogger(__name__)


class NoopRemote:
    """Accepts every operation and changes nothing."""

    name = "noop"

    def __init__(
        self, context: Context, session: requests.Session | None = None
    ):
        self.context = context
        self.config = context.config.remote

    @property
    def supports_native_markdown(self) -> bool:
        return self.config.supports_native_markdown

    def validate_config(self) -> None:
        logger.debug("Noop - no configuration required")

    def authenticate(
        self, request: requests.PreparedRequest
    ) -> requests.PreparedRequest:
        return request

    def create(self, metadata: DocumentMetadata) -> None:
        logger.debug("Noop - creating %s on remote", metadata.source_path)

    def update(self, metadata: DocumentMetadata) -> None:
        logger.debug("Noop - updating %s on remote", metadata.source_path)

    def delete(self, metadata: DocumentMetadata) -> None:
        logger.debug("Noop - deleting %s on remote", metadata.source_path)

    def find(self, metadata: DocumentMetadata) -> None:
        logger.debug("Noop - looking up %s on remote", metadata.source_path)
        return None
