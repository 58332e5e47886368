"""Synchronization engine: publishes tracked documents to a remote.

The ``SyncEngine`` runs one ``BatchProcess`` over every tracked document.
For each one it:

1. Computes the source file checksum and resolves the document state.
2. Converts the source to HTML when the remote needs it and the cached
   artifact is missing or stale.
3. Dispatches ``create``, ``update`` or ``delete`` to the remote adapter,
   which writes remote identifiers back onto the metadata.
4. Refreshes ``sourceChecksum`` and saves the config file.

Error handling is per-document: a single failure does not abort the run.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from ..config_loader import save_context
from ..converters.html import MarkdownConverter, convert_document
from ..file_handler import checksum_if_exists, file_checksum
from ..remotes import create_remote
from .batch import BatchProcess
from .models import (
    DocumentMetadata,
    DocumentState,
    SyncReport,
    SyncResult,
    utcnow,
)
from .state import current_checksum, determine_state

if TYPE_CHECKING:
    from ..context import Context
    from ..exceptions import PublishError
    from ..remotes.base import Remote

logger = logging.getLogger(__name__)


class SyncEngine:
    """Synchronize every tracked document of a project with its remote.

    Args:
        context: Loaded project context.
        remote: Remote adapter.  Built from the config when omitted, which
            raises ``ConfigurationError`` on bad settings before any
            document is processed.
        converter: Markdown converter.  Defaults to one writing into the
            project's output path.
        retry_failed: Keep the old checksum when a dispatch fails, so the
            document is retried next run.  Defaults to the project's
            ``retryFailed`` setting.
        save: Persist the config file after each document.
    """

    def __init__(
        self,
        context: Context,
        remote: Remote | None = None,
        converter: MarkdownConverter | None = None,
        retry_failed: bool | None = None,
        save: bool = True,
    ) -> None:
        self.context = context
        self.remote = remote if remote is not None else create_remote(context)
        self.converter = converter or MarkdownConverter(context.output_path, context)
        self.retry_failed = (
            context.config.retry_failed if retry_failed is None else retry_failed
        )
        self.save = save
        self.report: SyncReport | None = None

    @property
    def remote_label(self) -> str:
        return self.context.config.remote.base_url or self.remote.name

    # ------------------------------------------------------------------
    # Main entry point
    # ------------------------------------------------------------------

    def run(self, dry_run: bool = False, raise_on_error: bool = True) -> SyncReport:
        """Synchronize all tracked documents.

        Args:
            dry_run: Resolve states and build the report without calling
                the remote or changing any metadata.
            raise_on_error: Raise ``BatchProcessError`` when any document
                failed.  The report is available on ``self.report`` either way.

        Returns:
            A ``SyncReport`` summarising what was (or would be) done.
        """
        logger.debug("Initiating sync with remote %s", self.remote_label)
        started_at = utcnow().isoformat()
        documents = list(self.context.documents)
        results: list[SyncResult] = []

        def task(metadata: DocumentMetadata) -> None:
            self._sync_document(metadata, dry_run, results)

        def after_batch(errors: list[PublishError]) -> bool:
            self.report = SyncReport(
                remote=self.remote_label,
                dry_run=dry_run,
                results=results,
                total=len(documents),
                started_at=started_at,
                completed_at=utcnow().isoformat(),
            )
            logger.info(
                "Synced %d out of %d documents with remote %s",
                len(documents) - len(errors),
                len(documents),
                self.remote_label,
            )
            for error in errors:
                logger.error("%s", error)
            if not dry_run:
                self._save()
            return not raise_on_error

        BatchProcess().execute(lambda: documents, task, after_batch)
        return self.report

    # ------------------------------------------------------------------
    # Per-document processing
    # ------------------------------------------------------------------

    def _sync_document(
        self,
        metadata: DocumentMetadata,
        dry_run: bool,
        results: list[SyncResult],
    ) -> None:
        state = determine_state(metadata, current_checksum(self.context, metadata))
        logger.debug("Syncing %s with remote (%s)", metadata.source_path, state.value)

        if dry_run:
            results.append(self._result(metadata, state, True))
            return

        succeeded = False
        try:
            self._dispatch(metadata, state)
            succeeded = True
        except Exception as exc:
            results.append(self._result(metadata, state, False, str(exc)))
            raise
        finally:
            self._refresh_checksum(metadata, succeeded)
            self._save()

        results.append(self._result(metadata, state, True))
        self._log_outcome(metadata, state)

    def _dispatch(self, metadata: DocumentMetadata, state: DocumentState) -> None:
        match state:
            case DocumentState.CREATE:
                self.convert_as_needed(metadata)
                self.remote.create(metadata)
            case DocumentState.UPDATE:
                self.convert_as_needed(metadata)
                self.remote.update(metadata)
            case DocumentState.DELETE:
                self.remote.delete(metadata)
                if metadata.deleted_on is None:
                    metadata.deleted_on = utcnow()
            case DocumentState.DELETED | DocumentState.CURRENT:
                pass

    def _refresh_checksum(self, metadata: DocumentMetadata, succeeded: bool) -> None:
        if not succeeded and self.retry_failed:
            logger.debug(
                "Keeping previous checksum of %s so it is retried",
                metadata.source_path,
            )
            return
        checksum = checksum_if_exists(self.context.source_path(metadata))
        if checksum is not None:
            metadata.source_checksum = checksum

    def _save(self) -> None:
        if self.save:
            save_context(self.context)

    def _log_outcome(self, metadata: DocumentMetadata, state: DocumentState) -> None:
        match state:
            case DocumentState.CREATE:
                logger.info("%s (remote: %s) created on remote", metadata.source_path, metadata.remote_uri)
            case DocumentState.UPDATE:
                logger.info("%s (remote: %s) updated on remote", metadata.source_path, metadata.remote_uri)
            case DocumentState.DELETE:
                logger.info(
                    "%s (remote: %s) deleted from remote. Local file will remain.",
                    metadata.source_path,
                    metadata.remote_uri,
                )
            case _:
                logger.info(
                    "%s (remote: %s) already current with remote: %s",
                    metadata.source_path,
                    metadata.remote_uri,
                    state.value,
                )

    @staticmethod
    def _result(
        metadata: DocumentMetadata,
        state: DocumentState,
        success: bool,
        error: str | None = None,
    ) -> SyncResult:
        return SyncResult(
            source_path=metadata.source_path,
            title=metadata.title,
            state=state,
            success=success,
            remote_uri=metadata.remote_uri,
            error=error,
        )

    # ------------------------------------------------------------------
    # Conversion
    # ------------------------------------------------------------------

    def needs_conversion(self, metadata: DocumentMetadata) -> bool:
        """Whether *metadata* must be converted before it is sent.

        A converted file from this run (or at the expected location) whose
        checksum matches ``convertedChecksum`` is reused and cached.
        """
        if self.remote.supports_native_markdown:
            return False

        candidate = self.context.converted_path(metadata)
        if candidate is None:
            candidate = self.converter.converted_path(
                self.context.source_path(metadata)
            )

        if (
            candidate.is_file()
            and metadata.converted_checksum is not None
            and file_checksum(candidate) == metadata.converted_checksum
        ):
            self.context.set_converted_path(metadata, candidate)
            return False
        return True

    def convert_as_needed(self, metadata: DocumentMetadata) -> None:
        if self.needs_conversion(metadata):
            convert_document(self.context, self.converter, metadata)
