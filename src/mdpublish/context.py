"""Runtime context for one mdpublish run.

A ``Context`` bundles the loaded ``ProjectConfig`` with the location of
the config file (all relative paths resolve against its directory) and
the per-run conversion cache.  It is never persisted; only
``context.config`` is written back by ``config_loader.save_context()``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path

from .config_schema import ProjectConfig
from .sync.models import DocumentMetadata

logger = logging.getLogger(__name__)


@dataclass
class Context:
    """Configuration plus run-scoped state.

    Args:
        config_path: Absolute path of the project config file.
        config: The loaded project configuration.
        converted_paths: Converted artifact path per document identity,
            remembered for the duration of a run.
    """

    config_path: Path
    config: ProjectConfig = field(default_factory=ProjectConfig)
    converted_paths: dict[tuple[str, str], Path] = field(default_factory=dict)

    def __post_init__(self) -> None:
        self.config_path = Path(self.config_path).absolute()

    # ------------------------------------------------------------------
    # Paths
    # ------------------------------------------------------------------

    @property
    def project_base(self) -> Path:
        """Directory containing the config file."""
        return self.config_path.parent

    def resolve_path(self, path: str | Path) -> Path:
        """Resolve *path* against the project base (absolute paths pass through)."""
        p = Path(path)
        if p.is_absolute():
            return p
        return self.project_base / p

    def relative_path(self, path: Path) -> str:
        """Express *path* relative to the project base, POSIX style."""
        try:
            rel = Path(path).absolute().relative_to(self.project_base)
        except ValueError:
            rel = Path(path)
        return rel.as_posix()

    @property
    def search_roots(self) -> list[Path]:
        return [self.resolve_path(p) for p in self.config.search_path]

    @property
    def output_path(self) -> Path | None:
        if self.config.output_path is None:
            return None
        return self.resolve_path(self.config.output_path)

    def source_path(self, metadata: DocumentMetadata) -> Path:
        """Absolute path of a document's source file."""
        return self.resolve_path(metadata.source_path)

    # ------------------------------------------------------------------
    # Conversion cache
    # ------------------------------------------------------------------

    def converted_path(self, metadata: DocumentMetadata) -> Path | None:
        """Return the converted artifact recorded for *metadata* this run."""
        return self.converted_paths.get(metadata.identity)

    def set_converted_path(
        self, metadata: DocumentMetadata, path: Path
    ) -> None:
        self.converted_paths[metadata.identity] = path

    # ------------------------------------------------------------------
    # Tracked documents
    # ------------------------------------------------------------------

    @property
    def documents(self) -> list[DocumentMetadata]:
        return self.config.metadata

    def document_count(self) -> int:
        return len(self.config.metadata)

    def is_indexed(self, source_path: str) -> DocumentMetadata | None:
        """Return the tracked document for *source_path*, if any."""
        for metadata in self.config.metadata:
            if metadata.source_path == source_path:
                return metadata
        return None

    def add_metadata(self, metadata: DocumentMetadata) -> None:
        if metadata in self.config.metadata:
            logger.debug("%s is already tracked", metadata.source_path)
            return
        self.config.metadata.append(metadata)

    # ------------------------------------------------------------------
    # Defaults merged into each document
    # ------------------------------------------------------------------

    def tags_for_document(self, metadata: DocumentMetadata) -> list[str]:
        """Project defaults, then remote defaults, then the document's own tags."""
        tags: list[str] = []
        for tag in (
            self.config.default_tags
            + self.config.remote.default_tags
            + (metadata.tags or [])
        ):
            if tag not in tags:
                tags.append(tag)
        return tags

    def extra_props_for_document(
        self, metadata: DocumentMetadata
    ) -> dict[str, str]:
        """Remote default extra properties overridden by the document's own."""
        props = dict(self.config.remote.default_extra_props)
        props.update(metadata.extra_props or {})
        return props
