"""Discovery of source documents and tracking of new ones.

``find_documents`` walks the search roots for files matching the include
patterns and none of the exclude patterns.  ``index_documents`` adds a
``DocumentMetadata`` entry for every discovered file the project does not
track yet.  Tracked files that are no longer found are reported but kept;
the sync phase decides what happens to them.
"""

from __future__ import annotations

import fnmatch
import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING

from ..exceptions import PublishError
from .batch import EXCEPTIONS_UNHANDLED, BatchProcess
from .models import DocumentMetadata

if TYPE_CHECKING:
    from ..context import Context

logger = logging.getLogger(__name__)


@dataclass
class IndexSummary:
    """Counts from one index run."""

    matched: list[str] = field(default_factory=list)
    indexed: list[str] = field(default_factory=list)
    already_indexed: list[str] = field(default_factory=list)
    missing: list[str] = field(default_factory=list)


def _matches(path: Path, root: Path, patterns: Iterable[str]) -> bool:
    """Match against the file name and the root-relative POSIX path."""
    relative = path.relative_to(root).as_posix()
    return any(
        fnmatch.fnmatch(path.name, pattern) or fnmatch.fnmatch(relative, pattern)
        for pattern in patterns
    )


def find_documents(
    search_roots: Sequence[Path],
    include: Sequence[str] = ("*.md",),
    exclude: Sequence[str] = (),
) -> list[Path]:
    """Recursively find files under *search_roots*.

    Args:
        search_roots: Directories to search.
        include: Glob patterns a file must match.
        exclude: Glob patterns that reject a file.

    Returns:
        Matching file paths, sorted and without duplicates.

    Raises:
        PublishError: A search root is missing or not a directory.
    """
    found: set[Path] = set()
    for root in search_roots:
        if not root.exists():
            raise PublishError(f"Directory {root} doesn't exist.")
        if not root.is_dir():
            raise PublishError(f"{root} is not a directory.")

        for path in root.rglob("*"):
            if not path.is_file():
                continue
            if not _matches(path, root, include):
                continue
            if exclude and _matches(path, root, exclude):
                continue
            found.add(path)

    return sorted(found)


def index_documents(context: Context) -> IndexSummary:
    """Track every discovered file that is not tracked yet.

    New documents get the file name as their title.

    Raises:
        BatchProcessError: Discovery failed or a document could not be added.
    """
    logger.debug("Updating metadata index")
    summary = IndexSummary()
    summary.already_indexed = [m.source_path for m in context.documents]

    def collect() -> list[str]:
        paths = find_documents(
            context.search_roots,
            context.config.include,
            context.config.exclude,
        )
        summary.matched = [context.relative_path(p) for p in paths]
        summary.missing = [
            p for p in summary.already_indexed if p not in summary.matched
        ]
        return [p for p in summary.matched if context.is_indexed(p) is None]

    def task(source_path: str) -> None:
        logger.debug("Creating metadata for unindexed file %s", source_path)
        context.add_metadata(
            DocumentMetadata(
                source_path=source_path,
                title=Path(source_path).name,
            )
        )
        summary.indexed.append(source_path)

    def after_batch(errors: list[PublishError]) -> bool:
        logger.info(
            "Matched %d files (%d indexed, %d already indexed, %d missing)",
            len(summary.matched),
            len(summary.indexed),
            len(summary.already_indexed),
            len(summary.missing),
        )
        return EXCEPTIONS_UNHANDLED

    BatchProcess().execute(collect, task, after_batch)
    return summary
