"""Sync report formatting functions.

Provides human-readable and machine-readable output for sync runs:

- ``format_sync_report`` -- full post-sync summary.
- ``format_dry_run_preview`` -- dry-run preview grouped by state.
- ``report_to_json`` -- structured dict for ``--json`` output.
"""

from __future__ import annotations

from collections import defaultdict
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .models import SyncReport

from .models import DocumentState

# ------------------------------------------------------------------
# Human-readable report
# ------------------------------------------------------------------


def format_sync_report(report: SyncReport) -> str:
    """Format a complete sync report as human-readable text.

    Sections are only included when they contain at least one result.
    Unchanged documents are summarised by count only.

    Args:
        report: The completed sync report.

    Returns:
        Multi-line formatted string.
    """
    if report.dry_run:
        return format_dry_run_preview(report)

    lines: list[str] = []
    lines.append(
        f"Synced {report.succeeded} out of {report.total} documents "
        f"with remote {report.remote}"
    )
    lines.append(f"Started: {report.started_at}")
    if report.completed_at:
        lines.append(f"Completed: {report.completed_at}")
    lines.append("")

    sections = (
        ("Created:", report.created),
        ("Updated:", report.updated),
        ("Deleted:", report.deleted),
    )
    for title, results in sections:
        succeeded = [r for r in results if r.success]
        if not succeeded:
            continue
        lines.append(title)
        for r in succeeded:
            lines.append(f"  {r.source_path} -> {r.remote_uri or '(no remote uri)'}")
        lines.append("")

    if report.errors:
        lines.append("Errors:")
        for r in report.errors:
            lines.append(f"  {r.source_path} ({r.state.value}): {r.error}")
        lines.append("")

    unchanged = len(report.unchanged)
    if unchanged > 0:
        lines.append(f"Unchanged: {unchanged} documents")
        lines.append("")

    return "\n".join(lines).rstrip()


# ------------------------------------------------------------------
# Dry-run preview
# ------------------------------------------------------------------


def format_dry_run_preview(report: SyncReport) -> str:
    """Format a dry-run preview grouped by document state.

    Each pending operation is shown as ``[STATE] source_path``.

    Args:
        report: A dry-run sync report (``dry_run=True``).

    Returns:
        Multi-line formatted string.
    """
    lines: list[str] = []
    lines.append("DRY RUN -- No changes will be made")
    lines.append(f"Remote: {report.remote}")
    lines.append("")

    groups: dict[DocumentState, list[str]] = defaultdict(list)
    for r in report.results:
        groups[r.state].append(r.source_path)

    for state in (DocumentState.CREATE, DocumentState.UPDATE, DocumentState.DELETE):
        if state not in groups:
            continue
        lines.append(f"[{state.value.upper()}]")
        for source_path in groups[state]:
            lines.append(f"  {source_path}")
        lines.append("")

    unchanged = len(groups.get(DocumentState.CURRENT, [])) + len(
        groups.get(DocumentState.DELETED, [])
    )
    if unchanged > 0:
        lines.append(f"Unchanged: {unchanged} documents")
        lines.append("")

    if unchanged == len(report.results):
        lines.append("No changes needed.")
        lines.append("")

    return "\n".join(lines).rstrip()


# ------------------------------------------------------------------
# JSON output
# ------------------------------------------------------------------


def report_to_json(report: SyncReport) -> dict:
    """Convert a sync report to a structured dict for JSON serialisation.

    Args:
        report: The sync report.

    Returns:
        Dict with remote info, counts, and per-result details.
    """
    results_list = []
    for r in report.results:
        entry: dict = {
            "source_path": r.source_path,
            "title": r.title,
            "state": r.state.value,
            "success": r.success,
        }
        if r.remote_uri:
            entry["remote_uri"] = r.remote_uri
        if r.error:
            entry["error"] = r.error
        results_list.append(entry)

    return {
        "remote": report.remote,
        "dry_run": report.dry_run,
        "started_at": report.started_at,
        "completed_at": report.completed_at,
        "counts": {
            "total": report.total,
            "succeeded": report.succeeded,
            "created": len(report.created),
            "updated": len(report.updated),
            "deleted": len(report.deleted),
            "unchanged": len(report.unchanged),
            "errors": len(report.errors),
        },
        "results": results_list,
    }
