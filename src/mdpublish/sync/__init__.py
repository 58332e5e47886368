"""Document synchronization engine.

Public API for publishing tracked Markdown documents to a remote content
repository and keeping them in sync across runs.

Modules:

- ``state``     -- ``determine_state``: which remote operation a document
  needs (create, update, delete, or none).
- ``batch``     -- ``BatchProcess``: runs a task over many items,
  isolating per-item failures.
- ``engine``    -- ``SyncEngine``: orchestrates a full sync run.
- ``index``     -- ``find_documents`` / ``index_documents``: discovery of
  new source files.
- ``models``    -- ``DocumentMetadata``, ``DocumentState``, ``SyncResult``,
  ``SyncReport``: core data contracts.
- ``reporter``  -- Human-readable and JSON report formatting.

``engine`` and ``index`` depend on the config layer, which itself depends
on ``models``; import them from their modules::

    from mdpublish.config_loader import load_context
    from mdpublish.sync import format_sync_report
    from mdpublish.sync.engine import SyncEngine

    context = load_context(".mdpublish.yml")
    report = SyncEngine(context).run(dry_run=True)
    print(format_sync_report(report))
"""

from .batch import EXCEPTIONS_HANDLED, EXCEPTIONS_UNHANDLED, BatchProcess
from .models import (
    DocumentMetadata,
    DocumentState,
    SyncReport,
    SyncResult,
)
from .reporter import (
    format_dry_run_preview,
    format_sync_report,
    report_to_json,
)
from .state import determine_state

__all__ = [
    "EXCEPTIONS_HANDLED",
    "EXCEPTIONS_UNHANDLED",
    "BatchProcess",
    "DocumentMetadata",
    "DocumentState",
    "SyncReport",
    "SyncResult",
    "determine_state",
    "format_dry_run_preview",
    "format_sync_report",
    "report_to_json",
]
