"""Tests for the SyncEngine orchestrator.

Uses an in-memory remote that records calls and can be told to fail for
specific documents.  Projects come from the ``context`` fixture: three
tracked markdown files under docs/, HTML written to build/.
"""

from __future__ import annotations

from unittest.mock import patch

import pytest
import yaml

from mdpublish.converters.html import MarkdownConverter
from mdpublish.exceptions import BatchProcessError, ConfigurationError, HttpError
from mdpublish.sync.engine import SyncEngine
from mdpublish.sync.models import DocumentMetadata, DocumentState


class FakeRemote:
    """Remote that records every call; fails for titles in ``fail_on``."""

    name = "fake"

    def __init__(self, context, fail_on=()):
        self.context = context
        self.fail_on = set(fail_on)
        self.calls: list[tuple[str, str]] = []

    @property
    def supports_native_markdown(self) -> bool:
        return self.context.config.remote.supports_native_markdown

    def validate_config(self):
        pass

    def authenticate(self, request):
        return request

    def _call(self, operation, metadata):
        self.calls.append((operation, metadata.source_path))
        if metadata.title in self.fail_on:
            raise HttpError(f"{operation} {metadata.title} - 500")

    def create(self, metadata):
        self._call("create", metadata)
        metadata.remote_uri = f"https://remote.example.com/docs/{metadata.title}"

    def update(self, metadata):
        self._call("update", metadata)

    def delete(self, metadata):
        self._call("delete", metadata)

    def find(self, metadata):
        return None


def _by_title(context, title) -> DocumentMetadata:
    return next(m for m in context.documents if m.title == title)


def _synced(context) -> FakeRemote:
    """Run one successful sync so every document is published."""
    remote = FakeRemote(context)
    SyncEngine(context, remote=remote).run()
    remote.calls.clear()
    return remote


# ---------------------------------------------------------------------------
# State-driven dispatch
# ---------------------------------------------------------------------------


class TestDispatch:
    def test_first_run_creates_everything(self, context, project_dir):
        remote = FakeRemote(context)

        report = SyncEngine(context, remote=remote).run()

        assert sorted(remote.calls) == [
            ("create", "docs/README.md"),
            ("create", "docs/guide.md"),
            ("create", "docs/notes.md"),
        ]
        assert len(report.created) == 3
        assert report.succeeded == 3
        for metadata in context.documents:
            assert metadata.remote_uri is not None
            assert metadata.source_checksum is not None
            assert metadata.converted_checksum is not None
        assert (project_dir / "build" / "guide.html").is_file()

    def test_second_run_changes_nothing(self, context):
        remote = _synced(context)

        report = SyncEngine(context, remote=remote).run()

        assert remote.calls == []
        assert len(report.unchanged) == 3

    def test_edited_file_updated(self, context, project_dir):
        remote = _synced(context)
        (project_dir / "docs" / "guide.md").write_text("# Guide\n\nRewritten.\n")

        report = SyncEngine(context, remote=remote).run()

        assert remote.calls == [("update", "docs/guide.md")]
        assert [r.source_path for r in report.updated] == ["docs/guide.md"]
        html = (project_dir / "build" / "guide.html").read_text()
        assert "Rewritten." in html

    def test_removed_file_deleted_once(self, context, project_dir):
        remote = _synced(context)
        (project_dir / "docs" / "notes.md").unlink()

        SyncEngine(context, remote=remote).run()

        assert remote.calls == [("delete", "docs/notes.md")]
        assert _by_title(context, "notes.md").deleted_on is not None

        remote.calls.clear()
        report = SyncEngine(context, remote=remote).run()

        assert remote.calls == []
        deleted = [r for r in report.results if r.state == DocumentState.DELETED]
        assert [r.source_path for r in deleted] == ["docs/notes.md"]

    def test_delete_marker(self, context):
        remote = _synced(context)
        _by_title(context, "README.md").set_extra_property("delete", "true")

        SyncEngine(context, remote=remote).run()

        assert remote.calls == [("delete", "docs/README.md")]
        assert _by_title(context, "README.md").deleted_on is not None

    def test_config_file_saved(self, context, project_dir):
        SyncEngine(context, remote=FakeRemote(context)).run()

        saved = yaml.safe_load((project_dir / ".mdpublish.yml").read_text())
        entry = next(m for m in saved["metadata"] if m["title"] == "README.md")
        assert entry["remoteURI"] == "https://remote.example.com/docs/README.md"
        assert entry["sourcePath"] == "docs/README.md"
        assert isinstance(entry["sourceChecksum"], int)

    def test_remote_built_from_config(self, context):
        engine = SyncEngine(context)
        assert engine.remote.name == "noop"
        assert engine.remote_label == "noop"

    def test_invalid_remote_config_fails_before_any_document(self, jive_context):
        jive_context.config.remote = jive_context.config.remote.model_copy(
            update={"password": None}
        )
        with pytest.raises(ConfigurationError):
            SyncEngine(jive_context)


# ---------------------------------------------------------------------------
# Failures
# ---------------------------------------------------------------------------


class TestFailures:
    def test_failure_isolated_to_one_document(self, context):
        remote = FakeRemote(context, fail_on={"guide.md"})
        engine = SyncEngine(context, remote=remote)

        with pytest.raises(BatchProcessError) as exc_info:
            engine.run()

        assert len(exc_info.value.errors) == 1
        assert exc_info.value.errors[0].metadata is _by_title(context, "guide.md")
        assert len(remote.calls) == 3
        assert _by_title(context, "README.md").remote_uri is not None
        assert _by_title(context, "notes.md").remote_uri is not None

        report = engine.report
        assert report.succeeded == 2
        assert [r.source_path for r in report.errors] == ["docs/guide.md"]
        assert "500" in report.errors[0].error

    def test_errors_reported_without_raising(self, context):
        remote = FakeRemote(context, fail_on={"guide.md"})

        report = SyncEngine(context, remote=remote).run(raise_on_error=False)

        assert len(report.errors) == 1

    def test_checksum_advances_after_failed_update(self, context, project_dir):
        remote = _synced(context)
        (project_dir / "docs" / "guide.md").write_text("# Guide\n\nEdited.\n")
        remote.fail_on = {"guide.md"}

        SyncEngine(context, remote=remote).run(raise_on_error=False)
        remote.calls.clear()
        remote.fail_on = set()
        SyncEngine(context, remote=remote).run()

        # The edit is considered synced; it is not retried.
        assert remote.calls == []

    def test_retry_failed_keeps_old_checksum(self, context, project_dir):
        remote = _synced(context)
        before = _by_title(context, "guide.md").source_checksum
        (project_dir / "docs" / "guide.md").write_text("# Guide\n\nEdited.\n")
        remote.fail_on = {"guide.md"}

        SyncEngine(context, remote=remote, retry_failed=True).run(raise_on_error=False)

        assert _by_title(context, "guide.md").source_checksum == before

        remote.calls.clear()
        remote.fail_on = set()
        SyncEngine(context, remote=remote, retry_failed=True).run()

        assert remote.calls == [("update", "docs/guide.md")]

    def test_retry_failed_read_from_config(self, context):
        context.config.retry_failed = True
        assert SyncEngine(context, remote=FakeRemote(context)).retry_failed is True

    def test_missing_unpublished_file_fails_conversion(self, context):
        context.add_metadata(DocumentMetadata(source_path="docs/missing.md", title="missing.md"))
        remote = FakeRemote(context)

        report = SyncEngine(context, remote=remote).run(raise_on_error=False)

        assert [r.source_path for r in report.errors] == ["docs/missing.md"]
        assert report.errors[0].state == DocumentState.CREATE
        assert ("create", "docs/missing.md") not in remote.calls


# ---------------------------------------------------------------------------
# Dry run
# ---------------------------------------------------------------------------


class TestDryRun:
    def test_no_calls_no_saves_no_changes(self, context, project_dir):
        remote = FakeRemote(context)
        before = [m.model_dump() for m in context.documents]

        report = SyncEngine(context, remote=remote).run(dry_run=True)

        assert remote.calls == []
        assert [m.model_dump() for m in context.documents] == before
        assert not (project_dir / ".mdpublish.yml").exists()
        assert not (project_dir / "build").exists()
        assert report.dry_run is True
        assert len(report.created) == 3

    def test_reports_pending_states(self, context, project_dir):
        _synced(context)
        (project_dir / "docs" / "guide.md").write_text("# Guide\n\nEdited.\n")
        (project_dir / "docs" / "notes.md").unlink()

        report = SyncEngine(context, remote=FakeRemote(context)).run(dry_run=True)

        states = {r.source_path: r.state for r in report.results}
        assert states == {
            "docs/README.md": DocumentState.CURRENT,
            "docs/guide.md": DocumentState.UPDATE,
            "docs/notes.md": DocumentState.DELETE,
        }


# ---------------------------------------------------------------------------
# Conversion
# ---------------------------------------------------------------------------


class TestConversion:
    def test_up_to_date_artifact_reused(self, context):
        remote = _synced(context)
        metadata = _by_title(context, "guide.md")
        metadata.source_checksum = None
        context.converted_paths.clear()

        with patch.object(MarkdownConverter, "convert") as mock_convert:
            SyncEngine(context, remote=remote).run()

        mock_convert.assert_not_called()
        assert remote.calls == [("update", "docs/guide.md")]
        assert context.converted_path(metadata) is not None

    def test_stale_artifact_reconverted(self, context, project_dir):
        remote = _synced(context)
        metadata = _by_title(context, "guide.md")
        metadata.source_checksum = None
        context.converted_paths.clear()
        (project_dir / "build" / "guide.html").write_text("<p>tampered</p>")

        SyncEngine(context, remote=remote).run()

        assert "tampered" not in (project_dir / "build" / "guide.html").read_text()

    def test_native_markdown_skips_conversion(self, context, project_dir):
        context.config.remote = context.config.remote.model_copy(
            update={"supports_native_markdown": True}
        )
        remote = FakeRemote(context)

        SyncEngine(context, remote=remote).run()

        assert len(remote.calls) == 3
        assert not (project_dir / "build").exists()
        assert all(m.converted_checksum is None for m in context.documents)
