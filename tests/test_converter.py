"""Tests for Markdown -> HTML conversion (converters/html.py)."""

from datetime import datetime, timezone
from unittest.mock import patch

import pytest

from mdpublish.converters import (
    DocumentRenderer,
    JiveDocumentRenderer,
    MarkdownConverter,
    convert_document,
    convert_documents,
    markdown_to_html,
    renderer_for,
    resolve_link,
)
from mdpublish.exceptions import BatchProcessError, ConversionError
from mdpublish.file_handler import file_checksum
from mdpublish.sync.models import DocumentMetadata


class TestMarkdownToHtml:
    def test_heading_and_paragraph(self):
        html = markdown_to_html("# Title\n\nSome text.\n")
        assert "<h1>Title</h1>" in html
        assert "<p>Some text.</p>" in html

    def test_table(self):
        html = markdown_to_html("| a | b |\n|---|---|\n| 1 | 2 |\n")
        assert "<table>" in html
        assert "<td>1</td>" in html

    def test_strikethrough(self):
        assert "<del>old</del>" in markdown_to_html("~~old~~ new\n")

    def test_bare_url_linked(self):
        html = markdown_to_html("See https://example.com for details.\n")
        assert '<a href="https://example.com">' in html

    def test_fenced_code(self):
        html = markdown_to_html("```python\nprint(1)\n```\n")
        assert "<pre><code" in html
        assert "print(1)" in html

    def test_empty_input(self):
        assert markdown_to_html("") == ""


class TestMarkdownConverter:
    def test_converted_path_in_output_dir(self, tmp_path):
        converter = MarkdownConverter(tmp_path / "out")
        assert converter.converted_path(tmp_path / "docs" / "a.md") == tmp_path / "out" / "a.html"

    def test_converted_path_beside_source(self, tmp_path):
        converter = MarkdownConverter()
        assert converter.converted_path(tmp_path / "docs" / "a.md") == tmp_path / "docs" / "a.html"

    def test_convert_writes_html(self, tmp_path):
        source = tmp_path / "a.md"
        source.write_text("# Hello\n")

        target = MarkdownConverter(tmp_path / "out").convert(source)

        assert target == tmp_path / "out" / "a.html"
        assert "<h1>Hello</h1>" in target.read_text()

    def test_missing_source_raises(self, tmp_path):
        with pytest.raises(ConversionError, match="Unable to read"):
            MarkdownConverter().convert(tmp_path / "missing.md")


class TestConvertDocument:
    def test_records_path_and_checksum(self, context, project_dir):
        metadata = context.documents[0]
        converter = MarkdownConverter(context.output_path)

        target = convert_document(context, converter, metadata)

        assert target == project_dir / "build" / "README.html"
        assert context.converted_path(metadata) == target
        assert metadata.converted_checksum == file_checksum(target)

    def test_error_carries_metadata(self, context):
        metadata = DocumentMetadata(source_path="docs/missing.md", title="missing.md")

        with pytest.raises(ConversionError) as exc_info:
            convert_document(context, MarkdownConverter(context.output_path), metadata)

        assert exc_info.value.metadata is metadata


class TestConvertDocuments:
    def test_converts_every_tracked_document(self, context, project_dir):
        assert convert_documents(context) == 3
        assert sorted(p.name for p in (project_dir / "build").iterdir()) == [
            "README.html",
            "guide.html",
            "notes.html",
        ]

    def test_deleted_documents_skipped(self, context, project_dir):
        context.documents[2].deleted_on = datetime(2024, 1, 1, tzinfo=timezone.utc)

        assert convert_documents(context) == 2
        assert not (project_dir / "build" / "notes.html").exists()

    def test_native_markdown_converts_nothing(self, context, project_dir):
        context.config.remote = context.config.remote.model_copy(
            update={"supports_native_markdown": True}
        )

        with patch.object(MarkdownConverter, "convert") as mock_convert:
            assert convert_documents(context) == 0

        mock_convert.assert_not_called()

    def test_failure_isolated(self, context, project_dir):
        (project_dir / "docs" / "guide.md").unlink()

        with pytest.raises(BatchProcessError) as exc_info:
            convert_documents(context)

        assert len(exc_info.value.errors) == 1
        assert exc_info.value.errors[0].metadata.source_path == "docs/guide.md"
        assert (project_dir / "build" / "README.html").is_file()
        assert (project_dir / "build" / "notes.html").is_file()


GUIDE_URI = "https://jive.example.com/docs/DOC-7"


@pytest.fixture
def readme(context):
    """Absolute path of docs/README.md with docs/guide.md published."""
    context.documents[1].remote_uri = GUIDE_URI
    return context.source_path(context.documents[0])


class TestResolveLink:
    def test_tracked_document_resolves_to_remote_uri(self, context, readme):
        assert resolve_link(context, readme, "guide.md") == GUIDE_URI

    def test_dot_relative_path(self, context, readme):
        assert resolve_link(context, readme, "./guide.md") == GUIDE_URI

    def test_relative_to_project_base(self, context, readme):
        assert resolve_link(context, readme, "docs/guide.md") == GUIDE_URI

    def test_fragment_dropped_for_published_document(self, context, readme):
        assert resolve_link(context, readme, "guide.md#usage") == GUIDE_URI

    def test_unpublished_document_kept(self, context, readme):
        assert resolve_link(context, readme, "notes.md") == "notes.md"

    def test_untracked_file_kept(self, context, readme, project_dir):
        (project_dir / "docs" / "draft.md").write_text("# Draft\n")
        assert resolve_link(context, readme, "draft.md") == "draft.md"

    def test_missing_file_kept(self, context, readme):
        assert resolve_link(context, readme, "gone.md") == "gone.md"

    @pytest.mark.parametrize(
        "url",
        [
            "https://example.com/guide.md",
            "mailto:docs@example.com",
            "/docs/guide.md",
            "#section",
            "",
        ],
    )
    def test_web_absolute_and_anchor_links_kept(self, context, readme, url):
        assert resolve_link(context, readme, url) == url


class TestDocumentRenderer:
    def test_link_rewritten(self, context, readme):
        html = markdown_to_html("See [guide](guide.md)\n", DocumentRenderer(context, readme))
        assert html == f'<p>See <a href="{GUIDE_URI}">guide</a></p>\n'

    def test_web_link_unchanged(self, context, readme):
        html = markdown_to_html(
            "[site](https://example.com)\n", DocumentRenderer(context, readme)
        )
        assert '<a href="https://example.com">' in html

    def test_plain_code_block(self, context, readme):
        html = markdown_to_html("```python\nprint(1)\n```\n", DocumentRenderer(context, readme))
        assert '<code class="language-python">' in html

    def test_renderer_follows_adapter(self, context, jive_context, readme):
        assert type(renderer_for(context, readme)) is DocumentRenderer
        assert type(renderer_for(jive_context, readme)) is JiveDocumentRenderer


class TestJiveDocumentRenderer:
    def _render(self, context, readme, text):
        return markdown_to_html(text, JiveDocumentRenderer(context, readme))

    def test_code_lines_end_in_line_breaks(self, context, readme):
        html = self._render(context, readme, "```python\nx = 1\nprint(x)\n```\n")
        assert html == (
            '<pre class="language-python line-numbers"><code>\n'
            "x = 1<br />\n"
            "print(x)<br />\n"
            "</code></pre>\n"
        )

    def test_code_escaped(self, context, readme):
        html = self._render(context, readme, "```\n<b>&</b>\n```\n")
        assert "&lt;b&gt;&amp;&lt;/b&gt;<br />" in html

    def test_no_language(self, context, readme):
        html = self._render(context, readme, "```\nplain\n```\n")
        assert '<pre class="language-none line-numbers">' in html

    def test_indented_code(self, context, readme):
        html = self._render(context, readme, "Text\n\n    indented\n")
        assert '<pre class="language-none line-numbers"><code>\nindented<br />\n' in html

    @pytest.mark.parametrize(
        ("info", "language"),
        [("yaml", "javascript"), ("yml", "javascript"), ("xml", "markup"), ("html", "markup")],
    )
    def test_language_aliases(self, context, readme, info, language):
        html = self._render(context, readme, f"```{info}\na: 1\n```\n")
        assert f'class="language-{language} line-numbers"' in html

    def test_links_still_rewritten(self, context, readme):
        html = self._render(context, readme, "[guide](guide.md)\n")
        assert f'href="{GUIDE_URI}"' in html


class TestConverterWithContext:
    def test_convert_document_rewrites_links(self, context, project_dir):
        (project_dir / "docs" / "README.md").write_text("See [guide](guide.md)\n")
        context.documents[1].remote_uri = GUIDE_URI

        target = convert_document(
            context, MarkdownConverter(context.output_path, context), context.documents[0]
        )

        assert f'<a href="{GUIDE_URI}">guide</a>' in target.read_text()

    def test_convert_documents_uses_context(self, context, project_dir):
        (project_dir / "docs" / "README.md").write_text("See [guide](guide.md)\n")
        context.documents[1].remote_uri = GUIDE_URI

        convert_documents(context)

        assert GUIDE_URI in (project_dir / "build" / "README.html").read_text()

    def test_without_context_links_unchanged(self, tmp_path):
        source = tmp_path / "a.md"
        source.write_text("[b](b.md)\n")

        target = MarkdownConverter(tmp_path / "out").convert(source)

        assert '<a href="b.md">' in target.read_text()
