"""Markdown to HTML conversion using mistune.

Links between tracked documents are rewritten to the linked document's
remote URI once it has one.  Web links, absolute paths, anchors and links
to untracked or unpublished files are left as written.  Remotes with
their own code block markup get a dedicated renderer, see ``RENDERERS``.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import TYPE_CHECKING
from urllib.parse import unquote, urlparse

import mistune
from mistune.util import escape

from ..exceptions import ConversionError
from ..file_handler import file_checksum, read_file_with_encoding, write_file
from ..sync.batch import EXCEPTIONS_UNHANDLED, BatchProcess

if TYPE_CHECKING:
    from ..context import Context
    from ..sync.models import DocumentMetadata

logger = logging.getLogger(__name__)

HTML_PLUGINS = ["table", "strikethrough", "url"]

# Jive's syntax highlighter knows fewer languages than markdown authors use.
JIVE_LANGUAGE_ALIASES = {
    "yaml": "javascript",
    "yml": "javascript",
    "html": "markup",
    "xml": "markup",
}


def resolve_link(context: Context, source: Path, url: str) -> str:
    """Map a relative link in *source* to the linked document's remote URI.

    The link is looked up relative to the source file first, then to the
    project base.  *url* is returned unchanged unless it names an existing,
    tracked file that has been published.
    """
    if not url or url.startswith(("/", "#")) or urlparse(url).scheme:
        return url

    link_path = unquote(url.split("#", 1)[0])
    if not link_path:
        return url

    for base in (source.parent, context.project_base):
        candidate = Path(os.path.normpath(base / link_path))
        if not candidate.is_file():
            continue
        metadata = context.is_indexed(context.relative_path(candidate))
        if metadata is None:
            continue
        if metadata.remote_uri is None:
            logger.debug(
                "%s is tracked but not published yet, keeping link %s",
                metadata.source_path,
                url,
            )
            return url
        return metadata.remote_uri
    return url


class DocumentRenderer(mistune.HTMLRenderer):
    """HTML renderer for one tracked document.

    Args:
        context: Project context used to look up linked documents.
        source: Absolute path of the markdown file being rendered.
    """

    def __init__(self, context: Context, source: Path):
        super().__init__(escape=True)
        self.context = context
        self.source = source

    def link(self, text: str, url: str, title=None) -> str:
        return super().link(text, resolve_link(self.context, self.source, url), title)


class JiveDocumentRenderer(DocumentRenderer):
    """Renders code blocks the way the Jive editor stores them.

    Each code line ends in ``<br />`` and the ``pre`` element carries the
    highlighter's ``language-<name> line-numbers`` class.
    """

    def block_code(self, code: str, info: str | None = None) -> str:
        language = "none"
        if info and info.strip():
            language = info.strip().split(None, 1)[0]
            language = JIVE_LANGUAGE_ALIASES.get(language, language)

        lines = code.rstrip("\n").split("\n")
        body = "".join(escape(line) + "<br />\n" for line in lines)
        return (
            f'<pre class="language-{escape(language)} line-numbers"><code>\n'
            f"{body}</code></pre>\n"
        )


RENDERERS: dict[str, type[DocumentRenderer]] = {
    "jive": JiveDocumentRenderer,
}


def renderer_for(context: Context, source: Path) -> DocumentRenderer:
    """Build the renderer matching the configured remote adapter."""
    factory = RENDERERS.get(context.config.remote.adapter, DocumentRenderer)
    return factory(context, source)


def markdown_to_html(
    markdown_text: str, renderer: mistune.HTMLRenderer | None = None
) -> str:
    """
    Convert Markdown text to an HTML fragment.

    Args:
        markdown_text: Markdown formatted text
        renderer: Renderer to use instead of mistune's plain HTML one

    Returns:
        HTML formatted text
    """
    markdown = mistune.create_markdown(
        renderer=renderer if renderer is not None else "html",
        plugins=HTML_PLUGINS,
    )
    result: str = markdown(markdown_text)  # type: ignore[assignment]
    return result


class MarkdownConverter:
    """Renders markdown source files to ``<stem>.html``.

    Args:
        output_dir: Directory for converted files.  ``None`` writes each
            file next to its source.
        context: Project context.  When given, links to tracked documents
            are rewritten and the remote's renderer is used.
    """

    def __init__(
        self, output_dir: Path | None = None, context: Context | None = None
    ):
        self.output_dir = output_dir
        self.context = context

    def converted_path(self, source: Path) -> Path:
        """Where the converted artifact for *source* is written."""
        directory = self.output_dir if self.output_dir is not None else source.parent
        return directory / f"{source.stem}.html"

    def convert(self, source: Path, target: Path | None = None) -> Path:
        """Convert *source* and return the path of the written HTML file.

        Raises:
            ConversionError: The source cannot be read or the output written.
        """
        target = target if target is not None else self.converted_path(source)
        try:
            text, encoding = read_file_with_encoding(source)
        except OSError as exc:
            raise ConversionError(f"Unable to read {source}: {exc}") from exc

        renderer = (
            renderer_for(self.context, source) if self.context is not None else None
        )
        html = markdown_to_html(text, renderer)
        try:
            write_file(target, html)
        except OSError as exc:
            raise ConversionError(f"Unable to write {target}: {exc}") from exc

        logger.debug("Converted %s (%s) to %s", source, encoding, target)
        return target


def convert_document(
    context: Context,
    converter: MarkdownConverter,
    metadata: DocumentMetadata,
) -> Path:
    """Convert one tracked document and record the result.

    The converted path is cached on *context* for the rest of the run and
    ``convertedChecksum`` is set from the written file.
    """
    source = context.source_path(metadata)
    try:
        target = converter.convert(source)
    except ConversionError as exc:
        exc.metadata = metadata
        raise
    context.set_converted_path(metadata, target)
    metadata.converted_checksum = file_checksum(target)
    return target


def convert_documents(
    context: Context, converter: MarkdownConverter | None = None
) -> int:
    """Convert every tracked, non-deleted document to HTML.

    Nothing is converted when the remote renders markdown natively.

    Returns:
        Number of documents converted.

    Raises:
        BatchProcessError: One or more documents failed to convert.
    """
    if context.config.remote.supports_native_markdown:
        logger.info("Remote supports native markdown, nothing to convert")
        return 0

    converter = converter or MarkdownConverter(context.output_path, context)
    documents = [m for m in context.documents if m.deleted_on is None]
    converted: list[Path] = []

    def task(metadata: DocumentMetadata) -> None:
        logger.debug("Converting %s", metadata.source_path)
        converted.append(convert_document(context, converter, metadata))

    def after_batch(errors) -> bool:
        logger.info(
            "%d out of %d files converted successfully.",
            len(converted),
            len(documents),
        )
        return EXCEPTIONS_UNHANDLED

    BatchProcess().execute(lambda: documents, task, after_batch)
    return len(converted)
