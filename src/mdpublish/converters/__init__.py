"""Conversion of markdown sources to the artifact format remotes accept."""

from .html import (
    RENDERERS,
    DocumentRenderer,
    JiveDocumentRenderer,
    MarkdownConverter,
    convert_document,
    convert_documents,
    markdown_to_html,
    renderer_for,
    resolve_link,
)

__all__ = [
    "RENDERERS",
    "DocumentRenderer",
    "JiveDocumentRenderer",
    "MarkdownConverter",
    "convert_document",
    "convert_documents",
    "markdown_to_html",
    "renderer_for",
    "resolve_link",
]
