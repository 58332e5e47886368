"""Generic REST resource client shared by the remote adapters."""

from .client import DEFAULT_PAGE_SIZE, PagedSequence, RemoteResource

__all__ = ["DEFAULT_PAGE_SIZE", "PagedSequence", "RemoteResource"]
