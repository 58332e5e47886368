"""mdpublish: publish markdown documents to a remote content repository."""

__version__ = "0.1.0"
