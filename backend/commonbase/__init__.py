"""Personal knowledge base with embedding-backed retrieval."""

__version__ = "0.1.0"
