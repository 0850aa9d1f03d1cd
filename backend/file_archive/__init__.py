"""File archive service: uploads to a blob store, metadata to a document store."""

__version__ = "1.0.0"
