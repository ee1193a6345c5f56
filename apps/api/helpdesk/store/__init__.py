from .base import DocumentStore, Where
from .sql import SqlDocumentStore

__all__ = ["DocumentStore", "SqlDocumentStore", "Where"]
