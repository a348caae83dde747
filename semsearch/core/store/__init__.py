"""Document collection backends."""

from .base import Document, DocumentCollection, SearchIndex
from .chromadb_impl import ChromaDocumentCollection
from .factory import create_collection
from .memory_impl import InMemoryDocumentCollection

__all__ = [
    "ChromaDocumentCollection",
    "Document",
    "DocumentCollection",
    "InMemoryDocumentCollection",
    "SearchIndex",
    "create_collection",
]
