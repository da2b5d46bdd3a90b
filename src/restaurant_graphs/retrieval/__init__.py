"""Document storage and keyword retrieval."""

from .document import Document, DocumentType
from .document_store import DocumentStore, create_document_store, extract_title, tokenize

__all__ = [
    "Document", "DocumentType",
    "DocumentStore", "create_document_store", "extract_title", "tokenize",
]
