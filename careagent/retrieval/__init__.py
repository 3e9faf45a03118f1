"""
Retrieval Module for the Clinical Assistant

This module handles guideline retrieval (the "R" in RAG):
- Keyword search with BM25
- Semantic search with a FAISS vector index
- Hybrid search combining both with Reciprocal Rank Fusion

FAISS-backed classes are imported lazily by callers because they pull in
faiss and the embedding stack.
"""

from .document_processor import DocumentProcessor, Document
from .bm25_retriever import BM25Retriever

__all__ = [
    'DocumentProcessor',
    'Document',
    'BM25Retriever'
]
