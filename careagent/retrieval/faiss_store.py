"""
FAISS vector index over guideline chunks: the "vector index" half of RAG.

Chunks are embedded once and searched by cosine similarity at question time
(IndexFlatIP over L2-normalised vectors). The Document list is kept in the
same order as the vectors, so FAISS row i is self.documents[i].

On disk an index directory holds:
    index.faiss   the FAISS index
    chunks.json   {"dimension": int, "documents": [{"content", "metadata"}, ...]}
"""

import json
import logging
import time
from pathlib import Path
from typing import List, Tuple

import faiss
import numpy as np

from .document_processor import Document, DocumentProcessor

logger = logging.getLogger(__name__)

INDEX_FILE = "index.faiss"
CHUNKS_FILE = "chunks.json"


def _as_float32_rows(vectors) -> np.ndarray:
    rows = np.array(vectors, dtype='float32', copy=True)
    if rows.ndim == 1:
        rows = rows.reshape(1, -1)
    faiss.normalize_L2(rows)
    return rows


class FAISSVectorStore:
    """
    Semantic search over guideline chunks.

    Parameters:
        embedding_model: Anything with ``embed(text)``, ``embed_batch(texts)``
            and a ``dimension`` attribute (normally EmbeddingModel)
    """

    def __init__(self, embedding_model):
        self.embedding_model = embedding_model
        self.dimension = embedding_model.dimension
        self.index = None
        self.documents: List[Document] = []

    def build_index(self, documents: List[Document]) -> None:
        if not documents:
            raise ValueError("Cannot build a FAISS index from zero documents")

        started = time.time()
        vectors = _as_float32_rows(self.embedding_model.embed_batch([d.content for d in documents]))
        if vectors.shape != (len(documents), self.dimension):
            raise ValueError(
                f"Embedder returned shape {vectors.shape}, expected ({len(documents)}, {self.dimension})"
            )

        index = faiss.IndexFlatIP(self.dimension)
        index.add(vectors)
        self.index = index
        self.documents = list(documents)
        logger.info("Indexed %d chunks in %.2fs", len(documents), time.time() - started)

    def build_index_from_guidelines(
        self,
        guidelines_path: str,
        chunk_size: int = 450,
        chunk_overlap: int = 120
    ) -> None:
        """Chunk a guidelines JSON file (or guideline_*.txt directory) and index it."""
        processor = DocumentProcessor(chunk_size=chunk_size, chunk_overlap=chunk_overlap)
        chunks = processor.load_and_chunk_guidelines(guidelines_path)
        logger.info("Chunked %d guidelines into %d chunks", processor.num_guidelines, len(chunks))
        self.build_index(chunks)

    def search(
        self,
        query: str,
        top_k: int = 5,
        score_threshold: float = 0.0
    ) -> List[Tuple[Document, float]]:
        """
        Nearest chunks to a query by cosine similarity, best first.

        ``top_k`` is clamped to the number of indexed chunks.
        """
        if self.index is None:
            raise ValueError("Index not built. Call build_index() or load_index() first.")

        k = min(top_k, self.index.ntotal)
        if k <= 0:
            return []

        scores, rows = self.index.search(_as_float32_rows(self.embedding_model.embed(query)), k)
        return [
            (self.documents[row], float(score))
            for score, row in zip(scores[0], rows[0])
            # -1 pads rows when the index holds fewer than k vectors
            if row >= 0 and score >= score_threshold
        ]

    def save_index(self, output_dir: str) -> None:
        if self.index is None:
            raise ValueError("Index not built, nothing to save")

        target = Path(output_dir)
        target.mkdir(parents=True, exist_ok=True)
        faiss.write_index(self.index, str(target / INDEX_FILE))

        payload = {
            'dimension': self.dimension,
            'documents': [{'content': d.content, 'metadata': d.metadata} for d in self.documents],
        }
        with open(target / CHUNKS_FILE, 'w', encoding='utf-8') as f:
            json.dump(payload, f, ensure_ascii=False)

        logger.info("Saved %d vectors to %s", self.index.ntotal, target)

    def load_index(self, index_dir: str) -> None:
        """
        Load an index written by save_index().

        Raises:
            FileNotFoundError: If either file is missing
            ValueError: If the saved dimension or row count does not match
        """
        source = Path(index_dir)
        for name in (INDEX_FILE, CHUNKS_FILE):
            if not (source / name).exists():
                raise FileNotFoundError(f"Missing {name} in index directory {source}")

        with open(source / CHUNKS_FILE, 'r', encoding='utf-8') as f:
            payload = json.load(f)
        if payload.get('dimension') != self.dimension:
            raise ValueError(
                f"Index at {source} has dimension {payload.get('dimension')}, "
                f"embedding model has {self.dimension}. Rebuild the index."
            )

        index = faiss.read_index(str(source / INDEX_FILE))
        documents = [Document(content=d['content'], metadata=d['metadata']) for d in payload['documents']]
        if index.ntotal != len(documents):
            raise ValueError(f"Index at {source} has {index.ntotal} vectors for {len(documents)} chunks")

        self.index = index
        self.documents = documents
        logger.info("Loaded %d vectors from %s", index.ntotal, source)

    def get_statistics(self) -> dict:
        if self.index is None:
            return {'status': 'not_built'}
        return {
            'status': 'ready',
            'total_vectors': self.index.ntotal,
            'dimension': self.dimension,
            'index_type': type(self.index).__name__,
        }
