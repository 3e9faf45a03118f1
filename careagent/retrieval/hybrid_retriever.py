"""
Hybrid guideline search: FAISS and BM25 fused with Reciprocal Rank Fusion.

Each ranked list contributes ``weight / (k + rank)`` to a chunk's score, so
chunks that both the embedding search and the keyword search rank highly
rise to the top, while raw scores from the two systems never need to be
put on a common scale.
"""

from typing import Dict, List, Optional, Sequence, Tuple

from .bm25_retriever import BM25Retriever
from .document_processor import Document
from .faiss_store import FAISSVectorStore

STRATEGIES = ('semantic', 'keyword', 'hybrid')

Hit = Tuple[Document, float]


def _source_info(faiss_hit: Optional[Tuple[int, float]], bm25_hit: Optional[Tuple[int, float]]) -> Dict:
    return {
        'faiss_rank': faiss_hit[0] if faiss_hit else None,
        'bm25_rank': bm25_hit[0] if bm25_hit else None,
        'faiss_score': faiss_hit[1] if faiss_hit else 0.0,
        'bm25_score': bm25_hit[1] if bm25_hit else 0.0,
    }


def reciprocal_rank_fusion(
    ranked_lists: Dict[str, Tuple[float, Sequence[Hit]]],
    k: int = 60
) -> List[Tuple[Document, float, Dict[str, Tuple[int, float]]]]:
    """
    Fuse several ranked hit lists.

    Args:
        ranked_lists: label -> (weight, hits best first)
        k: RRF smoothing constant

    Returns:
        (Document, fused score, {label: (rank, original score)}) best first.
        Chunks are matched on Document.doc_key; only the first occurrence
        of a chunk within one list counts.
    """
    fused: Dict[tuple, List] = {}
    for label, (weight, hits) in ranked_lists.items():
        for rank, (document, score) in enumerate(hits, start=1):
            entry = fused.setdefault(document.doc_key, [document, 0.0, {}])
            if label in entry[2]:
                continue
            entry[1] += weight / (k + rank)
            entry[2][label] = (rank, score)

    return sorted((tuple(entry) for entry in fused.values()), key=lambda item: item[1], reverse=True)


class HybridRetriever:
    """
    Semantic plus keyword retrieval over the same guideline chunks.

    Parameters:
        faiss_store: Built or loaded FAISS store
        bm25_retriever: BM25 index over the same chunks
        semantic_weight: RRF weight of the FAISS ranking
        keyword_weight: RRF weight of the BM25 ranking
        k: RRF constant
    """

    def __init__(
        self,
        faiss_store: FAISSVectorStore,
        bm25_retriever: BM25Retriever,
        semantic_weight: float = 0.5,
        keyword_weight: float = 0.5,
        k: int = 60
    ):
        self.faiss_store = faiss_store
        self.bm25_retriever = bm25_retriever
        self.semantic_weight = semantic_weight
        self.keyword_weight = keyword_weight
        self.k = k

    def search(
        self,
        query: str,
        top_k: int = 5,
        faiss_top_k: int = 20,
        bm25_top_k: int = 20
    ) -> List[Tuple[Document, float, Dict]]:
        """
        Fused search. Each hit carries a source_info dict with the rank and
        raw score the chunk got from each retriever (None / 0.0 if absent).
        """
        fused = reciprocal_rank_fusion(
            {
                'faiss': (self.semantic_weight, self.faiss_store.search(query, top_k=faiss_top_k)),
                'bm25': (self.keyword_weight, self.bm25_retriever.search(query, top_k=bm25_top_k)),
            },
            k=self.k
        )
        return [
            (document, score, _source_info(sources.get('faiss'), sources.get('bm25')))
            for document, score, sources in fused[:top_k]
        ]

    def search_with_strategy(
        self,
        query: str,
        strategy: str = "hybrid",
        top_k: int = 5
    ) -> List[Tuple[Document, float, Dict]]:
        """Run one of 'semantic', 'keyword' or 'hybrid' with a uniform result shape."""
        if strategy not in STRATEGIES:
            raise ValueError(f"Unknown strategy '{strategy}', expected one of {STRATEGIES}")
        if strategy == "hybrid":
            return self.search(query, top_k=top_k)

        semantic = strategy == "semantic"
        retriever = self.faiss_store if semantic else self.bm25_retriever
        hits = []
        for rank, (document, score) in enumerate(retriever.search(query, top_k=top_k), start=1):
            info = _source_info((rank, score), None) if semantic else _source_info(None, (rank, score))
            hits.append((document, score, info))
        return hits

    def get_statistics(self) -> Dict:
        return {
            'semantic_weight': self.semantic_weight,
            'keyword_weight': self.keyword_weight,
            'rrf_constant_k': self.k,
            'faiss_vectors': self.faiss_store.get_statistics().get('total_vectors', 0),
            'bm25_documents': self.bm25_retriever.get_statistics().get('num_documents', 0),
        }
