"""
BM25 Keyword Search over Guideline Chunks

Keyword search catches exact clinical terms that embeddings can blur:
drug names ("apixaban"), lab tests ("eGFR"), acronyms ("CKD", "AF").
It needs no model download, which makes it the default strategy for the
fetch_guidelines tool.

Scoring (Okapi BM25, with the +1 IDF variant so common terms stay positive):

    idf(t)      = ln(1 + (N - n_t + 0.5) / (n_t + 0.5))
    score(D, Q) = sum over t in Q of
                  idf(t) * tf(t, D) * (k1 + 1) / (tf(t, D) + k1 * (1 - b + b * |D| / avgdl))

The index is an inverted list (term -> [(chunk position, term count)]), so a
query only touches chunks that share at least one term with it.
"""

import math
import re
from collections import Counter, defaultdict
from typing import Dict, List, Optional, Tuple

from .document_processor import Document

TOKEN_PATTERN = re.compile(r'\b\w\w+\b')


def tokenize(text: str) -> List[str]:
    """Lower-case word tokens of two or more characters ("af", "mi" survive)."""
    return TOKEN_PATTERN.findall(text.lower())


class BM25Retriever:
    """
    In-memory BM25 index over guideline chunks.

    Parameters:
        documents: Chunks to index (may be empty)
        k1: Term frequency saturation (default: 1.5)
        b: Length normalisation strength, 0..1 (default: 0.75)
    """

    def __init__(
        self,
        documents: Optional[List[Document]] = None,
        k1: float = 1.5,
        b: float = 0.75
    ):
        self.k1 = k1
        self.b = b
        self.documents: List[Document] = list(documents or [])

        self.postings: Dict[str, List[Tuple[int, int]]] = defaultdict(list)
        self.lengths: List[int] = []
        self.avgdl = 0.0
        self.idf: Dict[str, float] = {}

        self._index()

    def _index(self) -> None:
        for position, document in enumerate(self.documents):
            counts = Counter(tokenize(document.content))
            self.lengths.append(sum(counts.values()))
            for term, count in counts.items():
                self.postings[term].append((position, count))

        total = len(self.documents)
        if total:
            self.avgdl = sum(self.lengths) / total
        self.idf = {
            term: math.log(1.0 + (total - len(hits) + 0.5) / (len(hits) + 0.5))
            for term, hits in self.postings.items()
        }

    def _scores(self, query: str) -> Dict[int, float]:
        scores: Dict[int, float] = defaultdict(float)
        avgdl = self.avgdl or 1.0
        for term in set(tokenize(query)):
            idf = self.idf.get(term)
            if idf is None:
                continue
            for position, tf in self.postings[term]:
                norm = self.k1 * (1 - self.b + self.b * self.lengths[position] / avgdl)
                scores[position] += idf * tf * (self.k1 + 1) / (tf + norm)
        return scores

    def search(
        self,
        query: str,
        top_k: int = 5,
        score_threshold: float = 0.0
    ) -> List[Tuple[Document, float]]:
        """
        Rank chunks against a free-text query.

        Returns:
            Up to ``top_k`` (Document, score) pairs, best first. Chunks that
            share no term with the query are never returned.
        """
        ranked = sorted(
            ((position, score) for position, score in self._scores(query).items()
             if score > 0 and score >= score_threshold),
            key=lambda item: item[1],
            reverse=True
        )
        return [(self.documents[position], score) for position, score in ranked[:top_k]]

    def get_statistics(self) -> Dict:
        return {
            'num_documents': len(self.documents),
            'avg_doc_length': self.avgdl,
            'vocab_size': len(self.idf),
            'k1': self.k1,
            'b': self.b,
        }
