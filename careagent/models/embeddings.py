"""
Sentence embeddings for guideline chunks and search queries.

Dense vectors are what let "heart attack" find a guideline written about
"myocardial infarction". Vectors come back L2-normalised, so an inner
product between two of them is their cosine similarity.

```python
from careagent.models.embeddings import EmbeddingModel

encoder = EmbeddingModel()
encoder.embed("Anticoagulation in atrial fibrillation").shape  # (384,)
```
"""

import logging
import time
from typing import Dict, List, Optional

import numpy as np
import torch
from sentence_transformers import SentenceTransformer

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "sentence-transformers/all-MiniLM-L6-v2"

# Query vectors kept per instance; tool calls often repeat a query
QUERY_CACHE_SIZE = 256


def resolve_device(device: str = "auto") -> str:
    if device != "auto":
        return device
    return "cuda" if torch.cuda.is_available() else "cpu"


class EmbeddingModel:
    """
    SentenceTransformers encoder used by the FAISS store.

    Parameters:
        model_name: HuggingFace model id (default: all-MiniLM-L6-v2)
        device: 'cpu', 'cuda' or 'auto'
    """

    def __init__(self, model_name: Optional[str] = None, device: str = "auto"):
        self.model_name = model_name or DEFAULT_MODEL
        self.device = resolve_device(device)

        started = time.time()
        self.model = SentenceTransformer(self.model_name, device=self.device)
        self.dimension = self.model.get_sentence_embedding_dimension()
        logger.info(
            "Loaded %s on %s in %.2fs (dim=%d)",
            self.model_name, self.device, time.time() - started, self.dimension
        )

        self._query_cache: Dict[str, np.ndarray] = {}

    def _encode(self, texts, batch_size: int = 32, show_progress: bool = False) -> np.ndarray:
        return self.model.encode(
            texts,
            batch_size=batch_size,
            convert_to_numpy=True,
            normalize_embeddings=True,
            show_progress_bar=show_progress
        )

    def embed(self, text: str) -> np.ndarray:
        """Embed one query string. Returns shape (dimension,)."""
        cached = self._query_cache.get(text)
        if cached is not None:
            return cached

        vector = self._encode(text)
        if len(self._query_cache) >= QUERY_CACHE_SIZE:
            self._query_cache.pop(next(iter(self._query_cache)))
        self._query_cache[text] = vector
        return vector

    def embed_batch(self, texts: List[str], show_progress: bool = False) -> np.ndarray:
        """Embed many chunks at once. Returns shape (len(texts), dimension)."""
        batch_size = 64 if self.device == "cuda" else 32
        return self._encode(texts, batch_size=batch_size, show_progress=show_progress)

    def describe(self) -> Dict[str, object]:
        return {
            'model_name': self.model_name,
            'device': self.device,
            'dimension': self.dimension,
            'max_seq_length': self.model.max_seq_length,
        }
