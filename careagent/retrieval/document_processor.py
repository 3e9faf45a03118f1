"""
Guideline loading and chunking.

Guidelines arrive either as one JSON file or as a directory of
``guideline_*.txt`` files. Each guideline is flattened to text, split on
sentence boundaries and packed into chunks of roughly ``chunk_size``
characters. The last sentences of a chunk (up to ``chunk_overlap``
characters) are repeated at the start of the next one, so a
recommendation that straddles a boundary stays retrievable.

```python
processor = DocumentProcessor(chunk_size=450, chunk_overlap=120)
chunks = processor.load_and_chunk_guidelines("data/guidelines/clinical_guidelines.json")
```
"""

import json
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Iterator, List, Union

# Structured guideline fields rendered into chunk text, in order
STRUCTURED_FIELDS = [
    ('summary', 'Summary'),
    ('recommendations', 'Recommendations'),
    ('key_medications', 'Key Medications'),
    ('contraindications', 'Contraindications'),
    ('monitoring', 'Monitoring'),
]

# Abbreviations whose trailing period is not a sentence end
_ABBREVIATIONS = ['e.g.', 'i.e.', 'vs.', 'etc.', 'Dr.', 'b.i.d.', 't.i.d.', 'q.d.']
_SENTENCE_BOUNDARY = re.compile(r'(?<=[.!?])\s+(?=[A-Z0-9])')
_TXT_ID = re.compile(r'guideline_(\d+)')


@dataclass
class Document:
    """
    One retrievable guideline chunk.

    metadata keys: guideline_id, title, category, chunk_index, total_chunks,
    keywords, source.
    """
    content: str
    metadata: Dict[str, Any]

    @property
    def doc_key(self) -> tuple:
        """Identity that survives serialisation: (guideline_id, chunk_index)."""
        return (self.metadata.get('guideline_id'), self.metadata.get('chunk_index'))

    def __repr__(self) -> str:
        guideline_id, chunk_index = self.doc_key
        return (
            f"Document({guideline_id}#{chunk_index} of {self.metadata.get('total_chunks')}, "
            f"{len(self.content)} chars)"
        )


def split_sentences(text: str) -> List[str]:
    """Split on ., ! or ? followed by a capital or digit, sparing known abbreviations."""
    for i, abbreviation in enumerate(_ABBREVIATIONS):
        text = text.replace(abbreviation, f"\x00{i}\x00")

    sentences = []
    for piece in _SENTENCE_BOUNDARY.split(text):
        for i, abbreviation in enumerate(_ABBREVIATIONS):
            piece = piece.replace(f"\x00{i}\x00", abbreviation)
        piece = piece.strip()
        if piece:
            sentences.append(piece)
    return sentences


def pack_sentences(sentences: List[str], chunk_size: int, chunk_overlap: int) -> Iterator[str]:
    """Greedily group sentences into chunks, carrying trailing sentences forward as overlap."""
    window: List[str] = []
    for sentence in sentences:
        if window and sum(map(len, window)) + len(sentence) > chunk_size:
            yield ' '.join(window)
            carried: List[str] = []
            while window and sum(map(len, carried)) + len(window[-1]) <= chunk_overlap:
                carried.insert(0, window.pop())
            # Carrying the whole emitted chunk would only repeat it
            window = carried if window else []
        window.append(sentence)
    if window:
        yield ' '.join(window)


def guideline_text(guideline: Dict[str, Any]) -> str:
    """
    Flatten a guideline to one line of text.

    A ``content`` field is used as-is. Otherwise the title and the structured
    fields are rendered as "Label: item. item." in STRUCTURED_FIELDS order.
    """
    if guideline.get('content'):
        raw = guideline['content']
    else:
        parts = [f"Title: {guideline['title']}."] if guideline.get('title') else []
        for key, label in STRUCTURED_FIELDS:
            value = guideline.get(key)
            if isinstance(value, list):
                items = [str(item).strip().rstrip('.') for item in value if str(item).strip()]
                value = '. '.join(items) + '.' if items else ''
            if value:
                parts.append(f"{label}: {value}")
        raw = '\n'.join(parts)
    return ' '.join(line.strip() for line in raw.splitlines() if line.strip())


def read_text_guideline(path: Path, fallback_number: int) -> Dict[str, Any]:
    """
    Parse a guideline_NNN.txt file. Line one is the title (leading '#'
    stripped); ``Category:`` and ``Keywords:`` may appear in the next lines.
    """
    content = path.read_text(encoding='utf-8')
    lines = content.splitlines()
    record: Dict[str, Any] = {
        'title': lines[0].lstrip('# ').strip() if lines else path.stem,
        'category': 'General',
        'keywords': [],
        'content': content,
        'source': path.name,
    }
    for line in lines[1:6]:
        field, _, value = line.partition(':')
        field = field.strip().lower()
        if field == 'category':
            record['category'] = value.strip()
        elif field == 'keywords':
            record['keywords'] = [k.strip() for k in value.split(',') if k.strip()]

    match = _TXT_ID.search(path.name)
    record['guideline_id'] = f"GL_{int(match.group(1)) if match else fallback_number:03d}"
    return record


def load_guidelines(path: Union[str, Path]) -> List[Dict[str, Any]]:
    """
    Read guideline records from a JSON file (a list, or {"guidelines": [...]})
    or from a directory of guideline_*.txt files.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Guidelines file or directory not found: {path}")

    if path.is_dir():
        files = sorted(path.glob("guideline_*.txt"))
        return [read_text_guideline(f, n) for n, f in enumerate(files, start=1)]

    with open(path, 'r', encoding='utf-8') as f:
        data = json.load(f)
    return data.get('guidelines', []) if isinstance(data, dict) else data


class DocumentProcessor:
    """
    Turns guideline records into Document chunks.

    Parameters:
        chunk_size: Target characters per chunk (default: 450). Approximate,
            because chunks only break between sentences.
        chunk_overlap: Characters of trailing sentences repeated in the next
            chunk (default: 120). Must be smaller than chunk_size.
    """

    def __init__(self, chunk_size: int = 450, chunk_overlap: int = 120):
        if chunk_size <= 0:
            raise ValueError("chunk_size must be positive")
        if not 0 <= chunk_overlap < chunk_size:
            raise ValueError("chunk_overlap must be in [0, chunk_size)")
        self.chunk_size = chunk_size
        self.chunk_overlap = chunk_overlap
        self.num_guidelines = 0
        self.num_chunks = 0
        self.total_chars = 0

    def load_and_chunk_guidelines(self, filepath: str) -> List[Document]:
        return self.chunk_guidelines(load_guidelines(filepath))

    def chunk_guidelines(self, guidelines: List[Dict[str, Any]]) -> List[Document]:
        chunks = [doc for guideline in guidelines for doc in self.chunk_guideline(guideline)]
        self.num_guidelines = len(guidelines)
        self.num_chunks = len(chunks)
        self.total_chars = sum(len(doc.content) for doc in chunks)
        return chunks

    def chunk_guideline(self, guideline: Dict[str, Any]) -> List[Document]:
        texts = list(pack_sentences(
            split_sentences(guideline_text(guideline)),
            self.chunk_size,
            self.chunk_overlap
        ))
        guideline_id = guideline.get('guideline_id', 'GL_UNKNOWN')
        shared = {
            'guideline_id': guideline_id,
            'title': guideline.get('title', guideline_id),
            'category': guideline.get('category', 'General'),
            'total_chunks': len(texts),
            'keywords': guideline.get('keywords', []),
            'source': guideline.get('source', 'Unknown'),
        }
        return [Document(content=text, metadata={**shared, 'chunk_index': i}) for i, text in enumerate(texts)]

    def get_statistics(self) -> Dict[str, Any]:
        return {
            'num_guidelines': self.num_guidelines,
            'num_chunks': self.num_chunks,
            'avg_chunks_per_guideline': self.num_chunks / self.num_guidelines if self.num_guidelines else 0,
            'avg_chunk_size': self.total_chars / self.num_chunks if self.num_chunks else 0,
            'chunk_size': self.chunk_size,
            'chunk_overlap': self.chunk_overlap,
        }
