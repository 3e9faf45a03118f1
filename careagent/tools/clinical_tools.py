"""
Clinical Tools

The backend functions the agent can call:

- fetch_guidelines: RAG lookup over clinical guideline chunks
- fetch_patient_history: patient record from the record store
- check_drug_interactions: pairwise lookup in an interaction table

The stores read plain JSON files from data/. In a deployment they would sit
in front of an EHR and a drug-knowledge service; the tool contracts stay the
same.
"""

import json
import logging
from itertools import combinations
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Union

from .registry import ToolRegistry

logger = logging.getLogger(__name__)

SEVERITY_ORDER = ['none', 'minor', 'moderate', 'major', 'contraindicated']


def _load_json(path: Union[str, Path]) -> Any:
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Data file not found: {path}")
    with open(path, 'r', encoding='utf-8') as f:
        return json.load(f)


class PatientRecordStore:
    """Read-only patient records keyed by patient ID (case-insensitive)."""

    def __init__(self, source: Union[str, Path, List[Dict[str, Any]]]):
        records = source if isinstance(source, list) else _load_json(source)
        self._records: Dict[str, Dict[str, Any]] = {}
        for record in records:
            patient_id = str(record['patient_id']).strip().upper()
            self._records[patient_id] = record

    def get(self, patient_id: str) -> Dict[str, Any]:
        key = str(patient_id).strip().upper()
        if key not in self._records:
            raise KeyError(f"Unknown patient '{patient_id}'")
        return dict(self._records[key])

    def ids(self) -> List[str]:
        return sorted(self._records)

    def __len__(self) -> int:
        return len(self._records)


class DrugInteractionChecker:
    """
    Pairwise drug-drug interaction lookup.

    Interaction table format (JSON):
        {
          "aliases": {"coumadin": "warfarin", ...},
          "interactions": [
            {"drugs": ["warfarin", "aspirin"], "severity": "major",
             "description": "..."}
          ]
        }

    A bare list is accepted as the ``interactions`` value with no aliases.
    """

    def __init__(self, source: Union[str, Path, Dict[str, Any], List[Dict[str, Any]]]):
        data = source if isinstance(source, (dict, list)) else _load_json(source)
        if isinstance(data, list):
            data = {'interactions': data}

        self.aliases = {k.strip().lower(): v.strip().lower() for k, v in data.get('aliases', {}).items()}
        self._table: Dict[frozenset, Dict[str, str]] = {}
        for entry in data.get('interactions', []):
            drug_a, drug_b = (self.normalize(d) for d in entry['drugs'])
            severity = entry.get('severity', 'moderate').lower()
            if severity not in SEVERITY_ORDER:
                raise ValueError(f"Unknown severity '{severity}' for {drug_a}/{drug_b}")
            self._table[frozenset((drug_a, drug_b))] = {
                'severity': severity,
                'description': entry.get('description', ''),
            }

    def normalize(self, drug: str) -> str:
        name = str(drug).strip().lower()
        return self.aliases.get(name, name)

    def check(self, drugs: Iterable[str]) -> Dict[str, Any]:
        """
        Check every unordered pair of drugs for a known interaction.

        Raises:
            TypeError: If ``drugs`` is a single string rather than a list
            ValueError: If fewer than two distinct drugs are given
        """
        if isinstance(drugs, str):
            raise TypeError(f"drugs must be a list of drug names, got the string {drugs!r}")

        normalized: List[str] = []
        for drug in drugs:
            name = self.normalize(drug)
            if name and name not in normalized:
                normalized.append(name)

        if len(normalized) < 2:
            raise ValueError("At least two distinct drugs are required to check interactions")

        interactions = []
        for drug_a, drug_b in combinations(normalized, 2):
            entry = self._table.get(frozenset((drug_a, drug_b)))
            if entry:
                interactions.append({'drug_a': drug_a, 'drug_b': drug_b, **entry})

        highest = max(
            (i['severity'] for i in interactions),
            key=SEVERITY_ORDER.index,
            default='none'
        )
        return {
            'drugs': normalized,
            'interactions': interactions,
            'highest_severity': highest,
        }


def _clamp_top_k(top_k) -> int:
    return max(1, min(int(top_k), 10))


def build_clinical_registry(
    retriever,
    patient_store: PatientRecordStore,
    interaction_checker: DrugInteractionChecker,
    registry: Optional[ToolRegistry] = None,
    default_top_k: int = 3
) -> ToolRegistry:
    """
    Register the three clinical tools against the given backends.

    Args:
        retriever: Any retriever whose ``search(query, top_k=...)`` yields
            tuples starting with (Document, score) - BM25, FAISS or hybrid
        patient_store: Patient record backend
        interaction_checker: Drug interaction backend
        registry: Existing registry to extend (a new one by default)
        default_top_k: Excerpts fetch_guidelines returns when the model
            does not ask for a number (clamped to 1..10)
    """
    registry = registry if registry is not None else ToolRegistry()
    default_top_k = _clamp_top_k(default_top_k)

    @registry.register
    def fetch_guidelines(query: str, top_k: int = default_top_k) -> List[Dict[str, Any]]:
        """Search clinical practice guidelines and return the most relevant excerpts for a question.

        Use for treatment recommendations, dosing, contraindications and monitoring.
        """
        top_k = _clamp_top_k(top_k)
        results = []
        for hit in retriever.search(query, top_k=top_k):
            doc, score = hit[0], hit[1]
            results.append({
                'guideline_id': doc.metadata.get('guideline_id'),
                'title': doc.metadata.get('title'),
                'category': doc.metadata.get('category'),
                'excerpt': doc.content,
                'score': round(float(score), 4),
            })
        logger.info("fetch_guidelines(%r) -> %d excerpts", query, len(results))
        return results

    @registry.register
    def fetch_patient_history(patient_id: str) -> Dict[str, Any]:
        """Return the patient's age, conditions, current medications, allergies and recent labs."""
        return patient_store.get(patient_id)

    @registry.register
    def check_drug_interactions(drugs: List[str]) -> Dict[str, Any]:
        """Check a list of two or more drug names for known drug-drug interactions and their severity."""
        if isinstance(drugs, str):
            # Models sometimes send "a, b" instead of ["a", "b"]
            drugs = [name for name in drugs.split(',') if name.strip()]
        return interaction_checker.check(drugs)

    return registry
