import copy
from pathlib import Path

import pytest

from careagent.models.ollama_model import ChatResponse, ToolCall
from careagent.retrieval.bm25_retriever import BM25Retriever
from careagent.retrieval.document_processor import DocumentProcessor
from careagent.tools.clinical_tools import DrugInteractionChecker, PatientRecordStore, build_clinical_registry

PROJECT_ROOT = Path(__file__).parent.parent

SAMPLE_GUIDELINES = [
    {
        "guideline_id": "GL_AF",
        "title": "Atrial Fibrillation Anticoagulation",
        "category": "Cardiology",
        "keywords": ["atrial fibrillation", "apixaban"],
        "summary": "Use CHA2DS2-VASc to estimate stroke risk in atrial fibrillation.",
        "recommendations": [
            "Apixaban is preferred over warfarin for most patients",
            "Avoid NSAIDs such as ibuprofen in anticoagulated patients",
        ],
    },
    {
        "guideline_id": "GL_DM",
        "title": "Type 2 Diabetes",
        "category": "Endocrinology",
        "summary": "Metformin is first-line therapy for type 2 diabetes.",
        "contraindications": ["Stop metformin when eGFR is below 30"],
    },
    {
        "guideline_id": "GL_CAP",
        "title": "Community-Acquired Pneumonia",
        "category": "Infectious Disease",
        "content": "Use amoxicillin for low-severity pneumonia. Clarithromycin interacts with simvastatin.",
    },
]

SAMPLE_PATIENTS = [
    {
        "patient_id": "P001",
        "name": "Test Patient",
        "age": 78,
        "sex": "female",
        "conditions": ["atrial fibrillation"],
        "medications": ["apixaban 5 mg twice daily"],
        "allergies": [],
    },
]

SAMPLE_INTERACTIONS = {
    "aliases": {"advil": "ibuprofen", "eliquis": "apixaban"},
    "interactions": [
        {"drugs": ["apixaban", "ibuprofen"], "severity": "major", "description": "Bleeding risk."},
        {"drugs": ["simvastatin", "clarithromycin"], "severity": "contraindicated", "description": "Myopathy."},
        {"drugs": ["amlodipine", "simvastatin"], "severity": "minor", "description": "Raised statin levels."},
    ],
}


class ScriptedLLM:
    """Chat client that replays canned responses and records every call."""

    def __init__(self, responses):
        self.responses = list(responses)
        self.calls = []

    def chat(self, messages, tools=None, temperature=None, max_tokens=None):
        self.calls.append({"messages": copy.deepcopy(messages), "tools": tools})
        if not self.responses:
            raise AssertionError("ScriptedLLM ran out of responses")
        return self.responses.pop(0)


def text(content):
    return ChatResponse(content=content)


def calls(*pairs):
    return ChatResponse(content="", tool_calls=[ToolCall(name, args) for name, args in pairs])


@pytest.fixture
def guideline_docs():
    return DocumentProcessor(chunk_size=200, chunk_overlap=50).chunk_guidelines(copy.deepcopy(SAMPLE_GUIDELINES))


@pytest.fixture
def bm25(guideline_docs):
    return BM25Retriever(guideline_docs)


@pytest.fixture
def patient_store():
    return PatientRecordStore(copy.deepcopy(SAMPLE_PATIENTS))


@pytest.fixture
def interaction_checker():
    return DrugInteractionChecker(copy.deepcopy(SAMPLE_INTERACTIONS))


@pytest.fixture
def registry(bm25, patient_store, interaction_checker):
    return build_clinical_registry(bm25, patient_store, interaction_checker)


@pytest.fixture
def make_llm():
    return ScriptedLLM
