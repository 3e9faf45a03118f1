"""
Clinical Assistant

Integrates all components into one entry point:
1. Guideline retrieval (keyword, semantic or hybrid)
2. Clinical tool registry (guidelines, patient history, drug interactions)
3. Rule-based assistant (hardcoded branching)
4. Tool-calling agent (model chooses the tools)

`load_assistant()` builds everything from config/agent_config.yaml.
"""

import logging
import time
from dataclasses import asdict
from typing import Any, Dict, Optional

from .agents.rule_based import RuleBasedAssistant
from .agents.tool_calling_agent import ToolCallingAgent
from .models.ollama_model import OllamaModel
from .retrieval.bm25_retriever import BM25Retriever
from .retrieval.document_processor import DocumentProcessor
from .tools.clinical_tools import DrugInteractionChecker, PatientRecordStore, build_clinical_registry
from .tools.registry import ToolRegistry
from .utils.config_loader import ConfigLoader, load_config

logger = logging.getLogger(__name__)

MODES = ('agentic', 'rule_based')


class ClinicalAssistant:
    """Answers a question with either the rule-based or the agentic approach."""

    def __init__(
        self,
        llm,
        registry: ToolRegistry,
        rule_based: RuleBasedAssistant,
        agent: ToolCallingAgent
    ):
        self.llm = llm
        self.registry = registry
        self.rule_based = rule_based
        self.agent = agent

    def ask(self, question: str, patient_id: Optional[str] = None, mode: str = "agentic") -> Dict[str, Any]:
        """
        Answer a clinician question.

        Args:
            question: Free-text question
            patient_id: Optional patient the question is about
            mode: 'agentic' or 'rule_based'

        Returns:
            Dictionary with the answer and how it was produced
        """
        if mode not in MODES:
            raise ValueError(f"Unknown mode '{mode}', expected one of {MODES}")
        if not question or not question.strip():
            raise ValueError("Question must not be empty")

        start = time.time()
        if mode == 'rule_based':
            if patient_id:
                logger.info("Rule-based mode ignores patient_id=%s", patient_id)
            result = self.rule_based.answer(question)
            return {
                'mode': mode,
                'question': question,
                'answer': result.answer,
                'branch': result.branch,
                'elapsed_ms': (time.time() - start) * 1000,
            }

        result = self.agent.run(question, patient_id=patient_id)
        return {
            'mode': mode,
            'question': question,
            'patient_id': patient_id,
            'answer': result.answer,
            'tool_calls': [asdict(call) for call in result.tool_calls],
            'iterations': result.iterations,
            'max_iterations_reached': result.max_iterations_reached,
            'elapsed_ms': (time.time() - start) * 1000,
        }


def build_retriever(config: ConfigLoader):
    """
    Build the guideline retriever selected by ``retrieval.strategy``.

    keyword  -> BM25 over guideline chunks (no model download)
    semantic -> FAISS index (loaded from index_dir, built if missing)
    hybrid   -> FAISS + BM25 fused with RRF
    """
    retrieval_config = config.get_retrieval_config()
    strategy = retrieval_config['strategy']
    if strategy not in ('keyword', 'semantic', 'hybrid'):
        raise ValueError(f"Unknown retrieval strategy '{strategy}'")

    processor = DocumentProcessor(
        chunk_size=retrieval_config['chunk_size'],
        chunk_overlap=retrieval_config['chunk_overlap']
    )
    documents = processor.load_and_chunk_guidelines(str(config.resolve_path('guidelines_path')))
    stats = processor.get_statistics()
    logger.info("Loaded %d guidelines as %d chunks (avg %.0f chars)",
                stats['num_guidelines'], stats['num_chunks'], stats['avg_chunk_size'])

    bm25 = BM25Retriever(documents, k1=retrieval_config['bm25_k1'], b=retrieval_config['bm25_b'])
    if strategy == 'keyword':
        return bm25

    # Embedding stack is only imported when semantic search is requested
    from .models.embeddings import EmbeddingModel
    from .retrieval.faiss_store import FAISSVectorStore
    from .retrieval.hybrid_retriever import HybridRetriever

    embedding_config = config.get_model_config().get('embedding', {})
    embedding_model = EmbeddingModel(
        model_name=embedding_config.get('model_name'),
        device=embedding_config.get('device', 'auto')
    )
    store = FAISSVectorStore(embedding_model)
    index_dir = config.resolve_path('index_dir')
    try:
        store.load_index(str(index_dir))
    except (FileNotFoundError, ValueError) as e:
        logger.warning("Rebuilding FAISS index at %s: %s", index_dir, e)
        store.build_index(documents)
        store.save_index(str(index_dir))

    if strategy == 'semantic':
        return store

    return HybridRetriever(
        store,
        BM25Retriever(store.documents, k1=retrieval_config['bm25_k1'], b=retrieval_config['bm25_b']),
        semantic_weight=retrieval_config['semantic_weight'],
        keyword_weight=retrieval_config['keyword_weight'],
        k=retrieval_config['rrf_k']
    )


def build_registry(config: ConfigLoader) -> ToolRegistry:
    """Clinical tool registry backed by the configured data files."""
    return build_clinical_registry(
        build_retriever(config),
        PatientRecordStore(config.resolve_path('patients_path')),
        DrugInteractionChecker(config.resolve_path('interactions_path')),
        default_top_k=config.get_retrieval_config()['top_k'],
    )


def load_assistant(config_path: Optional[str] = None, llm=None) -> ClinicalAssistant:
    """
    Load and initialize the complete assistant.

    Args:
        config_path: Path to YAML config file (default: config/agent_config.yaml)
        llm: Pre-built chat client; skips creating an OllamaModel

    Returns:
        Initialized ClinicalAssistant
    """
    config = load_config(config_path)

    if llm is None:
        llm = OllamaModel.from_config(config.get_llm_config())

    registry = build_registry(config)
    agent_config = config.get_agent_config()
    agent = ToolCallingAgent(
        llm,
        registry,
        max_iterations=agent_config['max_iterations']
    )

    logger.info("Assistant ready with tools: %s", ", ".join(registry.names()))
    return ClinicalAssistant(llm, registry, RuleBasedAssistant(llm), agent)
