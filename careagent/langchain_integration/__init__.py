"""
LangChain and LangGraph Integration

Wrappers around existing components for use in LangChain pipelines, and a
LangGraph version of the tool-calling loop. No changes to tool behavior.
"""

from .wrappers import GuidelineRetrieverWrapper, registry_to_langchain_tools
from .graph import ClinicalAgentGraph, ClinicalAgentState, create_clinical_agent_graph

__all__ = [
    'GuidelineRetrieverWrapper',
    'registry_to_langchain_tools',
    'ClinicalAgentGraph',
    'ClinicalAgentState',
    'create_clinical_agent_graph'
]
