"""Rule-based and agentic assistants."""

from .rule_based import RuleBasedAssistant, RuleBasedResult, BRANCH_DRUG_INTERACTION, BRANCH_GENERAL
from .tool_calling_agent import ToolCallingAgent, AgentResult, ToolInvocation, tool_message

__all__ = [
    'RuleBasedAssistant',
    'RuleBasedResult',
    'BRANCH_DRUG_INTERACTION',
    'BRANCH_GENERAL',
    'ToolCallingAgent',
    'AgentResult',
    'ToolInvocation',
    'tool_message'
]
