"""
Tool-Calling Agent

The agentic alternative to hardcoded branching. Instead of the application
deciding which prompt to use, the model receives the list of available tools
and decides which ones to call:

    1. Send system + user messages together with the tool schemas
    2. If the model answers in text, that is the answer
    3. If it requests tool calls, run each one, append the results as
       `tool` messages, and call the model again
    4. Stop after `max_iterations` tool-requesting turns; the final call is
       made without tools so the model has to answer

Tool failures are returned to the model as error payloads rather than raised,
so it can explain what it could not verify.
"""

import logging
import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from ..tools.registry import ToolRegistry, ToolResult
from .prompts import AGENT_SYSTEM_PROMPT, format_user_message

logger = logging.getLogger(__name__)

EXHAUSTED_ANSWER = "Unable to complete the request within the tool-call limit."


@dataclass
class ToolInvocation:
    """One tool call made during a run."""
    name: str
    arguments: Dict[str, Any]
    output: Any
    error: Optional[str]
    iteration: int

    @classmethod
    def from_result(cls, result: ToolResult, iteration: int) -> "ToolInvocation":
        return cls(result.name, result.arguments, result.output, result.error, iteration)


@dataclass
class AgentResult:
    question: str
    answer: str
    tool_calls: List[ToolInvocation] = field(default_factory=list)
    iterations: int = 0
    messages: List[Dict[str, Any]] = field(default_factory=list)
    max_iterations_reached: bool = False
    elapsed_ms: float = 0.0

    @property
    def tools_used(self) -> List[str]:
        return [call.name for call in self.tool_calls]


def tool_message(result: ToolResult, call_id: Optional[str] = None) -> Dict[str, Any]:
    """Wire-format message carrying a tool result back to the model."""
    message = {"role": "tool", "tool_name": result.name, "content": result.to_content()}
    if call_id:
        message["tool_call_id"] = call_id
    return message


class ToolCallingAgent:
    """
    Let the model choose which clinical tools to call.

    Parameters:
        llm: Chat client exposing ``chat(messages, tools=None)`` -> ChatResponse
        registry: Tools offered to the model
        system_prompt: System message for every run
        max_iterations: Maximum chat turns that may request tools
    """

    def __init__(
        self,
        llm,
        registry: ToolRegistry,
        system_prompt: str = AGENT_SYSTEM_PROMPT,
        max_iterations: int = 5
    ):
        if max_iterations < 1:
            raise ValueError("max_iterations must be at least 1")
        self.llm = llm
        self.registry = registry
        self.system_prompt = system_prompt
        self.max_iterations = max_iterations

    def run(self, question: str, patient_id: Optional[str] = None) -> AgentResult:
        start = time.time()
        messages: List[Dict[str, Any]] = [
            {"role": "system", "content": self.system_prompt},
            {"role": "user", "content": format_user_message(question, patient_id)},
        ]
        tools = self.registry.schemas()
        result = AgentResult(question=question, answer="", messages=messages)

        for iteration in range(1, self.max_iterations + 1):
            response = self.llm.chat(messages, tools=tools)
            result.iterations += 1

            if not response.has_tool_calls:
                messages.append(response.to_message())
                result.answer = response.content
                break

            messages.append(response.to_message())
            for call in response.tool_calls:
                logger.info("Iteration %d: calling %s(%s)", iteration, call.name, call.arguments)
                tool_result = self.registry.execute(call.name, call.arguments)
                messages.append(tool_message(tool_result, call.id))
                result.tool_calls.append(ToolInvocation.from_result(tool_result, iteration))
        else:
            logger.warning("Tool-call limit (%d) reached, forcing a final answer", self.max_iterations)
            response = self.llm.chat(messages)
            result.iterations += 1
            result.max_iterations_reached = True
            result.answer = response.content or EXHAUSTED_ANSWER
            messages.append({"role": "assistant", "content": result.answer})

        result.elapsed_ms = (time.time() - start) * 1000
        return result
