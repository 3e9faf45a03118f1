"""
LangGraph State Machine for the Tool-Calling Agent

The same loop as ToolCallingAgent, expressed as a graph:

    assistant --(tool calls pending)--> tools --> assistant
        \\--(no tool calls)--> END

Each node wraps an existing component: the `assistant` node calls the chat
client with the registry's schemas, the `tools` node runs registry.execute.
"""

import operator
from dataclasses import asdict
from typing import Annotated, Any, Dict, List, Optional, TypedDict

from langgraph.graph import END, StateGraph

from ..agents.prompts import AGENT_SYSTEM_PROMPT, format_user_message
from ..agents.tool_calling_agent import EXHAUSTED_ANSWER, ToolInvocation, tool_message
from ..tools.registry import ToolRegistry


class ClinicalAgentState(TypedDict):
    """State object passed between graph nodes."""
    # Conversation in chat-API wire format
    messages: Annotated[List[Dict[str, Any]], operator.add]

    # Tool calls requested by the last assistant turn, not yet executed
    pending: List[Any]

    # Executed calls (ToolInvocation as dicts)
    tool_calls: Annotated[List[Dict[str, Any]], operator.add]

    iterations: int
    answer: str
    max_iterations_reached: bool


class ClinicalAgentGraph:
    """
    LangGraph orchestration of the clinical tool-calling loop.

    Parameters:
        llm: Chat client exposing ``chat(messages, tools=None)``
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
        self.graph = self._build_graph()

    def _build_graph(self):
        workflow = StateGraph(ClinicalAgentState)

        workflow.add_node("assistant", self._assistant_node)
        workflow.add_node("tools", self._tools_node)

        workflow.set_entry_point("assistant")
        workflow.add_conditional_edges(
            "assistant",
            self._route_after_assistant,
            {"tools": "tools", END: END}
        )
        workflow.add_edge("tools", "assistant")

        return workflow.compile()

    def _assistant_node(self, state: ClinicalAgentState) -> Dict[str, Any]:
        iterations = state["iterations"]

        if iterations >= self.max_iterations:
            response = self.llm.chat(state["messages"])
            answer = response.content or EXHAUSTED_ANSWER
            return {
                "messages": [{"role": "assistant", "content": answer}],
                "answer": answer,
                "pending": [],
                "iterations": iterations + 1,
                "max_iterations_reached": True,
            }

        response = self.llm.chat(state["messages"], tools=self.registry.schemas())
        if response.has_tool_calls:
            return {
                "messages": [response.to_message()],
                "pending": list(response.tool_calls),
                "iterations": iterations + 1,
            }
        return {
            "messages": [response.to_message()],
            "answer": response.content,
            "pending": [],
            "iterations": iterations + 1,
        }

    def _tools_node(self, state: ClinicalAgentState) -> Dict[str, Any]:
        messages = []
        records = []
        for call in state["pending"]:
            result = self.registry.execute(call.name, call.arguments)
            messages.append(tool_message(result, call.id))
            records.append(asdict(ToolInvocation.from_result(result, state["iterations"])))
        return {"messages": messages, "tool_calls": records, "pending": []}

    @staticmethod
    def _route_after_assistant(state: ClinicalAgentState) -> str:
        return "tools" if state["pending"] else END

    def invoke(self, question: str, patient_id: Optional[str] = None) -> Dict[str, Any]:
        """
        Run the graph on a question.

        Returns:
            Dictionary with answer, tool_calls, iterations and messages
        """
        initial_state = {
            "messages": [
                {"role": "system", "content": self.system_prompt},
                {"role": "user", "content": format_user_message(question, patient_id)},
            ],
            "pending": [],
            "tool_calls": [],
            "iterations": 0,
            "answer": "",
            "max_iterations_reached": False,
        }

        # Two graph steps per tool round plus the forced final answer
        final_state = self.graph.invoke(
            initial_state,
            config={"recursion_limit": 2 * self.max_iterations + 5}
        )

        return {
            "question": question,
            "answer": final_state["answer"],
            "tool_calls": final_state["tool_calls"],
            "iterations": final_state["iterations"],
            "max_iterations_reached": final_state["max_iterations_reached"],
            "messages": final_state["messages"],
        }


def create_clinical_agent_graph(
    llm,
    registry: ToolRegistry,
    system_prompt: str = AGENT_SYSTEM_PROMPT,
    max_iterations: int = 5
) -> ClinicalAgentGraph:
    """Create the LangGraph version of the tool-calling agent."""
    return ClinicalAgentGraph(
        llm=llm,
        registry=registry,
        system_prompt=system_prompt,
        max_iterations=max_iterations
    )
