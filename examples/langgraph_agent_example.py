"""
Example: Running the Tool-Calling Agent as a LangGraph Graph

Builds the assistant from config, then runs the same question through the
plain ToolCallingAgent and through the LangGraph version. Both use the same
registry and chat client, so the tool calls should match.

Requires a running Ollama server with a tool-capable model.
"""

import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from careagent.assistant import load_assistant
from careagent.langchain_integration import create_clinical_agent_graph, registry_to_langchain_tools


def main():
    print("Loading assistant...")
    assistant = load_assistant()

    graph = create_clinical_agent_graph(
        llm=assistant.llm,
        registry=assistant.registry,
        max_iterations=assistant.agent.max_iterations
    )

    question = "She has knee pain. Is ibuprofen a reasonable option, and if not, what should we use?"
    patient_id = "P001"

    print("\n" + "="*80)
    print("LANGGRAPH EXECUTION")
    print("="*80)
    result = graph.invoke(question, patient_id=patient_id)
    for call in result["tool_calls"]:
        print(f"  [{call['iteration']}] {call['name']}({call['arguments']})")
    print(f"\nAnswer:\n{result['answer']}")

    print("\n" + "="*80)
    print("DIRECT AGENT EXECUTION")
    print("="*80)
    direct = assistant.agent.run(question, patient_id=patient_id)
    print(f"Tools used: {', '.join(direct.tools_used) or 'none'}")
    print(f"\nAnswer:\n{direct.answer}")

    print("\nLangChain tools available for other agents:")
    for tool in registry_to_langchain_tools(assistant.registry):
        print(f"  - {tool.name}: {tool.description[:70]}")


if __name__ == "__main__":
    main()
