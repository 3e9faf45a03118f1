import json

import pytest

from careagent.agents.prompts import DRUG_SAFETY_PROMPT, GENERAL_GUIDANCE_PROMPT
from careagent.agents.rule_based import BRANCH_DRUG_INTERACTION, BRANCH_GENERAL, RuleBasedAssistant
from careagent.agents.tool_calling_agent import EXHAUSTED_ANSWER, ToolCallingAgent
from conftest import calls, text


class TestRuleBasedAssistant:

    @pytest.mark.parametrize("question", [
        "Does apixaban interact with ibuprofen?",
        "Can I COMBINE warfarin and aspirin?",
        "Is simvastatin safe taken with clarithromycin?",
    ])
    def test_drug_questions_take_drug_branch(self, make_llm, question):
        assistant = RuleBasedAssistant(make_llm([]))
        assert assistant.classify(question) == BRANCH_DRUG_INTERACTION

    def test_other_questions_take_general_branch(self, make_llm):
        assistant = RuleBasedAssistant(make_llm([]))
        assert assistant.classify("What is first-line therapy for type 2 diabetes?") == BRANCH_GENERAL

    def test_answer_makes_one_call_without_tools(self, make_llm):
        llm = make_llm([text("Bleeding risk is increased.")])
        result = RuleBasedAssistant(llm).answer("Does apixaban interact with ibuprofen?")

        assert result.answer == "Bleeding risk is increased."
        assert result.branch == BRANCH_DRUG_INTERACTION
        assert len(llm.calls) == 1
        assert llm.calls[0]["tools"] is None
        assert llm.calls[0]["messages"][0] == {"role": "system", "content": DRUG_SAFETY_PROMPT}
        assert llm.calls[0]["messages"][1]["content"] == "Does apixaban interact with ibuprofen?"

    def test_general_branch_uses_general_prompt(self, make_llm):
        llm = make_llm([text("Metformin.")])
        result = RuleBasedAssistant(llm).answer("First-line drug for diabetes?")
        assert result.system_prompt == GENERAL_GUIDANCE_PROMPT

    def test_custom_keywords(self, make_llm):
        assistant = RuleBasedAssistant(make_llm([]), keywords=["Dose"])
        assert assistant.classify("What dose of apixaban?") == BRANCH_DRUG_INTERACTION
        assert assistant.classify("Does apixaban interact with ibuprofen?") == BRANCH_GENERAL


class TestToolCallingAgent:

    def test_direct_answer_without_tools(self, make_llm, registry):
        llm = make_llm([text("Metformin is first-line.")])
        result = ToolCallingAgent(llm, registry).run("First-line drug for diabetes?")

        assert result.answer == "Metformin is first-line."
        assert result.tool_calls == []
        assert result.iterations == 1
        assert not result.max_iterations_reached
        names = [tool["function"]["name"] for tool in llm.calls[0]["tools"]]
        assert names == ["fetch_guidelines", "fetch_patient_history", "check_drug_interactions"]

    def test_tool_results_are_fed_back_in_order(self, make_llm, registry):
        llm = make_llm([
            calls(("fetch_patient_history", {"patient_id": "P001"})),
            calls(("check_drug_interactions", {"drugs": ["apixaban", "ibuprofen"]}),
                  ("fetch_guidelines", {"query": "ibuprofen anticoagulated", "top_k": 2})),
            text("Avoid ibuprofen; use paracetamol."),
        ])
        result = ToolCallingAgent(llm, registry).run("Can she take ibuprofen?", patient_id="P001")

        assert result.answer == "Avoid ibuprofen; use paracetamol."
        assert result.iterations == 3
        assert result.tools_used == ["fetch_patient_history", "check_drug_interactions", "fetch_guidelines"]
        assert [c.iteration for c in result.tool_calls] == [1, 2, 2]
        assert all(c.error is None for c in result.tool_calls)

        roles = [m["role"] for m in result.messages]
        assert roles == ["system", "user", "assistant", "tool", "assistant", "tool", "tool", "assistant"]
        assert "Patient ID: P001" in result.messages[1]["content"]

        # Second call saw the patient record
        second_call_messages = llm.calls[1]["messages"]
        patient = json.loads(second_call_messages[-1]["content"])
        assert patient["patient_id"] == "P001"
        assert second_call_messages[-1]["tool_name"] == "fetch_patient_history"

        interaction = json.loads(result.messages[5]["content"])
        assert interaction["highest_severity"] == "major"

    def test_tool_errors_are_returned_to_model(self, make_llm, registry):
        llm = make_llm([
            calls(("fetch_patient_history", {"patient_id": "P999"}), ("order_labs", {})),
            text("Could not find that patient."),
        ])
        result = ToolCallingAgent(llm, registry).run("History for P999?")

        assert result.answer == "Could not find that patient."
        assert "KeyError" in result.tool_calls[0].error
        assert "Unknown tool" in result.tool_calls[1].error
        tool_messages = [m for m in llm.calls[1]["messages"] if m["role"] == "tool"]
        assert all("error" in json.loads(m["content"]) for m in tool_messages)

    def test_bad_arguments_do_not_raise(self, make_llm, registry):
        llm = make_llm([
            calls(("check_drug_interactions", {"drug_list": ["a", "b"]})),
            text("done"),
        ])
        result = ToolCallingAgent(llm, registry).run("Check")
        assert "Invalid arguments" in result.tool_calls[0].error

    def test_iteration_limit_forces_final_answer(self, make_llm, registry):
        llm = make_llm([
            calls(("fetch_guidelines", {"query": "apixaban"})),
            calls(("fetch_guidelines", {"query": "apixaban dose"})),
            text("Forced answer."),
        ])
        result = ToolCallingAgent(llm, registry, max_iterations=2).run("Apixaban dose?")

        assert result.max_iterations_reached
        assert result.answer == "Forced answer."
        assert result.iterations == 3
        assert len(result.tool_calls) == 2
        # Final call offers no tools
        assert llm.calls[-1]["tools"] is None

    def test_empty_forced_answer_gets_placeholder(self, make_llm, registry):
        llm = make_llm([calls(("fetch_guidelines", {"query": "x"})), text("")])
        result = ToolCallingAgent(llm, registry, max_iterations=1).run("?")
        assert result.answer == EXHAUSTED_ANSWER

    def test_max_iterations_must_be_positive(self, make_llm, registry):
        with pytest.raises(ValueError):
            ToolCallingAgent(make_llm([]), registry, max_iterations=0)
