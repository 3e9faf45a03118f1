from unittest import mock

import pytest
import requests

from careagent.models.ollama_model import OllamaModel, ToolCall, parse_chat_response


def _response(payload, status=200):
    response = mock.Mock()
    response.status_code = status
    response.json.return_value = payload
    if status >= 400:
        response.raise_for_status.side_effect = requests.exceptions.HTTPError(f"{status} error")
    else:
        response.raise_for_status.return_value = None
    return response


@pytest.fixture
def model():
    return OllamaModel("llama3.1:8b", base_url="http://ollama:11434/", check_health=False)


def test_chat_sends_tools_and_parses_calls(model):
    tools = [{"type": "function", "function": {"name": "fetch_guidelines", "parameters": {}}}]
    payload = {"message": {
        "role": "assistant",
        "content": "",
        "tool_calls": [{"function": {"name": "fetch_guidelines", "arguments": {"query": "af"}}}],
    }}

    with mock.patch("careagent.models.ollama_model.requests.post", return_value=_response(payload)) as post:
        result = model.chat([{"role": "user", "content": "hi"}], tools=tools, temperature=0.0)

    url = post.call_args.args[0]
    body = post.call_args.kwargs["json"]
    assert url == "http://ollama:11434/api/chat"
    assert body["tools"] == tools
    assert body["stream"] is False
    assert body["options"] == {"temperature": 0.0, "num_predict": 512}
    assert result.has_tool_calls
    assert result.tool_calls == [ToolCall("fetch_guidelines", {"query": "af"})]


def test_chat_without_tools_omits_key(model):
    payload = {"message": {"role": "assistant", "content": "  Answer.  "}}
    with mock.patch("careagent.models.ollama_model.requests.post", return_value=_response(payload)) as post:
        result = model.chat([{"role": "user", "content": "hi"}])

    assert "tools" not in post.call_args.kwargs["json"]
    assert result.content == "Answer."
    assert result.to_message() == {"role": "assistant", "content": "Answer."}


def test_generate_prepends_system_prompt(model):
    with mock.patch("careagent.models.ollama_model.requests.post",
                    return_value=_response({"response": " ok "})) as post:
        assert model.generate("question", system_prompt="be brief") == "ok"

    body = post.call_args.kwargs["json"]
    assert post.call_args.args[0].endswith("/api/generate")
    assert body["prompt"] == "be brief\n\nquestion"


def test_http_error_is_reraised(model):
    with mock.patch("careagent.models.ollama_model.requests.post", return_value=_response({}, status=500)):
        with pytest.raises(requests.exceptions.HTTPError):
            model.chat([{"role": "user", "content": "hi"}])


def test_health_check_never_raises():
    with mock.patch("careagent.models.ollama_model.requests.get",
                    side_effect=requests.exceptions.ConnectionError("refused")):
        model = OllamaModel("llama3.1:8b")
    assert model.base_url == "http://localhost:11434"


def test_from_config():
    config = {"model_name": "qwen2.5:7b", "max_tokens": 64, "check_health": False}
    model = OllamaModel.from_config(config)
    assert model.model_name == "qwen2.5:7b"
    assert model.max_tokens == 64
    assert model.temperature == 0.1


class TestParseChatResponse:

    def test_string_arguments_are_decoded(self):
        response = parse_chat_response({"message": {"content": None, "tool_calls": [
            {"id": "call_1", "function": {"name": "check_drug_interactions",
                                          "arguments": '{"drugs": ["a", "b"]}'}},
        ]}})
        call = response.tool_calls[0]
        assert call.arguments == {"drugs": ["a", "b"]}
        assert call.id == "call_1"
        assert call.to_wire()["id"] == "call_1"
        assert response.content == ""

    def test_undecodable_arguments_are_kept_raw(self):
        response = parse_chat_response({"message": {"tool_calls": [
            {"function": {"name": "fetch_guidelines", "arguments": "not json"}},
        ]}})
        assert response.tool_calls[0].arguments == {"_raw": "not json"}

    def test_nameless_calls_are_skipped(self):
        response = parse_chat_response({"message": {"content": "x", "tool_calls": [{"function": {}}]}})
        assert response.tool_calls == []

    def test_missing_message_raises(self):
        with pytest.raises(ValueError):
            parse_chat_response({"error": "model not found"})
