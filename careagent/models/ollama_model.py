"""
Ollama Chat Client for the Clinical Assistant

This module provides a clean interface to Ollama for both plain text generation
and chat completion with tool calling. Any Ollama model works for `generate`;
`chat` with tools needs a model that supports function calling
(e.g., llama3.1:8b, qwen2.5).

Wire format (POST /api/chat):
    request:  {"model", "messages", "tools"?, "stream": false, "options"}
    response: {"message": {"role": "assistant", "content": "...",
                           "tool_calls": [{"function": {"name", "arguments"}}]}}
"""

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import requests

logger = logging.getLogger(__name__)


@dataclass
class ToolCall:
    """A single function call requested by the model."""
    name: str
    arguments: Dict[str, Any]
    id: Optional[str] = None

    def to_wire(self) -> Dict[str, Any]:
        call = {"function": {"name": self.name, "arguments": self.arguments}}
        if self.id:
            call["id"] = self.id
        return call


@dataclass
class ChatResponse:
    """Parsed assistant turn from /api/chat."""
    content: str
    tool_calls: List[ToolCall] = field(default_factory=list)
    raw: Dict[str, Any] = field(default_factory=dict)

    @property
    def has_tool_calls(self) -> bool:
        return bool(self.tool_calls)

    def to_message(self) -> Dict[str, Any]:
        """Render this turn as an assistant message for the conversation history."""
        message: Dict[str, Any] = {"role": "assistant", "content": self.content}
        if self.tool_calls:
            message["tool_calls"] = [call.to_wire() for call in self.tool_calls]
        return message


def _parse_arguments(arguments: Any) -> Dict[str, Any]:
    """Ollama sends an object; OpenAI-compatible servers send a JSON string."""
    if arguments is None:
        return {}
    if isinstance(arguments, dict):
        return arguments
    if isinstance(arguments, str):
        if not arguments.strip():
            return {}
        try:
            parsed = json.loads(arguments)
        except json.JSONDecodeError:
            return {"_raw": arguments}
        return parsed if isinstance(parsed, dict) else {"_raw": arguments}
    return {"_raw": arguments}


def parse_chat_response(payload: Dict[str, Any]) -> ChatResponse:
    """
    Convert a raw /api/chat payload into a ChatResponse.

    Raises:
        ValueError: If the payload has no ``message`` object
    """
    message = payload.get("message")
    if not isinstance(message, dict):
        raise ValueError(f"Malformed chat response, missing 'message': {payload!r}")

    tool_calls = []
    for raw_call in message.get("tool_calls") or []:
        function = raw_call.get("function", {})
        name = function.get("name")
        if not name:
            logger.warning("Skipping tool call without a function name: %r", raw_call)
            continue
        tool_calls.append(
            ToolCall(
                name=name,
                arguments=_parse_arguments(function.get("arguments")),
                id=raw_call.get("id"),
            )
        )

    return ChatResponse(
        content=(message.get("content") or "").strip(),
        tool_calls=tool_calls,
        raw=payload,
    )


class OllamaModel:
    """
    Ollama model wrapper for clinical question answering.

    Parameters:
        model_name: Ollama model name (e.g., "llama3.1:8b")
        base_url: Ollama server root (default: http://localhost:11434)
        temperature: Sampling temperature (0.1 for consistent clinical answers)
        max_tokens: Maximum tokens to generate
        timeout: HTTP timeout in seconds
        check_health: Probe /api/tags on construction
    """

    def __init__(
        self,
        model_name: str = "llama3.1:8b",
        base_url: str = "http://localhost:11434",
        temperature: float = 0.1,
        max_tokens: int = 512,
        timeout: float = 120,
        check_health: bool = True
    ):
        self.model_name = model_name
        self.base_url = base_url.rstrip("/")
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.timeout = timeout

        if check_health:
            self._check_ollama_health()

    @classmethod
    def from_config(cls, llm_config: Dict[str, Any]) -> "OllamaModel":
        """Build a client from the ``llm`` config section."""
        return cls(
            model_name=llm_config.get("model_name", "llama3.1:8b"),
            base_url=llm_config.get("base_url", "http://localhost:11434"),
            temperature=llm_config.get("temperature", 0.1),
            max_tokens=llm_config.get("max_tokens", 512),
            timeout=llm_config.get("timeout", 120),
            check_health=llm_config.get("check_health", True),
        )

    def _check_ollama_health(self) -> None:
        """Check if Ollama is running and model is available."""
        try:
            response = requests.get(f"{self.base_url}/api/tags", timeout=5)
            if response.status_code == 200:
                models = response.json().get("models", [])
                model_names = [m.get("name", "") for m in models]

                if any(self.model_name in name for name in model_names):
                    logger.info("Model %s is available", self.model_name)
                else:
                    logger.warning(
                        "Model %s not found in Ollama (available: %s). To install: ollama pull %s",
                        self.model_name, ", ".join(model_names[:5]), self.model_name
                    )
            else:
                logger.warning("Ollama health check failed (status %s)", response.status_code)
        except requests.exceptions.RequestException as e:
            logger.warning("Cannot connect to Ollama at %s: %s (is `ollama serve` running?)", self.base_url, e)

    def _options(self, temperature: Optional[float], max_tokens: Optional[int]) -> Dict[str, Any]:
        return {
            "temperature": temperature if temperature is not None else self.temperature,
            "num_predict": max_tokens if max_tokens is not None else self.max_tokens,
        }

    def _post(self, path: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        try:
            response = requests.post(f"{self.base_url}{path}", json=payload, timeout=self.timeout)
            response.raise_for_status()
            return response.json()
        except requests.exceptions.RequestException as e:
            logger.error("Ollama API request to %s failed: %s", path, e)
            raise

    def generate(
        self,
        prompt: str,
        system_prompt: Optional[str] = None,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None
    ) -> str:
        """
        Generate a completion for a single prompt.

        Args:
            prompt: User prompt
            system_prompt: Optional system prompt, prepended to the prompt
            temperature: Override default temperature
            max_tokens: Override default max_tokens

        Returns:
            Generated text response
        """
        full_prompt = prompt
        if system_prompt:
            full_prompt = f"{system_prompt}\n\n{prompt}"

        payload = {
            "model": self.model_name,
            "prompt": full_prompt,
            "stream": False,
            "options": self._options(temperature, max_tokens),
        }
        result = self._post("/api/generate", payload)
        return result.get("response", "").strip()

    def chat(
        self,
        messages: List[Dict[str, Any]],
        tools: Optional[List[Dict[str, Any]]] = None,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None
    ) -> ChatResponse:
        """
        Run one chat-completion turn.

        Args:
            messages: Conversation so far (system/user/assistant/tool messages)
            tools: Optional tool schemas the model may call
            temperature: Override default temperature
            max_tokens: Override default max_tokens

        Returns:
            ChatResponse with text content and any requested tool calls
        """
        payload: Dict[str, Any] = {
            "model": self.model_name,
            "messages": messages,
            "stream": False,
            "options": self._options(temperature, max_tokens),
        }
        if tools:
            payload["tools"] = tools

        logger.debug("chat: %d messages, %d tools", len(messages), len(tools or []))
        return parse_chat_response(self._post("/api/chat", payload))

    def __repr__(self):
        return f"OllamaModel(model_name='{self.model_name}', url='{self.base_url}')"
