"""Model clients. Embeddings live in `careagent.models.embeddings` (imports torch)."""

from .ollama_model import OllamaModel, ChatResponse, ToolCall, parse_chat_response

__all__ = [
    'OllamaModel',
    'ChatResponse',
    'ToolCall',
    'parse_chat_response'
]
