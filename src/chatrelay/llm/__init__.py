from .base import LLMProvider
from .factory import create_llm_provider
from .models import (
    ChatCompletion,
    ChatMessage,
    ChatRequest,
    Choice,
    StreamChunk,
    ToolDefinition,
    Usage,
    WireToolCall,
)
from .providers import GatewayProvider, OpenAIProvider
from .stream import GatewayStream

__all__ = [
    "LLMProvider",
    "create_llm_provider",
    "ChatCompletion",
    "ChatMessage",
    "ChatRequest",
    "Choice",
    "StreamChunk",
    "ToolDefinition",
    "Usage",
    "WireToolCall",
    "GatewayProvider",
    "OpenAIProvider",
    "GatewayStream",
]
