"""
ChatRelay: a streaming chat relay in front of an OpenAI-compatible LLM gateway.

Each subpackage hides one design decision: the wire protocol (llm), message
assembly (chat), tool dispatch (tools), persistence (memory), quota
accounting (quota) and the turn state machine (orchestrator).
"""

__version__ = "0.1.0"

from .errors import (
    ChatRelayError,
    GatewayError,
    InsufficientQuota,
    NoResponse,
    StreamCancelled,
    ToolError,
)
from .orchestrator import ChatReply, ChatService, ChatTurnRequest, TurnStream
from .settings import Settings

__all__ = [
    "ChatRelayError",
    "GatewayError",
    "InsufficientQuota",
    "NoResponse",
    "StreamCancelled",
    "ToolError",
    "ChatReply",
    "ChatService",
    "ChatTurnRequest",
    "TurnStream",
    "Settings",
]
