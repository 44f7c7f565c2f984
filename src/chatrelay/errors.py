"""Exception hierarchy for chatrelay.

Every failure that crosses a module boundary is one of these types.
Transport exceptions from httpx or the OpenAI SDK are converted to
GatewayError inside the llm package and never leak past it.
"""

from enum import Enum


class ChatRelayError(Exception):
    """Base class for all chatrelay errors."""


class GatewayError(ChatRelayError):
    """Upstream transport or protocol failure.

    Attributes:
        message: Human-readable message (from the provider when available)
        error_type: Provider error type, e.g. 'invalid_request_error'
        code: Provider error code
        status_code: HTTP status, when the failure came from a response
    """

    def __init__(
        self,
        message: str,
        error_type: str | None = None,
        code: str | None = None,
        status_code: int | None = None,
    ):
        self.message = message
        self.error_type = error_type
        self.code = code
        self.status_code = status_code
        super().__init__(self._render())

    @classmethod
    def from_status(cls, status_code: int) -> "GatewayError":
        """Error for a non-2xx response whose body could not be parsed."""
        return cls(
            f"API error (status {status_code}): failed to decode error response",
            status_code=status_code,
        )

    def _render(self) -> str:
        if self.error_type is None and self.code is None:
            return self.message
        return f"API error: {self.message} (type: {self.error_type or ''}, code: {self.code or ''})"


class StreamCancelled(GatewayError):
    """The caller's cancellation token fired while a stream was open."""

    def __init__(self, message: str = "stream cancelled by caller"):
        super().__init__(message, error_type="cancelled")

    def _render(self) -> str:
        return self.message


class AttachmentReadError(ChatRelayError):
    """An attachment could not be read; nothing was sent upstream."""

    def __init__(self, filename: str, reason: str = ""):
        self.filename = filename
        self.reason = reason
        detail = f": {reason}" if reason else ""
        super().__init__(f"failed to read file {filename}{detail}")


class ToolErrorKind(str, Enum):
    """Failure categories for tool execution."""

    UNKNOWN_TOOL = "unknown_tool"
    MISSING_ARGUMENT = "missing_argument"
    INVALID_ARGUMENTS = "invalid_arguments"
    INVALID_EXPRESSION = "invalid_expression"
    DIVISION_BY_ZERO = "division_by_zero"
    TIMEOUT = "timeout"
    EXECUTION_FAILED = "execution_failed"


class ToolError(ChatRelayError):
    """A tool invocation failed.

    Never fatal for a turn: the orchestrator renders it as reply text.
    """

    def __init__(self, kind: ToolErrorKind, detail: str = ""):
        self.kind = kind
        self.detail = detail
        super().__init__(self._render())

    @classmethod
    def unknown_tool(cls, name: str) -> "ToolError":
        return cls(ToolErrorKind.UNKNOWN_TOOL, name)

    @classmethod
    def missing_argument(cls, arg_name: str) -> "ToolError":
        return cls(ToolErrorKind.MISSING_ARGUMENT, arg_name)

    def _render(self) -> str:
        if self.kind is ToolErrorKind.UNKNOWN_TOOL:
            return f"unknown tool: {self.detail}"
        if self.kind is ToolErrorKind.MISSING_ARGUMENT:
            return f"{self.detail} parameter is required"
        if self.kind is ToolErrorKind.DIVISION_BY_ZERO:
            return "division by zero"
        if self.detail:
            return f"{self.kind.value.replace('_', ' ')}: {self.detail}"
        return self.kind.value.replace("_", " ")


class InsufficientQuota(ChatRelayError):
    """The user has no remaining uses of the requested kind."""

    def __init__(self, user_id: str, kind: str):
        self.user_id = user_id
        self.kind = kind
        super().__init__(f"insufficient {kind} tokens for user {user_id}")


class RateLimitExceeded(ChatRelayError):
    """The injected rate limiter refused the request."""

    def __init__(self, key: str):
        self.key = key
        super().__init__(f"rate limit exceeded for {key}")


class NoResponse(ChatRelayError):
    """The gateway answered with zero choices."""

    def __init__(self) -> None:
        super().__init__("no response from AI")


class PersistenceError(ChatRelayError):
    """Writing to the history store failed."""


class SessionAccessDenied(ChatRelayError):
    """The session exists but belongs to a different user."""

    def __init__(self, session_id: str):
        self.session_id = session_id
        super().__init__(f"session not found or access denied: {session_id}")
