import asyncio
from abc import ABC, abstractmethod
from typing import Any

from .models import ChatCompletion, ChatRequest
from .stream import GatewayStream


class LLMProvider(ABC):
    """Abstract base class for upstream gateway clients.

    This module hides the design decision of how the OpenAI-compatible
    endpoint is reached. Implementations must handle:
    - Client setup and bearer authentication
    - Request/response conversion to the wire models
    - Converting transport failures into GatewayError
    - Running stream reads in the background and honouring cancellation

    A provider holds one connection pool and is safe to share across
    concurrent turns.

    Supports async context manager protocol for proper resource cleanup:
        async with provider:
            completion = await provider.complete(request)
        # Automatically cleaned up
    """

    @property
    @abstractmethod
    def default_model(self) -> str:
        """Model used when a request does not name one."""
        pass

    @abstractmethod
    async def complete(self, request: ChatRequest) -> ChatCompletion:
        """Send a one-shot completion request.

        Args:
            request: Fully assembled request (its `stream` flag is ignored)

        Returns:
            Parsed completion

        Raises:
            GatewayError: On transport failure or a non-2xx response
        """
        pass

    @abstractmethod
    async def stream_complete(
        self,
        request: ChatRequest,
        cancel: asyncio.Event | None = None
    ) -> GatewayStream:
        """Open a streamed completion.

        Returns as soon as the background reader is started. Connection,
        status and read failures are reported through the stream, never
        raised from this call.

        Args:
            request: Fully assembled request
            cancel: Cancellation token for the stream

        Returns:
            GatewayStream yielding StreamChunk objects
        """
        pass

    @abstractmethod
    async def list_models(self) -> list[str]:
        """Return the ids of the models the endpoint advertises.

        Raises:
            GatewayError: On transport failure or a non-2xx response
        """
        pass

    @abstractmethod
    async def close(self) -> None:
        """Close any open connections or resources."""
        pass

    async def __aenter__(self) -> "LLMProvider":
        """Async context manager entry."""
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        """Async context manager exit with automatic cleanup.

        Note: Suppresses "Event loop is closed" errors during cleanup.
        This is a known harmless race condition in httpx/anyio cleanup:
        https://github.com/encode/httpx/issues/914
        """
        try:
            await self.close()
        except RuntimeError as e:
            if "Event loop is closed" not in str(e):
                raise
