import asyncio
import logging
from typing import Any

import httpx
from pydantic import ValidationError

from ...errors import GatewayError
from ...settings import DEFAULT_BASE_URL, DEFAULT_MODEL
from ..base import LLMProvider
from ..models import ChatCompletion, ChatRequest, ErrorEnvelope, ModelList, StreamChunk
from ..stream import GatewayStream

logger = logging.getLogger(__name__)

SSE_DATA_PREFIX = "data:"
SSE_DONE = "[DONE]"


def sse_payload(line: str) -> str | None:
    """Return the payload of an SSE `data:` line, or None for other lines."""
    if not line.startswith(SSE_DATA_PREFIX):
        return None
    payload = line[len(SSE_DATA_PREFIX):]
    if payload.startswith(" "):
        payload = payload[1:]
    return payload


def parse_chunk(payload: str) -> StreamChunk | None:
    """Parse one stream payload; malformed payloads yield None."""
    try:
        return StreamChunk.model_validate_json(payload)
    except ValidationError:
        return None


def error_from_response(status_code: int, body: bytes) -> GatewayError:
    """Build a GatewayError from a non-2xx response body."""
    try:
        envelope = ErrorEnvelope.model_validate_json(body)
    except ValidationError:
        return GatewayError.from_status(status_code)

    detail = envelope.error
    return GatewayError(
        detail.message,
        error_type=detail.type,
        code="" if detail.code is None else str(detail.code),
        status_code=status_code,
    )


class GatewayProvider(LLMProvider):
    """Raw HTTP client for an OpenAI-compatible gateway.

    Hidden design decisions:
    - One pooled httpx.AsyncClient per provider, shared by all turns
    - Bearer authentication on every request
    - Server-sent events parsed line by line; malformed payloads skipped
    - Error envelopes decoded into GatewayError
    """

    def __init__(
        self,
        api_key: str,
        model: str = DEFAULT_MODEL,
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = 60.0,
        transport: httpx.AsyncBaseTransport | None = None,
        **client_kwargs: Any
    ):
        """Initialize gateway provider.

        Args:
            api_key: Gateway API key
            model: Default model
            base_url: Endpoint root (completions live at {base_url}/chat/completions)
            timeout: Request timeout in seconds
            transport: Optional httpx transport (tests use httpx.MockTransport)
            **client_kwargs: Additional kwargs for httpx.AsyncClient
        """
        self._model = model
        self._client = httpx.AsyncClient(
            base_url=base_url.rstrip("/") + "/",
            headers={"Authorization": f"Bearer {api_key}"},
            timeout=httpx.Timeout(timeout),
            transport=transport,
            **client_kwargs
        )

    @property
    def default_model(self) -> str:
        return self._model

    def _payload(self, request: ChatRequest, stream: bool) -> dict[str, Any]:
        update: dict[str, Any] = {"stream": stream}
        if not request.model:
            update["model"] = self._model
        return request.model_copy(update=update).to_payload()

    async def complete(self, request: ChatRequest) -> ChatCompletion:
        """Send a one-shot completion request."""
        payload = self._payload(request, stream=False)
        logger.debug(
            "Sending completion: model=%s messages=%d tools=%d",
            payload["model"], len(request.messages), len(request.tools or [])
        )

        try:
            response = await self._client.post("chat/completions", json=payload)
        except httpx.HTTPError as e:
            raise GatewayError(f"failed to send request: {e}", error_type="transport") from e

        if not response.is_success:
            error = error_from_response(response.status_code, response.content)
            logger.warning("Gateway returned %d: %s", response.status_code, error)
            raise error

        try:
            return ChatCompletion.model_validate_json(response.content)
        except ValidationError as e:
            raise GatewayError(f"failed to decode response: {e}", error_type="decode") from e

    async def stream_complete(
        self,
        request: ChatRequest,
        cancel: asyncio.Event | None = None
    ) -> GatewayStream:
        """Open a streamed completion read by a background task."""
        payload = self._payload(request, stream=True)
        logger.debug(
            "Opening stream: model=%s messages=%d tools=%d",
            payload["model"], len(request.messages), len(request.tools or [])
        )

        async def produce(stream: GatewayStream) -> None:
            try:
                async with self._client.stream(
                    "POST",
                    "chat/completions",
                    json=payload,
                    headers={"Accept": "text/event-stream"},
                ) as response:
                    if not response.is_success:
                        body = await response.aread()
                        raise error_from_response(response.status_code, body)

                    async for line in response.aiter_lines():
                        stream.raise_if_cancelled()
                        data = sse_payload(line)
                        if data is None:
                            continue
                        if data == SSE_DONE:
                            return
                        chunk = parse_chunk(data)
                        if chunk is None:
                            logger.debug("Skipping malformed stream payload")
                            continue
                        stream.emit(chunk)
            except httpx.HTTPError as e:
                raise GatewayError(f"failed to read stream: {e}", error_type="transport") from e

        return GatewayStream(cancel).start(produce)

    async def list_models(self) -> list[str]:
        """Return the model ids advertised by the gateway."""
        try:
            response = await self._client.get("models")
        except httpx.HTTPError as e:
            raise GatewayError(f"failed to list models: {e}", error_type="transport") from e

        if not response.is_success:
            raise error_from_response(response.status_code, response.content)

        try:
            models = ModelList.model_validate_json(response.content)
        except ValidationError as e:
            raise GatewayError(f"failed to decode model list: {e}", error_type="decode") from e
        return [m.id for m in models.data]

    async def close(self) -> None:
        """Close the HTTP connection pool."""
        await self._client.aclose()
