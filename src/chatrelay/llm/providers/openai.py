import asyncio
import logging
from collections.abc import Mapping
from typing import Any

import httpx
import openai
from openai import AsyncOpenAI
from pydantic import ValidationError

from ...errors import GatewayError
from ...settings import DEFAULT_BASE_URL, DEFAULT_MODEL
from ..base import LLMProvider
from ..models import ChatCompletion, ChatRequest
from ..stream import GatewayStream
from .gateway import SSE_DONE, parse_chunk, sse_payload

logger = logging.getLogger(__name__)


def _status_error(e: openai.APIStatusError) -> GatewayError:
    """Map an SDK status error to GatewayError, keeping the provider message."""
    message = e.message
    if isinstance(e.body, Mapping) and e.body.get("message"):
        message = str(e.body["message"])
    code = None if e.code is None else str(e.code)
    if e.type is None and code is None:
        return GatewayError.from_status(e.status_code)
    return GatewayError(message, error_type=e.type, code=code or "", status_code=e.status_code)


class OpenAIProvider(LLMProvider):
    """OpenAI SDK client against an OpenAI-compatible endpoint.

    Hidden design decisions:
    - AsyncOpenAI client initialization (SDK retries disabled)
    - Conversion of SDK objects into the shared wire models
    - Mapping SDK exceptions onto GatewayError
    """

    def __init__(
        self,
        api_key: str,
        model: str = DEFAULT_MODEL,
        base_url: str | None = DEFAULT_BASE_URL,
        timeout: float = 60.0,
        **client_kwargs: Any
    ):
        """Initialize OpenAI provider.

        Args:
            api_key: API key
            model: Default model
            base_url: Endpoint root
            timeout: Request timeout in seconds
            **client_kwargs: Additional kwargs for AsyncOpenAI client
                (e.g. http_client)
        """
        self._model = model
        self._client = AsyncOpenAI(
            api_key=api_key,
            base_url=base_url,
            timeout=timeout,
            max_retries=0,
            **client_kwargs
        )

    @property
    def default_model(self) -> str:
        return self._model

    def _params(self, request: ChatRequest) -> dict[str, Any]:
        params = request.to_payload()
        params.pop("stream", None)
        if not params.get("model"):
            params["model"] = self._model
        return params

    async def complete(self, request: ChatRequest) -> ChatCompletion:
        """Generate a chat completion through the SDK."""
        params = self._params(request)
        logger.debug(
            "Sending completion: model=%s messages=%d tools=%d",
            params["model"], len(request.messages), len(request.tools or [])
        )

        try:
            completion = await self._client.chat.completions.create(**params)
        except openai.APIStatusError as e:
            error = _status_error(e)
            logger.warning("Gateway returned %d: %s", e.status_code, error)
            raise error from e
        except openai.APIError as e:
            raise GatewayError(f"failed to send request: {e}", error_type="transport") from e

        try:
            return ChatCompletion.model_validate(completion.model_dump())
        except ValidationError as e:
            raise GatewayError(f"failed to decode response: {e}", error_type="decode") from e

    async def stream_complete(
        self,
        request: ChatRequest,
        cancel: asyncio.Event | None = None
    ) -> GatewayStream:
        """Open a streamed completion through the SDK."""
        params = self._params(request)

        async def produce(stream: GatewayStream) -> None:
            try:
                sdk_stream = await self._client.chat.completions.create(**params, stream=True)
            except openai.APIStatusError as e:
                raise _status_error(e) from e
            except openai.APIError as e:
                raise GatewayError(f"failed to send request: {e}", error_type="transport") from e

            try:
                # The SDK decoder raises on a malformed data line, so the raw
                # event lines are read instead and skipped like the gateway does
                async for line in sdk_stream.response.aiter_lines():
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
            finally:
                await sdk_stream.close()

        return GatewayStream(cancel).start(produce)

    async def list_models(self) -> list[str]:
        """Return the model ids advertised by the endpoint."""
        try:
            return [model.id async for model in self._client.models.list()]
        except openai.APIStatusError as e:
            raise _status_error(e) from e
        except openai.APIError as e:
            raise GatewayError(f"failed to list models: {e}", error_type="transport") from e

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        await self._client.close()
