"""Unit tests for the llm module (gateway wire protocol)."""
import asyncio
import json
import os

import httpx
import pytest

from chatrelay.errors import GatewayError, StreamCancelled
from chatrelay.llm import (
    ChatMessage,
    ChatRequest,
    GatewayProvider,
    GatewayStream,
    LLMProvider,
    OpenAIProvider,
    StreamChunk,
    create_llm_provider,
)
from chatrelay.llm.providers.gateway import error_from_response, parse_chunk, sse_payload

BASE_URL = "http://gateway.test/v1"


def chunk_line(text: str) -> str:
    return "data: " + json.dumps({"choices": [{"index": 0, "delta": {"content": text}}]})


def sse_body(*lines: str) -> bytes:
    return "".join(f"{line}\n\n" for line in lines).encode()


def completion_json(text: str = "hello") -> dict:
    return {
        "id": "cmpl-1",
        "object": "chat.completion",
        "created": 1700000000,
        "model": "test-model",
        "choices": [{"index": 0, "message": {"role": "assistant", "content": text}, "finish_reason": "stop"}],
        "usage": {"prompt_tokens": 3, "completion_tokens": 2, "total_tokens": 5},
    }


def make_request(model: str = "") -> ChatRequest:
    return ChatRequest(model=model, messages=[ChatMessage(role="user", content="hi")])


def gateway(handler) -> GatewayProvider:
    return GatewayProvider(
        api_key="test-key",
        model="default-model",
        base_url=BASE_URL,
        transport=httpx.MockTransport(handler),
    )


class TestLLMProviderInterface:
    """Tests for the abstract LLMProvider interface."""

    def test_provider_is_abstract(self):
        """Test that LLMProvider cannot be instantiated directly."""
        with pytest.raises(TypeError):
            LLMProvider()  # type: ignore


class TestSSEParsing:
    """Tests for server-sent event helpers."""

    @pytest.mark.parametrize("line,expected", [
        ("data: {}", "{}"),
        ("data:{}", "{}"),
        ("data: [DONE]", "[DONE]"),
        (": keep-alive", None),
        ("event: message", None),
        ("", None),
    ])
    def test_sse_payload(self, line, expected):
        """Test that only data lines carry a payload."""
        assert sse_payload(line) == expected

    def test_parse_chunk_skips_malformed(self):
        """Test that malformed payloads parse to None."""
        assert parse_chunk("not json") is None
        assert parse_chunk('{"choices": "oops"}') is None
        assert parse_chunk('{"choices": []}') == StreamChunk()

    def test_error_envelope(self):
        """Test that a structured error body keeps the provider message."""
        body = json.dumps({"error": {"message": "bad model", "type": "invalid_request_error", "code": "model_not_found"}})
        error = error_from_response(400, body.encode())

        assert error.status_code == 400
        assert error.message == "bad model"
        assert str(error) == "API error: bad model (type: invalid_request_error, code: model_not_found)"

    def test_error_envelope_with_null_type(self):
        """Test that a null error type still keeps the provider message."""
        body = json.dumps({"error": {"message": "quota exceeded", "type": None, "code": "insufficient_quota"}})
        error = error_from_response(429, body.encode())

        assert error.message == "quota exceeded"
        assert error.error_type is None
        assert error.code == "insufficient_quota"

    def test_unparseable_error_body(self):
        """Test that an unparseable error body reports the status."""
        error = error_from_response(502, b"<html>bad gateway</html>")
        assert str(error) == "API error (status 502): failed to decode error response"


class TestGatewayProviderComplete:
    """Tests for GatewayProvider.complete."""

    @pytest.mark.asyncio
    async def test_sends_auth_and_default_model(self):
        """Test bearer auth, endpoint path and model defaulting."""
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["auth"] = request.headers["Authorization"]
            seen["path"] = request.url.path
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json=completion_json("hi there"))

        async with gateway(handler) as provider:
            completion = await provider.complete(make_request())

        assert seen["auth"] == "Bearer test-key"
        assert seen["path"] == "/v1/chat/completions"
        assert seen["body"]["model"] == "default-model"
        assert seen["body"]["stream"] is False
        assert completion.choices[0].text() == "hi there"
        assert completion.usage.total_tokens == 5

    @pytest.mark.asyncio
    async def test_error_status_raises_gateway_error(self):
        """Test that a non-2xx response raises the provider's message."""
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(401, json={"error": {"message": "invalid key", "type": "auth", "code": 401}})

        async with gateway(handler) as provider:
            with pytest.raises(GatewayError) as exc_info:
                await provider.complete(make_request())

        assert exc_info.value.status_code == 401
        assert exc_info.value.message == "invalid key"
        assert exc_info.value.code == "401"

    @pytest.mark.asyncio
    async def test_transport_failure(self):
        """Test that connection errors become GatewayError."""
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        async with gateway(handler) as provider:
            with pytest.raises(GatewayError) as exc_info:
                await provider.complete(make_request("m"))

        assert exc_info.value.error_type == "transport"

    @pytest.mark.asyncio
    async def test_list_models(self):
        """Test model listing."""
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url.path == "/v1/models"
            return httpx.Response(200, json={"object": "list", "data": [{"id": "a"}, {"id": "b"}]})

        async with gateway(handler) as provider:
            assert await provider.list_models() == ["a", "b"]


class TestGatewayProviderStream:
    """Tests for GatewayProvider.stream_complete."""

    @pytest.mark.asyncio
    async def test_fragments_in_order_skipping_malformed(self):
        """Test that malformed and non-data lines are skipped and [DONE] ends the stream."""
        body = sse_body(
            ": keep-alive",
            chunk_line("Hel"),
            "data: not json",
            "event: ping",
            chunk_line("lo"),
            'data:{"choices":[{"index":0,"delta":{}}],"usage":{"prompt_tokens":1,"completion_tokens":2,"total_tokens":3}}',
            "data: [DONE]",
            chunk_line("ignored"),
        )

        def handler(request: httpx.Request) -> httpx.Response:
            assert request.headers["Accept"] == "text/event-stream"
            assert json.loads(request.content)["stream"] is True
            return httpx.Response(200, content=body, headers={"Content-Type": "text/event-stream"})

        async with gateway(handler) as provider:
            stream = await provider.stream_complete(make_request())
            text = "".join([chunk.delta_text() async for chunk in stream])

        assert text == "Hello"
        assert stream.usage.total_tokens == 3
        assert stream.done

    @pytest.mark.asyncio
    async def test_same_body_same_text(self):
        """Test that replaying an identical event stream yields identical text."""
        body = sse_body(chunk_line("one "), "data: {broken", chunk_line("two"), "data: [DONE]")

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, content=body, headers={"Content-Type": "text/event-stream"})

        texts = []
        async with gateway(handler) as provider:
            for _ in range(2):
                stream = await provider.stream_complete(make_request())
                texts.append("".join([chunk.delta_text() async for chunk in stream]))

        assert texts == ["one two", "one two"]

    @pytest.mark.asyncio
    async def test_error_status_reported_through_stream(self):
        """Test that a failed stream request raises while iterating, not when opening."""
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(429, json={"error": {"message": "slow down", "type": "rate_limit", "code": "rl"}})

        async with gateway(handler) as provider:
            stream = await provider.stream_complete(make_request())
            with pytest.raises(GatewayError, match="slow down"):
                async for _ in stream:
                    pass

    @pytest.mark.asyncio
    async def test_cancellation_ends_with_single_error(self):
        """Test that cancelling yields exactly one StreamCancelled and then nothing."""
        async def body():
            yield (chunk_line("first") + "\n\n").encode()
            await asyncio.sleep(30)
            yield b"data: [DONE]\n\n"

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, content=body())

        cancel = asyncio.Event()
        async with gateway(handler) as provider:
            stream = await provider.stream_complete(make_request(), cancel=cancel)
            first = await stream.__anext__()
            assert first.delta_text() == "first"

            cancel.set()
            with pytest.raises(StreamCancelled):
                async for _ in stream:
                    pass
            assert [chunk async for chunk in stream] == []


class TestGatewayStream:
    """Tests for GatewayStream."""

    @pytest.mark.asyncio
    async def test_producer_error_follows_fragments(self):
        """Test that buffered fragments are delivered before the error."""
        async def produce(stream: GatewayStream) -> None:
            stream.emit(StreamChunk.model_validate({"choices": [{"index": 0, "delta": {"content": "a"}}]}))
            raise GatewayError("failed to read stream", error_type="transport")

        stream = GatewayStream().start(produce)
        received = []
        with pytest.raises(GatewayError, match="failed to read stream"):
            async for chunk in stream:
                received.append(chunk.delta_text())

        assert received == ["a"]

    @pytest.mark.asyncio
    async def test_unexpected_producer_error_is_reported(self):
        """Test that any producer crash reaches the consumer as a GatewayError."""
        async def produce(stream: GatewayStream) -> None:
            stream.emit(StreamChunk.model_validate({"choices": [{"index": 0, "delta": {"content": "a"}}]}))
            raise ValueError("bad frame")

        stream = GatewayStream().start(produce)
        received = []
        with pytest.raises(GatewayError) as exc_info:
            async for chunk in stream:
                received.append(chunk.delta_text())

        assert received == ["a"]
        assert exc_info.value.error_type == "transport"
        assert "bad frame" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_start_twice_fails(self):
        """Test that a stream cannot be started twice."""
        async def produce(stream: GatewayStream) -> None:
            return None

        stream = GatewayStream().start(produce)
        with pytest.raises(RuntimeError):
            stream.start(produce)
        await stream.aclose()


class TestOpenAIProvider:
    """Tests for OpenAIProvider against a mocked endpoint."""

    def make_provider(self, handler) -> OpenAIProvider:
        return OpenAIProvider(
            api_key="test-key",
            model="default-model",
            base_url=BASE_URL,
            http_client=httpx.AsyncClient(transport=httpx.MockTransport(handler)),
        )

    @pytest.mark.asyncio
    async def test_complete(self):
        """Test that SDK responses are converted to the wire models."""
        def handler(request: httpx.Request) -> httpx.Response:
            assert json.loads(request.content)["model"] == "default-model"
            return httpx.Response(200, json=completion_json("from sdk"))

        async with self.make_provider(handler) as provider:
            completion = await provider.complete(make_request())

        assert completion.choices[0].text() == "from sdk"
        assert completion.usage.total_tokens == 5

    @pytest.mark.asyncio
    async def test_status_error_mapped(self):
        """Test that SDK status errors become GatewayError with the provider message."""
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(400, json={"error": {"message": "bad request", "type": "invalid_request_error", "code": "x"}})

        async with self.make_provider(handler) as provider:
            with pytest.raises(GatewayError) as exc_info:
                await provider.complete(make_request())

        assert exc_info.value.status_code == 400
        assert exc_info.value.message == "bad request"

    @pytest.mark.asyncio
    async def test_stream(self):
        """Test streaming through the SDK."""
        body = sse_body(
            "data: " + json.dumps({
                "id": "c", "object": "chat.completion.chunk", "created": 0, "model": "m",
                "choices": [{"index": 0, "delta": {"content": "Hi"}, "finish_reason": None}],
            }),
            "data: " + json.dumps({
                "id": "c", "object": "chat.completion.chunk", "created": 0, "model": "m",
                "choices": [{"index": 0, "delta": {"content": "!"}, "finish_reason": "stop"}],
            }),
            "data: [DONE]",
        )

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, content=body, headers={"Content-Type": "text/event-stream"})

        async with self.make_provider(handler) as provider:
            stream = await provider.stream_complete(make_request())
            text = "".join([chunk.delta_text() async for chunk in stream])

        assert text == "Hi!"

    @pytest.mark.asyncio
    async def test_stream_skips_malformed_lines(self):
        """Test that a malformed data line is skipped rather than ending the stream."""
        body = sse_body(chunk_line("Hel"), "data: not json", ": keep-alive", chunk_line("lo"), "data: [DONE]")

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, content=body, headers={"Content-Type": "text/event-stream"})

        async with self.make_provider(handler) as provider:
            stream = await provider.stream_complete(make_request())
            text = "".join([chunk.delta_text() async for chunk in stream])

        assert text == "Hello"
        assert stream.done


class TestFactory:
    """Tests for create_llm_provider."""

    @pytest.mark.parametrize("name,cls", [
        ("gateway", GatewayProvider),
        ("vercel", GatewayProvider),
        ("openai", OpenAIProvider),
    ])
    def test_known_providers(self, name, cls):
        """Test that supported names create the matching provider."""
        assert isinstance(create_llm_provider(name, api_key="k"), cls)

    def test_unsupported_provider(self):
        """Test that an unknown name raises ValueError."""
        with pytest.raises(ValueError, match="Unsupported provider"):
            create_llm_provider("carrier-pigeon", api_key="k")

    def test_missing_api_key(self):
        """Test that a missing API key raises TypeError."""
        with pytest.raises(TypeError):
            create_llm_provider("gateway")


@pytest.mark.integration
@pytest.mark.skipif(not os.getenv("AI_API_KEY"), reason="AI_API_KEY not set")
class TestLiveGateway:
    """Tests against the real gateway (require AI_API_KEY)."""

    @pytest.mark.asyncio
    async def test_list_models(self):
        provider = create_llm_provider(
            "gateway",
            api_key=os.environ["AI_API_KEY"],
            base_url=os.getenv("AI_BASE_URL", "https://ai-gateway.vercel.sh/v1"),
        )
        async with provider:
            models = await provider.list_models()
        assert models
