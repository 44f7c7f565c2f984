"""Pytest configuration and shared fixtures."""
import asyncio
import json
from datetime import datetime, timezone

import pytest

from chatrelay.llm import ChatCompletion, ChatRequest, GatewayStream, LLMProvider, StreamChunk
from chatrelay.memory import InMemoryHistoryStore, SQLiteHistoryStore
from chatrelay.orchestrator import ChatService
from chatrelay.quota import InMemoryQuotaStore, QuotaGate, SQLiteQuotaStore
from chatrelay.settings import LimitSettings, QuotaPolicy, Settings
from chatrelay.tools import create_default_registry, create_search_registry

FIXED_NOW = datetime(2024, 3, 5, 14, 7, 9, tzinfo=timezone.utc)


def fixed_clock() -> datetime:
    return FIXED_NOW


def make_completion(
    text: str | None = "",
    tool_calls: list[dict] | None = None,
    total_tokens: int | None = 7,
    choices: bool = True
) -> ChatCompletion:
    """Build a completion the way the gateway would return it."""
    payload: dict = {"id": "cmpl-1", "object": "chat.completion", "model": "test-model", "choices": []}
    if choices:
        message: dict = {"role": "assistant", "content": text}
        if tool_calls:
            message["tool_calls"] = tool_calls
        payload["choices"].append({"index": 0, "message": message, "finish_reason": "stop"})
    if total_tokens is not None:
        payload["usage"] = {"prompt_tokens": 2, "completion_tokens": total_tokens - 2, "total_tokens": total_tokens}
    return ChatCompletion.model_validate(payload)


def tool_call(name: str, arguments: dict | str, call_id: str = "call_1") -> dict:
    args = arguments if isinstance(arguments, str) else json.dumps(arguments)
    return {"id": call_id, "type": "function", "function": {"name": name, "arguments": args}}


def text_chunks(pieces: list[str], total_tokens: int | None = 7) -> list[StreamChunk]:
    """Stream chunks carrying `pieces` as deltas; usage on the last one."""
    chunks = [
        StreamChunk.model_validate({"choices": [{"index": 0, "delta": {"content": piece}}]})
        for piece in pieces
    ]
    if total_tokens is not None:
        chunks.append(StreamChunk.model_validate({
            "choices": [{"index": 0, "delta": {}, "finish_reason": "stop"}],
            "usage": {"prompt_tokens": 1, "completion_tokens": total_tokens - 1, "total_tokens": total_tokens},
        }))
    return chunks


class FakeProvider(LLMProvider):
    """Scripted provider: returns canned completions and stream chunks."""

    def __init__(
        self,
        completion: ChatCompletion | None = None,
        chunks: list[StreamChunk] | None = None,
        error: Exception | None = None,
        stream_error: Exception | None = None,
        delay: float = 0.0
    ):
        self.completion = completion or make_completion("hello")
        self.chunks = chunks if chunks is not None else text_chunks(["hel", "lo"])
        self.error = error
        self.stream_error = stream_error
        self.delay = delay
        self.requests: list[ChatRequest] = []
        self.closed = False

    @property
    def default_model(self) -> str:
        return "test-model"

    async def complete(self, request: ChatRequest) -> ChatCompletion:
        self.requests.append(request)
        if self.error is not None:
            raise self.error
        return self.completion

    async def stream_complete(self, request: ChatRequest, cancel: asyncio.Event | None = None) -> GatewayStream:
        self.requests.append(request)

        async def produce(stream: GatewayStream) -> None:
            if self.error is not None:
                raise self.error
            for chunk in self.chunks:
                stream.raise_if_cancelled()
                if self.delay:
                    await asyncio.sleep(self.delay)
                stream.emit(chunk)
            if self.stream_error is not None:
                raise self.stream_error

        return GatewayStream(cancel).start(produce)

    async def list_models(self) -> list[str]:
        return ["test-model"]

    async def close(self) -> None:
        self.closed = True


@pytest.fixture
def settings():
    """Settings with a small replay window and generous quotas."""
    return Settings(limits=LimitSettings(history_window=10, chat_tokens_per_user=5, search_tokens_per_user=5))


@pytest.fixture
def provider():
    return FakeProvider()


@pytest.fixture
async def history():
    store = InMemoryHistoryStore()
    async with store:
        yield store


@pytest.fixture
async def sqlite_history(tmp_path):
    store = SQLiteHistoryStore(tmp_path / "history.db")
    async with store:
        yield store


@pytest.fixture(params=["memory", "sqlite"])
async def any_history(request, tmp_path):
    """Both history backends, for behaviour they must share."""
    if request.param == "memory":
        store = InMemoryHistoryStore()
    else:
        store = SQLiteHistoryStore(tmp_path / "history.db")
    async with store:
        yield store


@pytest.fixture(params=["memory", "sqlite"])
async def any_quota_store(request, tmp_path):
    """Both quota backends."""
    if request.param == "memory":
        store = InMemoryQuotaStore()
    else:
        store = SQLiteQuotaStore(tmp_path / "quota.db")
    async with store:
        yield store


@pytest.fixture
async def quota_store():
    store = InMemoryQuotaStore()
    async with store:
        await store.grant("alice", chat=5, search=5)
        yield store


def build_service(
    provider: LLMProvider,
    history,
    settings: Settings,
    quota_store=None,
    policy: QuotaPolicy = QuotaPolicy.CHARGE_AFTER,
    **kwargs
) -> ChatService:
    """ChatService wired with the deterministic built-in tools."""
    return ChatService(
        provider=provider,
        history=history,
        tools=create_default_registry(timeout=2.0, clock=fixed_clock),
        quota=QuotaGate(quota_store, policy=policy) if quota_store is not None else None,
        settings=settings,
        search_tools=create_search_registry(timeout=2.0, clock=fixed_clock),
        **kwargs
    )
