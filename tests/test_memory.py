"""Unit tests for the memory module (conversation history)."""
import asyncio

import pytest

from chatrelay.chat import InlineImage, MultimodalContent, Role, TextBlock, TextContent, Turn
from chatrelay.errors import SessionAccessDenied
from chatrelay.memory import (
    HistoryStore,
    InMemoryHistoryStore,
    SearchHit,
    SearchRecord,
    SQLiteHistoryStore,
    create_history_store,
)


def text_turn(session_id: str, role: Role, text: str) -> Turn:
    return Turn(session_id=session_id, role=role, content=TextContent(text=text))


class TestHistoryStoreInterface:
    """Tests for the abstract HistoryStore interface."""

    def test_store_is_abstract(self):
        """Test that HistoryStore cannot be instantiated directly."""
        with pytest.raises(TypeError):
            HistoryStore()  # type: ignore


class TestHistoryStore:
    """Behaviour shared by every backend."""

    @pytest.mark.asyncio
    async def test_replay_window(self, any_history):
        """Test that replay returns the most recent turns, oldest first."""
        await any_history.create_session("alice", session_id="s1")
        for i in range(15):
            role = Role.USER if i % 2 == 0 else Role.ASSISTANT
            await any_history.append_turn(text_turn("s1", role, f"turn {i}"))

        replay = await any_history.replay_history("s1", 10)

        assert [t.content.text for t in replay] == [f"turn {i}" for i in range(5, 15)]

    @pytest.mark.asyncio
    async def test_replay_zero_window(self, any_history):
        await any_history.create_session("alice", session_id="s1")
        await any_history.append_turn(text_turn("s1", Role.USER, "hi"))
        assert await any_history.replay_history("s1", 0) == []

    @pytest.mark.asyncio
    async def test_exchange_order(self, any_history):
        """Test that the user turn is stored before its reply."""
        await any_history.create_session("alice", session_id="s1")
        user = text_turn("s1", Role.USER, "question")
        reply = text_turn("s1", Role.ASSISTANT, "answer")

        ids = await any_history.append_exchange(user, reply)

        assert ids == (user.id, reply.id)
        turns = await any_history.list_turns("s1")
        assert [t.role for t in turns] == [Role.USER, Role.ASSISTANT]

    @pytest.mark.asyncio
    async def test_system_turns_rejected(self, any_history):
        """Test that system turns are never persisted."""
        await any_history.create_session("alice", session_id="s1")
        with pytest.raises(ValueError):
            await any_history.append_turn(text_turn("s1", Role.SYSTEM, "rules"))

    @pytest.mark.asyncio
    async def test_multimodal_roundtrip(self, any_history):
        """Test that multimodal content and token cost are preserved."""
        await any_history.create_session("alice", session_id="s1")
        turn = Turn(
            session_id="s1",
            role=Role.USER,
            content=MultimodalContent(parts=[
                TextBlock(text="what is this?"),
                InlineImage(data=b"\x89PNG", media_type="image/png"),
            ]),
            token_cost=3,
        )
        await any_history.append_turn(turn)

        (stored,) = await any_history.list_turns("s1")

        assert stored.id == turn.id
        assert stored.content == turn.content
        assert stored.token_cost == 3

    @pytest.mark.asyncio
    async def test_ensure_session(self, any_history):
        """Test that sessions are created on first use and owned by that user."""
        created = await any_history.ensure_session("s1", "alice")
        again = await any_history.ensure_session("s1", "alice")

        assert created.id == again.id == "s1"
        with pytest.raises(SessionAccessDenied):
            await any_history.ensure_session("s1", "mallory")

    @pytest.mark.asyncio
    async def test_ensure_session_concurrently(self, any_history):
        """Test that racing first turns share one session."""
        sessions = await asyncio.gather(*[any_history.ensure_session("s1", "alice") for _ in range(5)])
        assert {s.id for s in sessions} == {"s1"}

    @pytest.mark.asyncio
    async def test_create_duplicate_session(self, any_history):
        await any_history.create_session("alice", session_id="s1")
        with pytest.raises(ValueError):
            await any_history.create_session("alice", session_id="s1")

    @pytest.mark.asyncio
    async def test_list_and_delete_sessions(self, any_history):
        """Test listing by owner and deleting with its turns."""
        await any_history.create_session("alice", session_id="a1")
        await any_history.create_session("alice", session_id="a2")
        await any_history.create_session("bob", session_id="b1")
        await any_history.append_turn(text_turn("a1", Role.USER, "hi"))

        assert {s.id for s in await any_history.list_sessions("alice")} == {"a1", "a2"}
        assert not await any_history.delete_session("a1", "bob")
        assert await any_history.delete_session("a1", "alice")
        assert await any_history.get_session("a1") is None
        assert await any_history.list_turns("a1") == []

    @pytest.mark.asyncio
    async def test_search_records(self, any_history):
        """Test that searches are listed newest first."""
        for query in ("first", "second"):
            await any_history.record_search(SearchRecord(
                user_id="alice",
                query=query,
                results=[SearchHit(title="t", content="c", score=1.0)],
                token_cost=2,
            ))

        records = await any_history.list_searches("alice")

        assert [r.query for r in records] == ["second", "first"]
        assert records[0].results[0].score == 1.0
        assert await any_history.list_searches("bob") == []


class TestSQLiteHistoryStore:
    """SQLite-specific behaviour."""

    @pytest.mark.asyncio
    async def test_persists_across_connections(self, tmp_path):
        """Test that turns survive reconnecting."""
        path = tmp_path / "h.db"
        async with SQLiteHistoryStore(path) as store:
            await store.create_session("alice", session_id="s1")
            await store.append_turn(text_turn("s1", Role.USER, "remember me"))

        async with SQLiteHistoryStore(path) as store:
            turns = await store.replay_history("s1", 10)

        assert [t.content.text for t in turns] == ["remember me"]

    @pytest.mark.asyncio
    async def test_turn_for_unknown_session_fails(self, sqlite_history):
        """Test that turns need an existing session."""
        with pytest.raises(Exception):
            await sqlite_history.append_turn(text_turn("ghost", Role.USER, "hi"))
        assert await sqlite_history.list_turns("ghost") == []


    @pytest.mark.asyncio
    async def test_interrupted_exchange_is_rolled_back(self, sqlite_history, monkeypatch):
        """Test that a cancellation between the two inserts leaves nothing behind."""
        from chatrelay.memory import sqlite as sqlite_module

        real_encode = sqlite_module.encode_content
        calls = []

        def encode_then_cancel(content):
            calls.append(content)
            if len(calls) == 2:
                raise asyncio.CancelledError()
            return real_encode(content)

        monkeypatch.setattr(sqlite_module, "encode_content", encode_then_cancel)
        await sqlite_history.create_session("alice", session_id="s1")

        with pytest.raises(asyncio.CancelledError):
            await sqlite_history.append_exchange(
                text_turn("s1", Role.USER, "question"),
                text_turn("s1", Role.ASSISTANT, "answer"),
            )
        await sqlite_history.append_exchange(
            text_turn("s1", Role.USER, "again"),
            text_turn("s1", Role.ASSISTANT, "reply"),
        )

        turns = await sqlite_history.list_turns("s1")
        assert [t.content.text for t in turns] == ["again", "reply"]


class TestHistoryFactory:
    """Tests for create_history_store."""

    def test_memory_backend(self):
        assert isinstance(create_history_store("memory"), InMemoryHistoryStore)

    def test_sqlite_backend(self, tmp_path):
        store = create_history_store("sqlite", path=tmp_path / "x.db")
        assert store.backend_type == "sqlite"

    def test_unsupported_backend(self):
        """Test that unknown backends raise ValueError."""
        with pytest.raises(ValueError, match="Unsupported history backend"):
            create_history_store("postgres")
