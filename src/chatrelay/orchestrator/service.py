"""Conversation orchestration.

Turns one user request into an upstream call, handles tool calls,
relays streamed text and persists the exchange.
"""

import asyncio
import logging
from collections.abc import Callable, Sequence

from ..chat.builder import BuiltRequest, MessageBuilder
from ..chat.models import Role, TextContent, Turn, new_id
from ..errors import ChatRelayError, NoResponse, PersistenceError
from ..llm.base import LLMProvider
from ..llm.models import ChatCompletion, ChatMessage, ToolDefinition
from ..memory.base import HistoryStore
from ..memory.models import SearchHit, SearchRecord
from ..prompts import get_search_prompt, get_search_system_prompt
from ..quota.gate import QuotaGate
from ..quota.limiter import RateLimiter
from ..quota.models import QuotaKind
from ..settings import Settings
from ..tools import CHAT_TOOL_NAMES, SEARCH_TOOL_NAMES, ToolRegistry, create_search_registry, render_results
from .accumulator import ToolCallAccumulator
from .models import ChatReply, ChatTurnRequest, SearchResponse, TurnOutcome, TurnState
from .stream import TurnStream

logger = logging.getLogger(__name__)

StateCallback = Callable[[str, TurnState], None]


class ChatService:
    """End-to-end handling of chat turns and searches.

    Hidden design decisions:
    - Admission order: rate limiter, then quota, then any I/O
    - Tool output replaces model text on the one-shot path (single pass,
      no second model round-trip)
    - Streamed turns are driven by a background task that persists the
      accumulated text after the last fragment or the error
    - Quota charging follows the gate's policy
    """

    def __init__(
        self,
        provider: LLMProvider,
        history: HistoryStore,
        tools: ToolRegistry,
        quota: QuotaGate | None = None,
        settings: Settings | None = None,
        rate_limiter: RateLimiter | None = None,
        search_tools: ToolRegistry | None = None,
        chat_tool_names: Sequence[str] = CHAT_TOOL_NAMES,
        search_tool_names: Sequence[str] = SEARCH_TOOL_NAMES,
    ):
        """Initialize the service.

        Args:
            provider: Upstream gateway client
            history: Conversation history store
            tools: Registry used to execute tool calls
            quota: Quota gate (None disables quota checks)
            settings: Settings bundle (defaults apply when omitted)
            rate_limiter: Per-user rate limiter (None disables limiting)
            search_tools: Registry for search requests
            chat_tool_names: Tools advertised on chat turns
            search_tool_names: Tools advertised on searches
        """
        self._settings = settings or Settings()
        self._provider = provider
        self._history = history
        self._tools = tools
        self._search_tools = search_tools or create_search_registry(
            timeout=self._settings.limits.tool_timeout
        )
        self._quota = quota
        self._limiter = rate_limiter
        self._builder = MessageBuilder(self._settings.gateway)
        self._window = self._settings.limits.history_window
        self._chat_tool_names = tuple(chat_tool_names)
        self._search_tool_names = tuple(search_tool_names)
        self._state_callback: StateCallback | None = None

    @property
    def history(self) -> HistoryStore:
        return self._history

    @property
    def provider(self) -> LLMProvider:
        return self._provider

    def set_state_callback(self, callback: StateCallback | None) -> None:
        """Set callback receiving (turn_id, state) on every transition."""
        self._state_callback = callback

    def _transition(self, turn_id: str, state: TurnState) -> None:
        logger.debug("Turn %s -> %s", turn_id, state.value)
        if self._state_callback:
            self._state_callback(turn_id, state)

    def _declarations(self, registry: ToolRegistry, names: Sequence[str]) -> list[ToolDefinition]:
        return [d.to_wire() for d in registry.declarations(names)]

    async def _admit(self, user_id: str, kind: QuotaKind) -> bool:
        if self._limiter is not None:
            self._limiter.check(user_id)
        if self._quota is None:
            return False
        return await self._quota.admit(user_id, kind)

    async def _settle(self, user_id: str, kind: QuotaKind, reserved: bool) -> None:
        if self._quota is not None:
            await self._quota.settle(user_id, kind, reserved)

    async def _refund(self, user_id: str, kind: QuotaKind, reserved: bool) -> None:
        if self._quota is not None:
            await self._quota.refund(user_id, kind, reserved)

    async def _prepare(self, request: ChatTurnRequest, turn_id: str, stream: bool) -> BuiltRequest:
        self._transition(turn_id, TurnState.BUILDING_REQUEST)
        await self._history.ensure_session(request.session_id, request.user_id)
        history = await self._history.replay_history(request.session_id, self._window)
        return await self._builder.build(
            history,
            request.text,
            request.attachments,
            tools=self._declarations(self._tools, self._chat_tool_names),
            stream=stream,
        )

    async def _persist(self, user_turn: Turn, assistant_turn: Turn) -> None:
        try:
            await self._history.append_exchange(user_turn, assistant_turn)
        except Exception as e:
            logger.error("Failed to persist exchange for session %s: %s", user_turn.session_id, e)
            raise PersistenceError(f"failed to save conversation: {e}") from e

    async def process_turn(
        self,
        request: ChatTurnRequest,
        cancel: asyncio.Event | None = None
    ) -> ChatReply | TurnStream:
        """Process one user turn.

        Returns:
            ChatReply when `request.want_stream` is false, else a TurnStream

        Raises:
            RateLimitExceeded, InsufficientQuota, SessionAccessDenied,
            AttachmentReadError: Before any upstream call
            GatewayError, NoResponse, PersistenceError: One-shot path only;
                streamed turns report these through the TurnStream
        """
        if request.want_stream:
            return await self.stream_turn(request, cancel)
        return await self.complete_turn(request)

    async def complete_turn(self, request: ChatTurnRequest) -> ChatReply:
        """One-shot path."""
        turn_id = new_id()
        reserved = await self._admit(request.user_id, QuotaKind.CHAT)
        try:
            built = await self._prepare(request, turn_id, stream=False)

            self._transition(turn_id, TurnState.AWAITING_MODEL)
            completion = await self._provider.complete(built.request)
            text = await self._reply_text(turn_id, completion)
            token_cost = completion.usage.total_tokens if completion.usage else 0

            await self._settle(request.user_id, QuotaKind.CHAT, reserved)
        except Exception:
            self._transition(turn_id, TurnState.FAILED)
            await self._refund(request.user_id, QuotaKind.CHAT, reserved)
            raise

        user_turn = Turn(session_id=request.session_id, role=Role.USER, content=built.user_content)
        assistant_turn = Turn(
            id=turn_id,
            session_id=request.session_id,
            role=Role.ASSISTANT,
            content=TextContent(text=text),
            token_cost=token_cost,
        )
        try:
            await self._persist(user_turn, assistant_turn)
        except PersistenceError:
            self._transition(turn_id, TurnState.FAILED)
            raise

        self._transition(turn_id, TurnState.DONE)
        return ChatReply(
            id=turn_id,
            session_id=request.session_id,
            text=text,
            token_cost=token_cost,
            created_at=assistant_turn.created_at,
        )

    async def _reply_text(self, turn_id: str, completion: ChatCompletion) -> str:
        if not completion.choices:
            raise NoResponse()
        choice = completion.choices[0]
        calls = choice.all_tool_calls()
        if not calls:
            return choice.text()
        self._transition(turn_id, TurnState.HANDLING_TOOL_CALLS)
        if choice.text():
            logger.debug("Discarding model text in favour of %d tool call(s)", len(calls))
        return render_results(await self._tools.run_all(calls))

    async def stream_turn(
        self,
        request: ChatTurnRequest,
        cancel: asyncio.Event | None = None
    ) -> TurnStream:
        """Streaming path.

        Admission and request building happen before this returns; the
        upstream call runs in the TurnStream's task.
        """
        turn_id = new_id()
        reserved = await self._admit(request.user_id, QuotaKind.CHAT)
        try:
            built = await self._prepare(request, turn_id, stream=True)
        except Exception:
            self._transition(turn_id, TurnState.FAILED)
            await self._refund(request.user_id, QuotaKind.CHAT, reserved)
            raise

        async def drive(out: TurnStream) -> TurnOutcome:
            return await self._drive_stream(out, request, built, turn_id, reserved)

        return TurnStream(request.session_id, cancel).start(drive)

    async def _drive_stream(
        self,
        out: TurnStream,
        request: ChatTurnRequest,
        built: BuiltRequest,
        turn_id: str,
        reserved: bool,
    ) -> TurnOutcome:
        accumulated: list[str] = []
        token_cost = 0
        error: ChatRelayError | None = None

        self._transition(turn_id, TurnState.AWAITING_MODEL)
        try:
            upstream = await self._provider.stream_complete(built.request, cancel=out.cancel_token)
            tool_calls = ToolCallAccumulator()
            saw_choice = False
            async with upstream:
                self._transition(turn_id, TurnState.STREAMING_FRAGMENTS)
                async for chunk in upstream:
                    saw_choice = saw_choice or bool(chunk.choices)
                    fragment = chunk.delta_text()
                    if fragment:
                        accumulated.append(fragment)
                        out.emit(fragment)
                    tool_calls.add(chunk)
            if upstream.usage is not None:
                token_cost = upstream.usage.total_tokens
            if not saw_choice:
                raise NoResponse()

            if tool_calls:
                self._transition(turn_id, TurnState.HANDLING_TOOL_CALLS)
                rendered = render_results(await self._tools.run_all(tool_calls.calls()))
                fragment = f"\n\n{rendered}" if accumulated else rendered
                accumulated.append(fragment)
                out.emit(fragment)

            await self._settle(request.user_id, QuotaKind.CHAT, reserved)
        except ChatRelayError as e:
            error = e

        text = "".join(accumulated)
        user_turn = Turn(session_id=request.session_id, role=Role.USER, content=built.user_content)
        assistant_turn = Turn(
            id=turn_id,
            session_id=request.session_id,
            role=Role.ASSISTANT,
            content=TextContent(text=text),
            token_cost=token_cost,
        )

        if error is not None:
            self._transition(turn_id, TurnState.FAILED)
            logger.warning("Streamed turn %s failed: %s", turn_id, error)
            await self._refund(request.user_id, QuotaKind.CHAT, reserved)
            try:
                await self._persist(user_turn, assistant_turn)
            except PersistenceError as pe:
                return TurnOutcome(error=error, persistence_error=pe)
            return TurnOutcome(error=error)

        try:
            await self._persist(user_turn, assistant_turn)
        except PersistenceError as pe:
            self._transition(turn_id, TurnState.FAILED)
            return TurnOutcome(error=pe)

        self._transition(turn_id, TurnState.DONE)
        return TurnOutcome(reply=ChatReply(
            id=turn_id,
            session_id=request.session_id,
            text=text,
            token_cost=token_cost,
            created_at=assistant_turn.created_at,
        ))

    async def process_search(self, user_id: str, query: str, limit: int = 10) -> SearchResponse:
        """Run a one-shot search request.

        Raises:
            RateLimitExceeded, InsufficientQuota, GatewayError, NoResponse,
            PersistenceError
        """
        reserved = await self._admit(user_id, QuotaKind.SEARCH)
        try:
            messages = [
                ChatMessage(role=Role.SYSTEM.value, content=get_search_system_prompt()),
                ChatMessage(role=Role.USER.value, content=get_search_prompt(query)),
            ]
            request = self._builder.request(
                messages,
                tools=self._declarations(self._search_tools, self._search_tool_names),
            )
            completion = await self._provider.complete(request)
            if not completion.choices:
                raise NoResponse()

            choice = completion.choices[0]
            calls = choice.all_tool_calls()
            if calls:
                hits = [
                    SearchHit(title=f"{r.tool_name} results", content=r.content, score=None if r.error else 1.0)
                    for r in await self._search_tools.run_all(calls)
                ]
            else:
                hits = [SearchHit(title="AI Generated Result", content=choice.text(), score=0.95)]
            token_cost = completion.usage.total_tokens if completion.usage else 1

            await self._settle(user_id, QuotaKind.SEARCH, reserved)
        except Exception:
            await self._refund(user_id, QuotaKind.SEARCH, reserved)
            raise

        record = SearchRecord(user_id=user_id, query=query, results=hits[:max(limit, 0)], token_cost=token_cost)
        try:
            await self._history.record_search(record)
        except Exception as e:
            logger.error("Failed to record search for %s: %s", user_id, e)
            raise PersistenceError(f"failed to save search query: {e}") from e

        return SearchResponse(
            id=record.id,
            query=query,
            results=record.results,
            token_cost=token_cost,
            created_at=record.created_at,
        )
