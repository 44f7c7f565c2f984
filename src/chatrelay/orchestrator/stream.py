import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Any

from ..errors import ChatRelayError, StreamCancelled
from .models import ChatReply, TurnOutcome

logger = logging.getLogger(__name__)

_END = object()

TurnDriver = Callable[["TurnStream"], Awaitable[TurnOutcome]]


class TurnStream:
    """Live reply of a streamed chat turn.

    Iterating yields text fragments in upstream order. The terminal
    signal comes exactly once: iteration either stops normally (the
    reply is then in `outcome.reply`) or raises the turn's error.

    Usage:
        stream = await service.process_turn(request)
        try:
            async for fragment in stream:
                print(fragment, end="")
        except ChatRelayError as e:
            print(f"failed: {e}")
        print(stream.outcome)
    """

    def __init__(self, session_id: str, cancel: asyncio.Event | None = None):
        self.session_id = session_id
        self._cancel = cancel if cancel is not None else asyncio.Event()
        self._fragments: asyncio.Queue[Any] = asyncio.Queue()
        self._outcome: TurnOutcome | None = None
        self._task: asyncio.Task[None] | None = None
        self._finished = False

    @property
    def cancel_token(self) -> asyncio.Event:
        return self._cancel

    @property
    def outcome(self) -> TurnOutcome | None:
        """Terminal outcome, once the turn has finished."""
        return self._outcome

    def cancel(self) -> None:
        """Stop the turn; partial text is still persisted."""
        self._cancel.set()

    def start(self, driver: TurnDriver) -> "TurnStream":
        if self._task is not None:
            raise RuntimeError("turn already started")
        self._task = asyncio.create_task(self._run(driver))
        return self

    def emit(self, fragment: str) -> None:
        """Forward a fragment to the caller (driver side)."""
        self._fragments.put_nowait(fragment)

    async def _run(self, driver: TurnDriver) -> None:
        outcome = TurnOutcome(error=StreamCancelled("turn aborted"))
        try:
            outcome = await driver(self)
        except ChatRelayError as e:
            outcome = TurnOutcome(error=e)
        except Exception as e:
            logger.exception("Turn driver crashed")
            outcome = TurnOutcome(error=e)
        finally:
            self._outcome = outcome
            self._fragments.put_nowait(_END)

    def __aiter__(self) -> "TurnStream":
        return self

    async def __anext__(self) -> str:
        if self._finished:
            raise StopAsyncIteration
        if self._cancel.is_set():
            await self._drain()
            self._terminate()
        item = await self._fragments.get()
        if item is _END:
            self._terminate()
        return item

    async def _drain(self) -> None:
        while await self._fragments.get() is not _END:
            pass

    def _terminate(self) -> None:
        self._finished = True
        outcome = self._outcome
        if outcome is not None and outcome.error is not None:
            raise outcome.error
        raise StopAsyncIteration

    async def wait(self) -> TurnOutcome:
        """Wait for the turn to finish without consuming fragments."""
        if self._task is not None:
            await asyncio.gather(self._task, return_exceptions=True)
        assert self._outcome is not None
        return self._outcome

    async def result(self) -> ChatReply:
        """Consume the stream and return the reply.

        Raises:
            Exception: The turn's terminal error
        """
        async for _ in self:
            pass
        outcome = await self.wait()
        if outcome.error is not None:
            raise outcome.error
        assert outcome.reply is not None
        return outcome.reply

    async def aclose(self) -> None:
        """Cancel the turn if it is still running and wait for it to settle.

        The driver sees the cancellation through the token, so whatever
        text arrived before it is still persisted.
        """
        if self._task is None:
            return
        if not self._task.done():
            self._cancel.set()
        await self.wait()

    async def __aenter__(self) -> "TurnStream":
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.aclose()
