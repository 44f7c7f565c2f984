import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Any

from ..errors import GatewayError, StreamCancelled
from .models import StreamChunk, Usage

logger = logging.getLogger(__name__)

_CLOSED = object()

ChunkProducer = Callable[["GatewayStream"], Awaitable[None]]


class GatewayStream:
    """Handle on an in-flight streamed completion.

    Reading happens in a background task so the network read loop is
    decoupled from the consumer. Fragments are buffered in an unbounded
    queue and errors in a separate one; the fragment side always ends
    with exactly one close marker, after any error has been queued.

    Usage:
        stream = await provider.stream_complete(request, cancel=token)
        async for chunk in stream:
            print(chunk.delta_text(), end="")
        # A GatewayError (or StreamCancelled) is raised here if the
        # stream failed. Usage is available afterwards.
        print(stream.usage)
    """

    def __init__(self, cancel: asyncio.Event | None = None):
        """Initialize an unstarted stream.

        Args:
            cancel: Cancellation token; setting it stops delivery and
                reports StreamCancelled
        """
        self._cancel = cancel if cancel is not None else asyncio.Event()
        self._fragments: asyncio.Queue[Any] = asyncio.Queue()
        self._errors: asyncio.Queue[GatewayError] = asyncio.Queue()
        self._task: asyncio.Task[None] | None = None
        self._watcher: asyncio.Task[None] | None = None
        self._finished = False
        self._closed = False
        self._usage: Usage | None = None

    @property
    def cancel_token(self) -> asyncio.Event:
        return self._cancel

    @property
    def usage(self) -> Usage | None:
        """Usage from the last chunk that carried one."""
        return self._usage

    @property
    def done(self) -> bool:
        return self._finished

    def start(self, producer: ChunkProducer) -> "GatewayStream":
        """Run `producer` in a background task feeding this stream."""
        if self._task is not None:
            raise RuntimeError("stream already started")
        self._task = asyncio.create_task(self._run(producer))
        self._task.add_done_callback(self._on_task_done)
        self._watcher = asyncio.create_task(self._watch_cancel())
        return self

    def emit(self, chunk: StreamChunk) -> None:
        """Queue a parsed chunk (producer side)."""
        if chunk.usage is not None:
            self._usage = chunk.usage
        self._fragments.put_nowait(chunk)

    def raise_if_cancelled(self) -> None:
        """Producer-side check, called once per read-loop iteration."""
        if self._cancel.is_set():
            raise StreamCancelled()

    async def _run(self, producer: ChunkProducer) -> None:
        try:
            await producer(self)
        except asyncio.CancelledError:
            self._errors.put_nowait(StreamCancelled())
            if not self._cancel.is_set():
                raise
        except GatewayError as e:
            logger.warning("Stream failed: %s", e)
            self._errors.put_nowait(e)
        except Exception as e:
            logger.exception("Stream reader crashed")
            self._errors.put_nowait(
                GatewayError(f"failed to read stream: {e}", error_type="transport")
            )
        finally:
            if self._watcher is not None:
                self._watcher.cancel()
            self._close()

    def _close(self) -> None:
        if not self._closed:
            self._closed = True
            self._fragments.put_nowait(_CLOSED)

    def _on_task_done(self, task: asyncio.Task[None]) -> None:
        # A task cancelled before its first step never enters _run
        if not self._closed:
            self._errors.put_nowait(StreamCancelled())
            self._close()

    async def _watch_cancel(self) -> None:
        await self._cancel.wait()
        if self._task is not None and not self._task.done():
            self._task.cancel()

    def __aiter__(self) -> "GatewayStream":
        return self

    async def __anext__(self) -> StreamChunk:
        if self._finished:
            raise StopAsyncIteration
        if self._cancel.is_set():
            await self._finish()
        item = await self._fragments.get()
        if item is _CLOSED:
            self._finished = True
            if not self._errors.empty():
                raise self._errors.get_nowait()
            raise StopAsyncIteration
        return item

    async def _finish(self) -> None:
        """Discard buffered fragments and raise the terminal error."""
        if self._task is not None:
            await asyncio.gather(self._task, return_exceptions=True)
        while True:
            item = await self._fragments.get()
            if item is _CLOSED:
                break
        self._finished = True
        if not self._errors.empty():
            raise self._errors.get_nowait()
        raise StreamCancelled()

    async def aclose(self) -> None:
        """Stop the background reader if it is still running."""
        if self._task is not None and not self._task.done():
            self._task.cancel()
            await asyncio.gather(self._task, return_exceptions=True)
        if self._watcher is not None and not self._watcher.done():
            self._watcher.cancel()
            await asyncio.gather(self._watcher, return_exceptions=True)

    async def __aenter__(self) -> "GatewayStream":
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.aclose()
