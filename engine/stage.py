"""
Uniform pipeline stage.

Every stage owns one task, one bounded output channel and one error channel.
A failure inside a stage is emitted on its error channel and closes its
output; downstream stages simply see end-of-stream.
"""
from __future__ import annotations

import asyncio
import contextlib
import logging
from datetime import datetime, timezone
from typing import Any, AsyncIterator, Callable, List, Optional

from .clock import Clock
from .schemas import Datapoint, NamedStream

LOGGER = logging.getLogger("sli.stage")

ErrorHandler = Callable[["Stage", BaseException], None]

_CLOSED = object()


class Stage:
    produces_output = True

    def __init__(self, name: str) -> None:
        self.name = name
        self.errors: int = 0
        self.emitted: int = 0
        self._handlers: List[ErrorHandler] = []
        self._queue: asyncio.Queue[Any] = asyncio.Queue(maxsize=1)
        self._task: Optional[asyncio.Task] = None
        self._closed = False

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.name}>"

    # -- error channel -------------------------------------------------

    def on_error(self, handler: ErrorHandler) -> "Stage":
        self._handlers.append(handler)
        return self

    def emit_error(self, err: BaseException) -> None:
        self.errors += 1
        if not self._handlers:
            LOGGER.error("Unhandled error from stage %s: %s", self.name, err)
            return
        for handler in self._handlers:
            try:
                handler(self, err)
            except Exception:
                LOGGER.exception("Error handler failed for stage %s", self.name)

    # -- output channel ------------------------------------------------

    async def put(self, item: Any) -> None:
        self.emitted += 1
        if self.produces_output:
            await self._queue.put(item)

    async def _close_output(self) -> None:
        if self._closed:
            return
        self._closed = True
        if self.produces_output:
            await self._queue.put(_CLOSED)

    async def __aiter__(self) -> AsyncIterator[Any]:
        while True:
            item = await self._queue.get()
            if item is _CLOSED:
                return
            yield item

    # -- lifecycle -----------------------------------------------------

    async def run(self) -> None:
        raise NotImplementedError

    def start(self) -> None:
        if self._task is not None:
            return
        self._task = asyncio.create_task(self._main(), name=f"stage:{self.name}")

    async def _main(self) -> None:
        failed = False
        try:
            await self.run()
        except asyncio.CancelledError:
            raise
        except Exception as err:
            failed = True
            self.emit_error(err)
        await self._close_output()
        if failed:
            await self._drain()

    async def _drain(self) -> None:
        # keep upstream stages flowing after this stage has given up
        upstream = getattr(self, "upstream", None)
        if isinstance(upstream, Stage):
            async for _ in upstream:
                pass

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def stop(self) -> None:
        if not self._task:
            return
        self._task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self._task

    async def wait(self) -> None:
        if self._task:
            with contextlib.suppress(asyncio.CancelledError):
                await self._task


class SourceStage(Stage):
    """Forward the datapoints of one resolved input stream."""

    def __init__(self, name: str, source: NamedStream) -> None:
        super().__init__(name)
        self.source = source

    async def run(self) -> None:
        stream = self.source.stream
        try:
            async for point in stream:
                await self.put(point)
        finally:
            closer = getattr(stream, "aclose", None)
            if closer:
                with contextlib.suppress(Exception):
                    await closer()


class TapStage(Stage):
    """Log every item passing through, then forward it unchanged."""

    def __init__(
        self,
        name: str,
        upstream: Stage,
        *,
        prefix: str,
        log: Callable[[str], None],
        clock: Clock,
    ) -> None:
        super().__init__(name)
        self.upstream = upstream
        self.prefix = prefix
        self.log = log
        self.clock = clock

    def format(self, item: Any) -> str:
        now = _iso(self.clock.msec())
        if isinstance(item, Datapoint):
            value = list(item.value) if isinstance(item.value, tuple) else item.value
            return f"{self.prefix}: {value} @ {_iso(item.timestamp)} (now {now})"
        return f"{self.prefix}: {item} (now {now})"

    async def run(self) -> None:
        async for item in self.upstream:
            self.log(self.format(item))
            await self.put(item)


class SinkStage(Stage):
    """Terminal consumer: drain and discard whatever is still produced."""

    produces_output = False

    def __init__(self, name: str, upstream: Stage) -> None:
        super().__init__(name)
        self.upstream = upstream

    async def run(self) -> None:
        async for item in self.upstream:
            await self.put(item)


def _iso(ts_ms: int) -> str:
    return datetime.fromtimestamp(ts_ms / 1000, tz=timezone.utc).isoformat()
