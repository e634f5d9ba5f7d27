"""
Clock-driven multiplexer.

Holds the most recent value from each source and emits one tuple per clock
tick. Sources that have not produced a fresh sample since the previous tick
contribute their last known value (carry-forward). No tuple is emitted until
every source has reported at least once.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Any, List, Optional, Sequence

from .clock import Clock
from .schemas import Datapoint
from .stage import Stage

LOGGER = logging.getLogger("sli.multiplex")

_MISSING = object()

DEFAULT_TICK_MS = 60 * 1000
SETTLE_YIELDS = 8


class MultiplexStage(Stage):
    def __init__(
        self,
        name: str,
        sources: Sequence[Stage],
        clock: Clock,
        interval_ms: Optional[int] = None,
        resolutions: Sequence[Optional[int]] = (),
    ) -> None:
        super().__init__(name)
        if not sources:
            raise ValueError("At least one source is required to multiplex")
        self.sources = list(sources)
        self.clock = clock
        known = [r for r in resolutions if r]
        self.interval_ms = interval_ms or (min(known) if known else DEFAULT_TICK_MS)
        self.latest: List[Any] = [_MISSING] * len(self.sources)
        self.fresh: List[bool] = [False] * len(self.sources)
        self._open = len(self.sources)
        self._all_closed = asyncio.Event()

    @property
    def ready(self) -> bool:
        return all(v is not _MISSING for v in self.latest)

    async def _read(self, idx: int, source: Stage) -> None:
        try:
            async for point in source:
                value = point.value if isinstance(point, Datapoint) else point
                self.latest[idx] = value
                self.fresh[idx] = True
        finally:
            self._open -= 1
            if self._open <= 0:
                self._all_closed.set()

    async def _settle(self) -> None:
        # let sources woken at the same instant deliver before sampling
        for _ in range(SETTLE_YIELDS):
            await asyncio.sleep(0)

    async def _tick(self) -> None:
        async for tick in self.clock.ticks(self.interval_ms):
            await self._settle()
            if self._all_closed.is_set():
                return
            if not self.ready:
                missing = [s.name for s, v in zip(self.sources, self.latest) if v is _MISSING]
                LOGGER.debug("%s: withholding tick %s, no data yet from %s", self.name, tick, missing)
                continue
            stale = [s.name for s, f in zip(self.sources, self.fresh) if not f]
            if stale:
                LOGGER.debug("%s: carrying forward %s at tick %s", self.name, stale, tick)
            self.fresh = [False] * len(self.sources)
            await self.put(Datapoint(timestamp=tick, value=tuple(self.latest)))

    async def run(self) -> None:
        readers = [
            asyncio.create_task(self._read(i, src), name=f"{self.name}:read:{src.name}")
            for i, src in enumerate(self.sources)
        ]
        ticker = asyncio.create_task(self._tick(), name=f"{self.name}:tick")
        closed = asyncio.create_task(self._all_closed.wait())
        try:
            await asyncio.wait({ticker, closed}, return_when=asyncio.FIRST_COMPLETED)
            if ticker.done():
                ticker.result()
        finally:
            tasks = (ticker, closed, *readers)
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)

    async def _drain(self) -> None:
        await asyncio.gather(*(self._drain_one(s) for s in self.sources))

    @staticmethod
    async def _drain_one(source: Stage) -> None:
        async for _ in source:
            pass
