"""
Clock abstraction shared by every stage of every pipeline.

Ticks are aligned to multiples of the interval so that sources with the same
resolution line up on the same timestamps.
"""
from __future__ import annotations

import abc
import asyncio
import heapq
import itertools
import time
from typing import AsyncIterator, List, Tuple

from .schemas import Millis


class Clock(abc.ABC):
    @abc.abstractmethod
    def msec(self) -> Millis:
        raise NotImplementedError

    @abc.abstractmethod
    async def sleep(self, ms: float) -> None:
        raise NotImplementedError

    async def sleep_until(self, deadline: Millis) -> None:
        delay = deadline - self.msec()
        if delay > 0:
            await self.sleep(delay)

    async def ticks(self, interval_ms: int) -> AsyncIterator[Millis]:
        if interval_ms <= 0:
            raise ValueError("tick interval must be positive")
        last = self.msec() // interval_ms * interval_ms
        while True:
            nxt = last + interval_ms
            await self.sleep_until(nxt)
            # skip ticks missed while suspended rather than firing a burst
            now = self.msec()
            last = max(nxt, now // interval_ms * interval_ms)
            yield last


class SystemClock(Clock):
    def msec(self) -> Millis:
        return int(time.time() * 1000)

    async def sleep(self, ms: float) -> None:
        await asyncio.sleep(max(ms, 0) / 1000.0)


class ManualClock(Clock):
    """Clock that only moves when told to; sleepers wake on `advance`."""

    def __init__(self, start_ms: Millis = 0) -> None:
        self._now = start_ms
        self._sleepers: List[Tuple[Millis, int, asyncio.Future]] = []
        self._counter = itertools.count()

    def msec(self) -> Millis:
        return self._now

    async def sleep(self, ms: float) -> None:
        if ms <= 0:
            await asyncio.sleep(0)
            return
        fut = asyncio.get_running_loop().create_future()
        heapq.heappush(self._sleepers, (self._now + int(ms), next(self._counter), fut))
        await fut

    @property
    def pending(self) -> int:
        return sum(1 for _, _, fut in self._sleepers if not fut.done())

    async def advance(self, ms: int, *, settle: int = 20) -> None:
        self._now += ms
        while self._sleepers and self._sleepers[0][0] <= self._now:
            _, _, fut = heapq.heappop(self._sleepers)
            if not fut.done():
                fut.set_result(None)
        for _ in range(settle):
            await asyncio.sleep(0)
