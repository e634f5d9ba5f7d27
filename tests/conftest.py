"""
Shared fakes for SLI pipeline tests.

Provides a manual clock, in-memory backend/ingest/monitor doubles and
queue-fed source streams so tests control exactly when data arrives.
"""
import asyncio
from typing import Any, Callable

import pytest

from engine.clock import ManualClock
from engine.collectors import CollectorManager
from engine.schemas import Datapoint, PipelineContext
from engine.stage import Stage

HOUR = 60 * 60 * 1000
START_MS = 1_700_000_000_000 // HOUR * HOUR


class FakeMonitor:
  def __init__(self):
    self.reports: list[tuple[BaseException, dict]] = []

  def report_error(self, err, tags=None):
    self.reports.append((err, dict(tags or {})))


class FakeBackend:
  """Serves canned datapoints per query and records every call."""

  def __init__(self, data: dict[str, list[list[float]]] | None = None):
    self.data = dict(data or {})
    self.calls: list[dict[str, Any]] = []
    self.fail_with: BaseException | None = None

  async def timeserieswindow(self, query, *, start_ms, end_ms, resolution_ms):
    self.calls.append({
      "query": query,
      "start_ms": start_ms,
      "end_ms": end_ms,
      "resolution_ms": resolution_ms,
    })
    if self.fail_with is not None:
      raise self.fail_with
    points = [p for p in self.data.get(query, []) if start_ms <= p[0] <= end_ms]
    return {f"{query}#0": points} if points else {}


class FakeIngest:
  def __init__(self):
    self.payloads: list[dict] = []
    self.fail_with: BaseException | None = None

  async def send(self, payload):
    if self.fail_with is not None:
      raise self.fail_with
    self.payloads.append(payload)

  @property
  def values(self) -> list[Any]:
    return [p["value"] for payload in self.payloads for points in payload.values() for p in points]


class QueueSource:
  """Async iterator fed by the test; push an exception to make it fail."""

  def __init__(self):
    self.queue: asyncio.Queue = asyncio.Queue()

  def push(self, ts: int, value: Any) -> None:
    self.queue.put_nowait(Datapoint(timestamp=ts, value=value))

  def fail(self, err: BaseException) -> None:
    self.queue.put_nowait(err)

  def close(self) -> None:
    self.queue.put_nowait(None)

  async def __aiter__(self):
    while True:
      item = await self.queue.get()
      if item is None:
        return
      if isinstance(item, BaseException):
        raise item
      yield item


class ListStage(Stage):
  """Upstream stage that emits a fixed list of items and then closes."""

  def __init__(self, name: str, items: list[Any]):
    super().__init__(name)
    self.items = list(items)

  async def run(self):
    for item in self.items:
      await self.put(item)


async def collect(stage: Stage, out: list) -> None:
  async for item in stage:
    out.append(item)


@pytest.fixture
def clock():
  return ManualClock(START_MS)


@pytest.fixture
def monitor():
  return FakeMonitor()


@pytest.fixture
def backend():
  return FakeBackend()


@pytest.fixture
def ingest():
  return FakeIngest()


@pytest.fixture
def components(clock, monitor, backend, ingest):
  return {
    "clock": clock,
    "monitor": monitor,
    "backend_client": backend,
    "ingest_client": ingest,
  }


@pytest.fixture
def ctx(components):
  return PipelineContext(
    name="sli.test",
    clock=components["clock"],
    backend_client=components["backend_client"],
    ingest_client=components["ingest_client"],
    monitor=components["monitor"],
    resources=dict(components),
  )


@pytest.fixture
def manager():
  return CollectorManager()


@pytest.fixture
def eventually():
  async def wait_for(predicate: Callable[[], bool], timeout: float = 2.0) -> None:
    async def poll():
      while not predicate():
        await asyncio.sleep(0.001)
    await asyncio.wait_for(poll(), timeout)

  return wait_for
