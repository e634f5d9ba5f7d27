"""
Metric polling stream.
Repeatedly queries the backend for new datapoints of one metric and emits
them in timestamp order, advancing on the shared clock.
"""
from __future__ import annotations

import logging
from typing import AsyncIterator, Optional

from engine.clock import Clock
from engine.schemas import Datapoint, TimeseriesClient

LOGGER = logging.getLogger("sli.connectors.metric_stream")


def merge_series(data: dict[str, list[list[float]]]) -> list[tuple[int, float]]:
  """
  Collapse every returned timeseries into one, summing values that share a
  timestamp. Null values are skipped.
  """
  merged: dict[int, float] = {}
  for points in data.values():
    for point in points:
      if not point or len(point) < 2 or point[1] is None:
        continue
      ts = int(point[0])
      merged[ts] = merged.get(ts, 0.0) + float(point[1])
  return sorted(merged.items())


class MetricPollStream:
  """
  Async iterator of Datapoints for a single backend query.

  `start` is the first timestamp of interest; callers usually reach back a
  couple of resolutions so downstream stages have history to align against.
  """

  def __init__(
    self,
    *,
    query: str,
    resolution: str,
    resolution_ms: int,
    start: int,
    clock: Clock,
    client: TimeseriesClient,
    poll_ms: Optional[int] = None,
  ):
    self.query = query
    self.resolution = resolution
    self.resolution_ms = resolution_ms
    self.start = start
    self.clock = clock
    self.client = client
    self.poll_ms = poll_ms or resolution_ms
    self.cursor = start
    self.polls = 0

  def __repr__(self) -> str:
    return f"MetricPollStream({self.query!r}, resolution={self.resolution}, start={self.start})"

  async def poll_once(self) -> list[Datapoint]:
    end = self.clock.msec()
    data = await self.client.timeserieswindow(
      self.query,
      start_ms=self.cursor,
      end_ms=end,
      resolution_ms=self.resolution_ms,
    )
    self.polls += 1
    points = [
      Datapoint(timestamp=ts, value=value)
      for ts, value in merge_series(data)
      if ts >= self.cursor
    ]
    if points:
      self.cursor = points[-1].timestamp + 1
    LOGGER.debug("%s: %d new datapoints (cursor=%s)", self.query, len(points), self.cursor)
    return points

  async def __aiter__(self) -> AsyncIterator[Datapoint]:
    while True:
      for point in await self.poll_once():
        yield point
      await self.clock.sleep(self.poll_ms)
