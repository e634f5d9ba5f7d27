"""
Redis Streams ingest layer.
Publishes SLI datapoints to Redis for local consumers (dashboards, `sli tail`).

Drop-in alternative to the HTTP ingest client: same `send(payload)` shape.
"""
import json
from typing import Any
import redis.asyncio as redis


STREAM_MAXLEN = 1000


class RedisIngestClient:
  """Handles publishing datapoints to Redis Streams."""

  def __init__(self, redis_url: str = "redis://localhost:6379"):
    self.redis_url = redis_url
    self.client: redis.Redis | None = None

  async def connect(self) -> None:
    """Establish Redis connection."""
    if self.client is None:
      self.client = redis.from_url(self.redis_url, decode_responses=True)

  async def disconnect(self) -> None:
    """Close Redis connection."""
    if self.client:
      await self.client.aclose()
      self.client = None

  @staticmethod
  def stream_key(metric: str) -> str:
    return f"sli:{metric}"

  async def send(self, payload: dict[str, list[dict[str, Any]]]) -> None:
    """
    Publish datapoints, one stream entry each.

    Args:
      payload: Mapping of metric type ("gauge", ...) to datapoint dicts
    """
    if not self.client:
      raise RuntimeError("RedisIngestClient not connected")

    for metric_type, points in payload.items():
      for point in points:
        entry = dict(point)
        entry["type"] = metric_type
        await self.client.xadd(
          self.stream_key(point["metric"]),
          {"data": json.dumps(entry, default=str)},
          maxlen=STREAM_MAXLEN,
        )

  async def read_stream(
    self,
    metric: str,
    last_id: str = "0",
    block: int | None = 1000,
    count: int = 100,
  ) -> list[tuple[str, dict]]:
    """
    Read datapoints published for a metric.

    Args:
      metric: Full metric name (e.g. "sli.api-latency")
      last_id: ID of last seen entry ("0" for all, "$" for new only)
      block: Milliseconds to block waiting for new entries (None = don't block)

    Returns:
      List of (entry_id, datapoint) tuples
    """
    if not self.client:
      raise RuntimeError("RedisIngestClient not connected")

    result = await self.client.xread(
      {self.stream_key(metric): last_id},
      count=count,
      block=block,
    )

    if not result:
      return []

    # result format: [(stream_key, [(id, {field: value}), ...])]
    points = []
    for _, entries in result:
      for entry_id, fields in entries:
        points.append((entry_id, json.loads(fields["data"])))

    return points

  async def delete_stream(self, metric: str) -> None:
    if not self.client:
      raise RuntimeError("RedisIngestClient not connected")
    await self.client.delete(self.stream_key(metric))
