"""
Datapoint ingestion client.
Publishes SLI values through the SignalFx-compatible `/v2/datapoint` endpoint.
"""
from __future__ import annotations

import os
from typing import Any, Optional

import httpx

INGEST_URL = os.getenv("SLI_INGEST_URL", "https://ingest.signalfx.com")
REQUEST_TIMEOUT_SEC = float(os.getenv("SLI_INGEST_TIMEOUT_SEC", "10"))


class IngestClient:
  """POSTs datapoint batches keyed by metric type (gauge, counter, ...)."""

  def __init__(
    self,
    base_url: str = INGEST_URL,
    token: str | None = None,
    *,
    http_client: Optional[httpx.AsyncClient] = None,
  ):
    self.base_url = base_url.rstrip("/")
    self.token = token
    self._owns_client = http_client is None
    self.client = http_client or httpx.AsyncClient(timeout=REQUEST_TIMEOUT_SEC)

  async def send(self, payload: dict[str, list[dict[str, Any]]]) -> None:
    headers = {"Content-Type": "application/json"}
    if self.token:
      headers["X-SF-Token"] = self.token
    response = await self.client.post(
      f"{self.base_url}/v2/datapoint",
      json=payload,
      headers=headers,
    )
    response.raise_for_status()

  async def aclose(self) -> None:
    if self._owns_client:
      await self.client.aclose()
