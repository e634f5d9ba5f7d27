"""
Metrics backend REST client.
Queries historical datapoints through the SignalFx-compatible
`/v1/timeserieswindow` endpoint.
"""
from __future__ import annotations

import logging
import os
from typing import Any, Optional

import httpx

LOGGER = logging.getLogger("sli.connectors.backend")

BACKEND_URL = os.getenv("SLI_BACKEND_URL", "https://api.signalfx.com")
REQUEST_TIMEOUT_SEC = float(os.getenv("SLI_BACKEND_TIMEOUT_SEC", "30"))


class BackendRestClient:
  """Thin async wrapper around the backend's timeseries window API."""

  def __init__(
    self,
    base_url: str = BACKEND_URL,
    token: str | None = None,
    *,
    http_client: Optional[httpx.AsyncClient] = None,
  ):
    self.base_url = base_url.rstrip("/")
    self.token = token
    self._owns_client = http_client is None
    self.client = http_client or httpx.AsyncClient(timeout=REQUEST_TIMEOUT_SEC)

  def _headers(self) -> dict[str, str]:
    headers = {"Accept": "application/json"}
    if self.token:
      headers["X-SF-Token"] = self.token
    return headers

  async def timeserieswindow(
    self,
    query: str,
    *,
    start_ms: int,
    end_ms: int,
    resolution_ms: int,
  ) -> dict[str, list[list[float]]]:
    """
    Fetch datapoints for every timeseries matching `query`.

    Returns:
      Mapping of timeseries id to [[timestamp_ms, value], ...]
    """
    response = await self.client.get(
      f"{self.base_url}/v1/timeserieswindow",
      params={
        "query": query,
        "startMs": start_ms,
        "endMs": end_ms,
        "resolution": resolution_ms,
      },
      headers=self._headers(),
    )
    response.raise_for_status()
    payload: Any = response.json()
    if not isinstance(payload, dict):
      raise ValueError(f"unexpected timeserieswindow payload for {query}")

    errors = payload.get("errors") or []
    if errors:
      LOGGER.warning("Backend reported errors for %s: %s", query, errors)

    data = payload.get("data") or {}
    return {str(tsid): list(points or []) for tsid, points in data.items()}

  async def aclose(self) -> None:
    if self._owns_client:
      await self.client.aclose()
