"""
Runtime manager - launches every declared collector and keeps track of the
running SLI pipelines (start, stop, status).
"""
from __future__ import annotations

import asyncio
import logging
from typing import Any, Mapping

from engine.collectors import CollectorManager, collector_manager
from engine.pipeline import SLIPipeline

LOGGER = logging.getLogger("sli.runtime")


class CollectorRuntime:
  """Invokes collectors with injected components and tracks what they return."""

  def __init__(
    self,
    components: Mapping[str, Any],
    manager: CollectorManager | None = None,
  ):
    self.components = dict(components)
    self.manager = manager if manager is not None else collector_manager
    self.active: dict[str, Any] = {}
    self.failed: dict[str, str] = {}

  async def start(self, include_test_only: bool = False) -> None:
    """Launch every registered collector; one failing never stops the rest."""
    for name in self.manager.names(include_test_only=include_test_only):
      if name in self.active:
        continue
      try:
        await self.launch(name)
      except Exception as err:
        self.failed[name] = str(err)
        LOGGER.error("Collector %s failed to start: %s", name, err)
        monitor = self.components.get("monitor")
        if monitor is not None:
          monitor.report_error(err, tags={"sli": name, "stage": "build"})
    LOGGER.info(
      "Runtime started: running=%s failed=%s",
      self.list_running(),
      sorted(self.failed),
    )

  async def launch(self, name: str) -> Any:
    """
    Invoke a single collector.

    Args:
      name: Collector name (e.g. "sli.api-latency")

    Returns:
      Whatever the collector returned (an SLIPipeline for declared SLIs)
    """
    if name in self.active:
      raise ValueError(f"Collector {name} already running")

    handle = await self.manager.invoke(name, self.components)
    self.active[name] = handle
    self.failed.pop(name, None)
    return handle

  async def stop_collector(self, name: str) -> None:
    handle = self.active.pop(name, None)
    if handle is None:
      raise ValueError(f"Collector {name} not running")
    await _stop_handle(handle)

  async def stop(self) -> None:
    """Stop all running collectors."""
    handles = list(self.active.values())
    self.active.clear()
    await asyncio.gather(*(_stop_handle(h) for h in handles), return_exceptions=True)

  def is_running(self, name: str) -> bool:
    handle = self.active.get(name)
    if isinstance(handle, SLIPipeline):
      return handle.running
    return handle is not None

  def list_running(self) -> list[str]:
    return [name for name in self.active if self.is_running(name)]

  def status(self) -> dict[str, dict[str, Any]]:
    out: dict[str, dict[str, Any]] = {}
    for name, handle in self.active.items():
      entry: dict[str, Any] = {"running": self.is_running(name)}
      if isinstance(handle, SLIPipeline):
        entry["errors"] = handle.errors
      out[name] = entry
    for name, err in self.failed.items():
      out[name] = {"running": False, "error": err}
    return out


async def _stop_handle(handle: Any) -> None:
  if isinstance(handle, SLIPipeline):
    await handle.stop()
  elif isinstance(handle, asyncio.Task):
    handle.cancel()
    await asyncio.gather(handle, return_exceptions=True)


__all__ = ["CollectorRuntime"]
