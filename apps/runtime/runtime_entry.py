"""Service entrypoint: build shared components and run every declared SLI."""
from __future__ import annotations

import asyncio
import importlib
import logging
import os
import signal
from typing import Any, Iterable

from apps.runtime import CollectorRuntime
from apps.runtime.monitor import Monitor
from connectors.backend_rest import BACKEND_URL, BackendRestClient
from connectors.ingest import INGEST_URL, IngestClient
from engine.clock import SystemClock
from engine.dispatch import RedisIngestClient

LOGGER = logging.getLogger("sli.runtime.entry")

ACCESS_TOKEN = os.getenv("SLI_ACCESS_TOKEN")
INGEST_BACKEND = os.getenv("SLI_INGEST_BACKEND", "http").lower()
REDIS_URL = os.getenv("REDIS_URL", "redis://localhost:6379")
SLI_MODULES = os.getenv("SLI_MODULES", "")
LOG_LEVEL = os.getenv("SLI_LOG_LEVEL", "INFO").upper()
INCLUDE_TEST_ONLY = os.getenv("SLI_INCLUDE_TEST_ONLY", "0") == "1"


def configure_logging(level: str = LOG_LEVEL) -> None:
  logging.basicConfig(
    level=getattr(logging, level, logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
  )


def load_declarations(modules: Iterable[str] | str = SLI_MODULES) -> list[str]:
  """Import modules whose import side effect is calling `declare(...)`."""
  if isinstance(modules, str):
    modules = [m.strip() for m in modules.split(",")]
  loaded = []
  for module in modules:
    if not module:
      continue
    importlib.import_module(module)
    loaded.append(module)
  LOGGER.info("Loaded SLI modules: %s", loaded)
  return loaded


async def build_components(
  ingest_backend: str = INGEST_BACKEND,
  token: str | None = ACCESS_TOKEN,
) -> dict[str, Any]:
  if ingest_backend == "redis":
    ingest: Any = RedisIngestClient(REDIS_URL)
    await ingest.connect()
  elif ingest_backend == "http":
    ingest = IngestClient(INGEST_URL, token)
  else:
    raise ValueError(f"Unknown SLI_INGEST_BACKEND '{ingest_backend}'")

  return {
    "monitor": Monitor(),
    "clock": SystemClock(),
    "backend_client": BackendRestClient(BACKEND_URL, token),
    "ingest_client": ingest,
  }


async def close_components(components: dict[str, Any]) -> None:
  for key in ("backend_client", "ingest_client"):
    client = components.get(key)
    if isinstance(client, RedisIngestClient):
      await client.disconnect()
    elif client is not None and hasattr(client, "aclose"):
      await client.aclose()


def install_stop_handlers(stop_event: asyncio.Event) -> None:
  """Set `stop_event` on SIGINT/SIGTERM, from inside the running loop."""
  loop = asyncio.get_running_loop()

  def _handle_stop(*_: object) -> None:
    if not stop_event.is_set():
      stop_event.set()

  for sig in (signal.SIGINT, signal.SIGTERM):
    try:
      loop.add_signal_handler(sig, _handle_stop)
    except NotImplementedError:
      # no loop signal support (Windows): hop back onto the loop thread
      signal.signal(sig, lambda *_: loop.call_soon_threadsafe(_handle_stop))


async def _run_service() -> None:
  load_declarations()
  components = await build_components()
  runtime = CollectorRuntime(components)
  await runtime.start(include_test_only=INCLUDE_TEST_ONLY)
  stop_event = asyncio.Event()
  install_stop_handlers(stop_event)

  await stop_event.wait()
  await runtime.stop()
  await close_components(components)


def main() -> None:
  configure_logging()
  asyncio.run(_run_service())


if __name__ == "__main__":
  main()
