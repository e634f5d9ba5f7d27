#!/usr/bin/env python3
"""
SLI CLI - list, run and tail declared service level indicators.
"""
import argparse
import asyncio
import contextlib
import sys
from datetime import datetime, timezone
from typing import Any, Optional

from rich.console import Console
from rich.table import Table

from apps.runtime import CollectorRuntime
from apps.runtime.runtime_entry import (
  REDIS_URL,
  SLI_MODULES,
  build_components,
  close_components,
  configure_logging,
  load_declarations,
)
from engine.collectors import CollectorManager, collector_manager
from engine.dispatch import RedisIngestClient

console = Console()


def build_table(manager: CollectorManager, include_test_only: bool = False) -> Table:
  table = Table(title="Declared SLIs", show_header=True, header_style="bold cyan")
  table.add_column("Collector", style="cyan")
  table.add_column("Description", style="white")
  table.add_column("Requires", style="green")
  table.add_column("Test only", style="yellow")

  for definition in manager.definitions(include_test_only=include_test_only):
    table.add_row(
      definition.name,
      definition.description or "-",
      ", ".join(definition.requires),
      "yes" if definition.test_only else "",
    )
  return table


def list_command(args: argparse.Namespace, manager: CollectorManager = collector_manager) -> int:
  load_declarations(args.modules)
  if not manager.names(include_test_only=args.all):
    console.print("[yellow]No SLIs declared. Pass --modules or set SLI_MODULES.[/]")
    return 1
  console.print(build_table(manager, include_test_only=args.all))
  return 0


async def run_command(args: argparse.Namespace, manager: CollectorManager = collector_manager) -> int:
  load_declarations(args.modules)
  name = args.name if args.name.startswith("sli.") else f"sli.{args.name}"
  if name not in manager:
    console.print(f"[red]Unknown SLI {name}[/]")
    return 1

  components = await build_components(ingest_backend=args.ingest)
  runtime = CollectorRuntime(components, manager)
  try:
    pipeline = await runtime.launch(name)
    console.print(f"[green]Running {name}[/] (Ctrl-C to stop)")
    await pipeline.wait()
  except asyncio.CancelledError:
    pass
  finally:
    await runtime.stop()
    await close_components(components)
    errors = components["monitor"].to_dict()
    if errors["total"]:
      console.print(f"[red]{errors['total']} error(s) reported[/]: {errors['by_sli']}")
  return 0


def format_point(point: dict[str, Any]) -> str:
  ts = point.get("timestamp")
  when = datetime.fromtimestamp(ts / 1000, tz=timezone.utc).isoformat() if ts is not None else "?"
  return f"[cyan]{when}[/] {point.get('metric')} = [bold green]{point.get('value')}[/]"


async def tail_command(args: argparse.Namespace, client: Optional[RedisIngestClient] = None) -> int:
  client = client or RedisIngestClient(args.redis)
  await client.connect()
  metric = args.metric if args.metric.startswith("sli.") else f"sli.{args.metric}"
  last_id = "0" if args.from_start else "$"
  block = None if args.once else 1000
  try:
    while True:
      for entry_id, point in await client.read_stream(metric, last_id=last_id, block=block):
        last_id = entry_id
        console.print(format_point(point))
      if args.once:
        break
  finally:
    await client.disconnect()
  return 0


def build_parser() -> argparse.ArgumentParser:
  parser = argparse.ArgumentParser(prog="sli", description="Service level indicator collectors")
  parser.add_argument("--log-level", default="WARNING", help="Python logging level")
  sub = parser.add_subparsers(dest="command", required=True)

  p_list = sub.add_parser("list", help="List declared SLIs")
  p_list.add_argument("--modules", default=SLI_MODULES, help="Comma-separated declaration modules")
  p_list.add_argument("--all", action="store_true", help="Include test-only SLIs")

  p_run = sub.add_parser("run", help="Run one SLI until interrupted")
  p_run.add_argument("name", help="SLI name, with or without the sli. prefix")
  p_run.add_argument("--modules", default=SLI_MODULES, help="Comma-separated declaration modules")
  p_run.add_argument("--ingest", default="http", choices=["http", "redis"], help="Ingest backend")

  p_tail = sub.add_parser("tail", help="Print datapoints published to Redis")
  p_tail.add_argument("metric", help="SLI name or full metric name")
  p_tail.add_argument("--redis", default=REDIS_URL, help="Redis URL")
  p_tail.add_argument("--from-start", action="store_true", help="Replay retained datapoints first")
  p_tail.add_argument("--once", action="store_true", help="Exit after the first read")
  return parser


def main(argv: Optional[list[str]] = None) -> int:
  args = build_parser().parse_args(argv)
  configure_logging(args.log_level.upper())

  if args.command == "list":
    return list_command(args)

  coro = run_command(args) if args.command == "run" else tail_command(args)
  with contextlib.suppress(KeyboardInterrupt):
    return asyncio.run(coro)
  console.print("\n[yellow]Stopped[/]")
  return 0


if __name__ == "__main__":
  sys.exit(main())
