"""
SLI pipeline assembly.

sources -> received taps -> mux -> aggregate -> ingest -> log -> sink

Every stage gets the same error handler, so a failure anywhere is reported
to the monitor and logged under the name of the stage that produced it.
"""
from __future__ import annotations

import inspect
import logging
from typing import Any, Dict, List, Optional, Sequence

from .aggregation import AggregateStage
from .multiplex import MultiplexStage
from .resolver import sources_from_specs
from .schemas import DynamicInputs, PipelineContext, SLIDeclaration, StaticInputs
from .sinks import IngestStage, SinkStage, TapStage
from .specs import describe_spec
from .stage import SourceStage, Stage

LOGGER = logging.getLogger("sli.pipeline")


class SLIPipeline:
    """Handle for one running SLI pipeline."""

    def __init__(self, name: str, stages: Sequence[Stage]) -> None:
        self.name = name
        self.stages: List[Stage] = list(stages)
        self._by_name: Dict[str, Stage] = {s.name: s for s in self.stages}

    def __getitem__(self, stage_name: str) -> Stage:
        return self._by_name[stage_name]

    def stage(self, suffix: str) -> Stage:
        """Look up a stage by the part of its name after `sli.<name>.`."""
        return self._by_name[f"{self.name}.{suffix}"]

    @property
    def sink(self) -> Stage:
        return self.stages[-1]

    @property
    def running(self) -> bool:
        return self.sink.running

    @property
    def errors(self) -> Dict[str, int]:
        return {s.name: s.errors for s in self.stages if s.errors}

    def start(self) -> "SLIPipeline":
        for stage in self.stages:
            stage.start()
        return self

    async def wait(self) -> None:
        await self.sink.wait()

    async def stop(self) -> None:
        # downstream first so nothing is left blocked on a full channel
        for stage in reversed(self.stages):
            await stage.stop()


async def resolve_input_specs(declaration: SLIDeclaration, ctx: PipelineContext) -> List[Any]:
    inputs = declaration.inputs
    match inputs:
        case StaticInputs(specs=specs):
            return list(specs)
        case DynamicInputs(fn=fn):
            result = fn(ctx)
            if inspect.isawaitable(result):
                result = await result
            if result is None:
                raise TypeError(f"inputs function for {declaration.name} returned None")
            return list(result)
        case _:
            raise TypeError(f"unsupported inputs {inputs!r}")


def make_error_handler(ctx: PipelineContext):
    def handle_stage_error(stage: Stage, err: BaseException) -> None:
        ctx.monitor.report_error(err, tags={"sli": ctx.name, "stage": stage.name})
        ctx.debug(f"error from stream {stage.name}: {err}")

    return handle_stage_error


async def build_pipeline(
    declaration: SLIDeclaration,
    ctx: PipelineContext,
    *,
    start: bool = True,
    tick_ms: Optional[int] = None,
) -> SLIPipeline:
    """
    Resolve inputs, wire every stage together and (by default) start it.

    Configuration errors in the input specs propagate to the caller and no
    stage is started.
    """
    prefix = declaration.collector_name
    specs = await resolve_input_specs(declaration, ctx)
    for spec in specs:
        ctx.debug(f"input: {describe_spec(spec)}")

    sources = sources_from_specs(specs, ctx)
    if not sources:
        raise ValueError(f"SLI {declaration.name} declares no inputs")

    handle_error = make_error_handler(ctx)
    stages: List[Stage] = []

    def add(stage: Stage) -> Stage:
        stage.on_error(handle_error)
        stages.append(stage)
        return stage

    taps: List[Stage] = []
    for src in sources:
        source_stage = add(SourceStage(f"{prefix}.source.{src.name}", src))
        taps.append(
            add(
                TapStage(
                    f"{prefix}.received.{src.name}",
                    source_stage,
                    prefix=f"received from {src.name}",
                    log=ctx.debug,
                    clock=ctx.clock,
                )
            )
        )

    mux = add(
        MultiplexStage(
            f"{prefix}.mux",
            taps,
            ctx.clock,
            interval_ms=tick_ms or declaration.tick_ms,
            resolutions=[src.resolution_ms for src in sources],
        )
    )
    aggregate = add(AggregateStage(f"{prefix}.aggregate", mux, declaration.aggregate, ctx))
    ingest = add(
        IngestStage(
            f"{prefix}.ingest",
            aggregate,
            metric=declaration.metric,
            ingest=ctx.ingest_client,
            metric_type="gauge",
        )
    )
    log = add(
        TapStage(
            f"{prefix}.log",
            ingest,
            prefix="write datapoint",
            log=ctx.debug,
            clock=ctx.clock,
        )
    )
    add(SinkStage(f"{prefix}.sink", log))

    pipeline = SLIPipeline(prefix, stages)
    if start:
        pipeline.start()
        LOGGER.info("Started %s with sources=%s", prefix, [src.name for src in sources])
    return pipeline


