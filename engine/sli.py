"""
Declare an SLI, a service level indicator.

    declare(
        name="queue-latency",
        description="p95 claim latency, summed across queues",
        inputs=[
            {"spec": "derived", "metric": "queue.claim", "resolution": "1h", "percentile": 95},
            {"spec": "direct", "metric": "queue.pending", "resolution": "1h"},
        ],
        aggregate=lambda values, ctx: sum(values),
    )

`inputs` may also be a function of the PipelineContext (sync or async)
returning the input list; it is evaluated once per pipeline build. The
aggregated value is published as the gauge `sli.<name>`.
"""
from __future__ import annotations

from typing import Any, Optional, Sequence

from .collectors import CollectorManager, collector_manager
from .pipeline import SLIPipeline, build_pipeline
from .schemas import BASE_REQUIREMENTS, AggregateFn, PipelineContext, SLIDeclaration, as_inputs


def declare(
    *,
    name: str,
    aggregate: AggregateFn,
    inputs: Any,
    description: str = "",
    requires: Sequence[str] = (),
    test_only: bool = False,
    tick_ms: Optional[int] = None,
    manager: Optional[CollectorManager] = None,
) -> SLIDeclaration:
    if not name or not isinstance(name, str):
        raise ValueError("SLI declaration requires a name")
    if not callable(aggregate):
        raise TypeError(f"SLI {name} requires a callable aggregate")
    if isinstance(requires, str):
        requires = [requires]

    declaration = SLIDeclaration(
        name=name,
        aggregate=aggregate,
        inputs=as_inputs(inputs),
        description=description,
        requires=tuple(dict.fromkeys([*BASE_REQUIREMENTS, *requires])),
        test_only=test_only,
        tick_ms=tick_ms,
    )

    async def run(ctx: PipelineContext) -> SLIPipeline:
        return await build_pipeline(declaration, ctx)

    registry = manager if manager is not None else collector_manager
    registry.collector(
        name=declaration.collector_name,
        description=description,
        requires=declaration.requires,
        test_only=test_only,
    )(run)
    return declaration
