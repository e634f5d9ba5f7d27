from __future__ import annotations

from typing import Any

from .errors import StageError
from .schemas import AggregateFn, Datapoint, PipelineContext
from .stage import Stage


class AggregateStage(Stage):
    """
    Reduce each multiplexed tuple to a single value.

    The user function is called exactly once per tuple with the values in
    source-declaration order. If it raises, the error goes out on this
    stage's error channel and nothing is emitted for that tick.
    """

    def __init__(
        self,
        name: str,
        upstream: Stage,
        aggregate: AggregateFn,
        ctx: PipelineContext,
    ) -> None:
        super().__init__(name)
        self.upstream = upstream
        self.aggregate = aggregate
        self.ctx = ctx
        self.calls: int = 0

    def apply(self, values: Any) -> Any:
        self.calls += 1
        return self.aggregate(list(values), self.ctx)

    async def run(self) -> None:
        async for point in self.upstream:
            try:
                result = self.apply(point.value)
            except Exception as err:
                self.emit_error(StageError(self.name, err))
                continue
            await self.put(Datapoint(timestamp=point.timestamp, value=result))
