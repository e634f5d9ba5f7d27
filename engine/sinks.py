"""
Output side of an SLI pipeline: ingest, then log, then drain.
"""
from __future__ import annotations

from typing import Any, Dict, List, Literal

from .errors import StageError
from .schemas import Datapoint, IngestClient
from .stage import SinkStage, Stage, TapStage

MetricType = Literal["gauge", "counter", "cumulative_counter"]


class IngestStage(Stage):
    """Publish each value to the ingestion client, then pass it on."""

    def __init__(
        self,
        name: str,
        upstream: Stage,
        *,
        metric: str,
        ingest: IngestClient,
        metric_type: MetricType = "gauge",
    ) -> None:
        super().__init__(name)
        self.upstream = upstream
        self.metric = metric
        self.ingest = ingest
        self.metric_type = metric_type

    def payload(self, point: Datapoint) -> Dict[str, List[Dict[str, Any]]]:
        entry: Dict[str, Any] = {
            "metric": self.metric,
            "value": point.value,
            "timestamp": point.timestamp,
        }
        return {self.metric_type: [entry]}

    async def run(self) -> None:
        async for point in self.upstream:
            try:
                await self.ingest.send(self.payload(point))
            except Exception as err:
                self.emit_error(StageError(self.name, err))
                continue
            await self.put(point)


__all__ = ["IngestStage", "MetricType", "SinkStage", "TapStage"]
