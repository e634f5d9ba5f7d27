from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import (
    TYPE_CHECKING,
    Any,
    AsyncIterator,
    Awaitable,
    Callable,
    Dict,
    List,
    Mapping,
    Optional,
    Protocol,
    Sequence,
    Tuple,
    Union,
)

if TYPE_CHECKING:
    from .clock import Clock

# ---------------------------------------------------------------------
# Common types
# ---------------------------------------------------------------------

Millis = int  # UTC epoch in milliseconds

SLI_PREFIX = "sli"
BASE_REQUIREMENTS: Tuple[str, ...] = ("monitor", "clock", "backend_client", "ingest_client")


@dataclass(slots=True)
class Datapoint:
    """
    One sample flowing through a pipeline.

    Sources emit numeric values; the multiplexer emits a tuple with one value
    per source, in declaration order.
    """

    timestamp: Millis
    value: Any


@dataclass(slots=True)
class NamedStream:
    name: str
    stream: AsyncIterator[Datapoint]
    resolution_ms: Optional[int] = None


# ---------------------------------------------------------------------
# Collaborator interfaces
# ---------------------------------------------------------------------


class ErrorReporter(Protocol):
    def report_error(self, err: BaseException, tags: Optional[Mapping[str, str]] = None) -> None:
        ...


class TimeseriesClient(Protocol):
    async def timeserieswindow(
        self,
        query: str,
        *,
        start_ms: Millis,
        end_ms: Millis,
        resolution_ms: int,
    ) -> Dict[str, List[List[float]]]:
        ...


class IngestClient(Protocol):
    async def send(self, payload: Dict[str, List[Dict[str, Any]]]) -> None:
        ...


# ---------------------------------------------------------------------
# Pipeline context
# ---------------------------------------------------------------------


@dataclass
class PipelineContext:
    """
    Resources handed to a running SLI and to its user callbacks.

    `resources` holds everything the runtime injected, including any extra
    names the declaration asked for via `requires`.
    """

    name: str
    clock: "Clock"
    backend_client: TimeseriesClient
    ingest_client: IngestClient
    monitor: ErrorReporter
    resources: Dict[str, Any] = field(default_factory=dict)

    @property
    def logger(self) -> logging.Logger:
        return logging.getLogger(f"sli.collector.{self.name}")

    def debug(self, msg: str) -> None:
        self.logger.debug(msg)


# ---------------------------------------------------------------------
# Declarations
# ---------------------------------------------------------------------

AggregateFn = Callable[[List[Any], PipelineContext], Any]
InputsFn = Callable[[PipelineContext], Union[Sequence[Any], Awaitable[Sequence[Any]]]]


@dataclass(frozen=True, slots=True)
class StaticInputs:
    specs: Tuple[Any, ...]


@dataclass(frozen=True, slots=True)
class DynamicInputs:
    fn: InputsFn


Inputs = Union[StaticInputs, DynamicInputs]


def as_inputs(value: Any) -> Inputs:
    if isinstance(value, (StaticInputs, DynamicInputs)):
        return value
    if callable(value):
        return DynamicInputs(value)
    if value is None or isinstance(value, (str, bytes, Mapping)):
        raise TypeError("inputs must be a list of stream specs or a callable returning one")
    return StaticInputs(tuple(value))


@dataclass(frozen=True)
class SLIDeclaration:
    name: str
    aggregate: AggregateFn
    inputs: Inputs
    description: str = ""
    requires: Tuple[str, ...] = BASE_REQUIREMENTS
    test_only: bool = False
    tick_ms: Optional[int] = None

    @property
    def collector_name(self) -> str:
        return f"{SLI_PREFIX}.{self.name}"

    @property
    def metric(self) -> str:
        return f"{SLI_PREFIX}.{self.name}"
