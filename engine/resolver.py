"""
Turn declarative stream specs into live, named data streams.
"""
from __future__ import annotations

from typing import Any, Iterable, List

from connectors import metric_stream

from .errors import UnknownSpecKindError
from .schemas import NamedStream, PipelineContext
from .specs import DerivedMetric, DirectMetric, describe_spec, parse_spec

# how many resolutions of history to request on the first poll
LOOKBACK_RESOLUTIONS = 2


def source_from_spec(spec: Any, ctx: PipelineContext) -> NamedStream:
    """
    Resolve one stream spec into a NamedStream.

    Configuration errors (InvalidSpecError, UnknownSpecKindError) are raised
    before any stream is constructed.
    """
    parsed = parse_spec(spec)
    match parsed:
        case DirectMetric():
            resolution_ms = parsed.resolution_ms
            stream = metric_stream.MetricPollStream(
                query=f"sf_metric:{parsed.metric}",
                resolution=parsed.resolution,
                resolution_ms=resolution_ms,
                start=ctx.clock.msec() - LOOKBACK_RESOLUTIONS * resolution_ms,
                clock=ctx.clock,
                client=ctx.backend_client,
            )
            return NamedStream(name=parsed.metric, stream=stream, resolution_ms=resolution_ms)
        case DerivedMetric():
            return source_from_spec(parsed.to_direct(), ctx)
        case _:
            raise UnknownSpecKindError(f"unknown stream spec type for {describe_spec(spec)}")


def sources_from_specs(specs: Iterable[Any], ctx: PipelineContext) -> List[NamedStream]:
    # validate everything up front so a bad spec never leaves half-built sources
    parsed = [parse_spec(spec) for spec in specs]
    return [source_from_spec(spec, ctx) for spec in parsed]
