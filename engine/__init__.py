from .errors import (
    DuplicateCollectorError,
    InvalidSpecError,
    MissingResourceError,
    SLIError,
    StageError,
    UnknownSpecKindError,
)
from .schemas import Datapoint, NamedStream, PipelineContext, SLIDeclaration
from .clock import Clock, ManualClock, SystemClock
from .specs import DerivedMetric, DirectMetric, parse_spec
from .resolver import source_from_spec
from .collectors import CollectorManager, collector_manager
from .pipeline import SLIPipeline, build_pipeline
from .sli import declare

__all__ = [
    "Clock",
    "CollectorManager",
    "Datapoint",
    "DerivedMetric",
    "DirectMetric",
    "DuplicateCollectorError",
    "InvalidSpecError",
    "ManualClock",
    "MissingResourceError",
    "NamedStream",
    "PipelineContext",
    "SLIDeclaration",
    "SLIError",
    "SLIPipeline",
    "StageError",
    "SystemClock",
    "UnknownSpecKindError",
    "build_pipeline",
    "collector_manager",
    "declare",
    "parse_spec",
    "source_from_spec",
]
