"""
Declarative input specs for SLIs.

Wire shape: {"spec": "direct"|"derived", "metric": str, "resolution": str,
"percentile": number (derived only)}.
"""
from __future__ import annotations

import json
from typing import Any, Literal, Mapping, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .errors import InvalidSpecError, UnknownSpecKindError
from .resolutions import resolution_ms

# legacy tag names, still accepted
SPEC_ALIASES = {
    "signalfx": "direct",
    "statsum": "derived",
}


def format_percentile(value: Union[int, float]) -> str:
    """95 -> "95", 95.0 -> "95", 99.99999 -> "99.99999"."""
    if float(value).is_integer():
        return str(int(value))
    return repr(float(value))


class _MetricSpec(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")

    metric: str = Field(..., min_length=1, description="Metric name in the backend")
    resolution: str = Field(..., description="Resolution name, e.g. 1h")

    @field_validator("resolution")
    @classmethod
    def _known_resolution(cls, value: str) -> str:
        resolution_ms(value)
        return value

    @property
    def resolution_ms(self) -> int:
        return resolution_ms(self.resolution)


class DirectMetric(_MetricSpec):
    spec: Literal["direct"] = "direct"


class DerivedMetric(_MetricSpec):
    """A metric published once per percentile as `<metric>.<resolution>.p<percentile>`."""

    spec: Literal["derived"] = "derived"
    percentile: Union[int, float] = Field(..., gt=0, le=100)

    @property
    def derived_name(self) -> str:
        return f"{self.metric}.{self.resolution}.p{format_percentile(self.percentile)}"

    def to_direct(self) -> DirectMetric:
        return DirectMetric(metric=self.derived_name, resolution=self.resolution)


StreamSpec = Union[DirectMetric, DerivedMetric]

_SPEC_MODELS = {
    "direct": DirectMetric,
    "derived": DerivedMetric,
}


def describe_spec(spec: Any) -> str:
    if isinstance(spec, BaseModel):
        return spec.model_dump_json()
    try:
        return json.dumps(spec, sort_keys=True, default=str)
    except (TypeError, ValueError):
        return repr(spec)


def parse_spec(raw: Any) -> StreamSpec:
    """
    Validate a wire-shape spec (or pass through an already-built model).

    Raises UnknownSpecKindError for an unrecognized `spec` tag and
    InvalidSpecError for missing fields or unknown resolutions.
    """
    if isinstance(raw, (DirectMetric, DerivedMetric)):
        return raw
    if not isinstance(raw, Mapping):
        raise InvalidSpecError(f"invalid stream spec {describe_spec(raw)}: expected a mapping")

    kind = raw.get("spec")
    kind = SPEC_ALIASES.get(kind, kind) if isinstance(kind, str) else kind
    model = _SPEC_MODELS.get(kind) if isinstance(kind, str) else None
    if model is None:
        raise UnknownSpecKindError(f"unknown stream spec type {raw.get('spec')!r}")

    data = dict(raw)
    data["spec"] = kind
    try:
        return model.model_validate(data)
    except ValidationError as err:
        fields = ", ".join(".".join(str(p) for p in e["loc"]) or "spec" for e in err.errors())
        raise InvalidSpecError(f"invalid stream spec {describe_spec(raw)} ({fields})") from err
