import pytest

from connectors import metric_stream
from conftest import HOUR, START_MS
from engine.errors import InvalidSpecError, UnknownSpecKindError
from engine.resolver import source_from_spec, sources_from_specs
from engine.specs import DirectMetric


def test_direct_spec_reaches_back_two_resolutions(ctx):
  named = source_from_spec({"spec": "direct", "metric": "queue.pending", "resolution": "1h"}, ctx)

  assert named.name == "queue.pending"
  assert named.resolution_ms == HOUR
  assert named.stream.query == "sf_metric:queue.pending"
  assert named.stream.start == ctx.clock.msec() - 2 * HOUR
  assert named.stream.clock is ctx.clock
  assert named.stream.client is ctx.backend_client


@pytest.mark.parametrize("resolution,duration", [("5m", 5 * 60 * 1000), ("1d", 24 * HOUR)])
def test_lookback_scales_with_resolution(ctx, resolution, duration):
  named = source_from_spec({"spec": "direct", "metric": "m", "resolution": resolution}, ctx)

  assert named.stream.start == START_MS - 2 * duration


def test_derived_spec_matches_rewritten_direct(ctx):
  derived = source_from_spec(
    {"spec": "derived", "metric": "x", "resolution": "1h", "percentile": 95},
    ctx,
  )
  direct = source_from_spec(DirectMetric(metric="x.1h.p95", resolution="1h"), ctx)

  assert derived.name == direct.name == "x.1h.p95"
  assert derived.stream.query == direct.stream.query == "sf_metric:x.1h.p95"
  assert derived.stream.start == direct.stream.start
  assert derived.resolution_ms == direct.resolution_ms


async def test_derived_spec_queries_backend(ctx, backend):
  named = source_from_spec(
    {"spec": "derived", "metric": "x", "resolution": "1h", "percentile": 95},
    ctx,
  )
  await named.stream.poll_once()

  assert backend.calls[0]["query"] == "sf_metric:x.1h.p95"
  assert backend.calls[0]["start_ms"] == START_MS - 2 * HOUR
  assert backend.calls[0]["resolution_ms"] == HOUR


@pytest.fixture
def constructed(monkeypatch):
  created = []
  real = metric_stream.MetricPollStream

  def tracking(**kwargs):
    stream = real(**kwargs)
    created.append(stream)
    return stream

  monkeypatch.setattr(metric_stream, "MetricPollStream", tracking)
  return created


def test_unknown_kind_builds_no_stream(ctx, constructed):
  with pytest.raises(UnknownSpecKindError):
    source_from_spec({"spec": "unknown"}, ctx)

  assert constructed == []


@pytest.mark.parametrize(
  "raw",
  [
    {"spec": "direct", "resolution": "1h"},
    {"spec": "direct", "metric": "m"},
    {"spec": "direct", "metric": "m", "resolution": "3h"},
  ],
)
def test_invalid_spec_builds_no_stream(ctx, constructed, raw):
  with pytest.raises(InvalidSpecError):
    source_from_spec(raw, ctx)

  assert constructed == []


def test_bad_spec_in_list_aborts_before_any_stream(ctx, constructed):
  specs = [
    {"spec": "direct", "metric": "ok", "resolution": "1h"},
    {"spec": "direct", "metric": "bad", "resolution": "never"},
  ]
  with pytest.raises(InvalidSpecError):
    sources_from_specs(specs, ctx)

  assert constructed == []


def test_sources_keep_declaration_order(ctx):
  specs = [
    {"spec": "direct", "metric": "b", "resolution": "1h"},
    {"spec": "direct", "metric": "a", "resolution": "5m"},
  ]
  names = [s.name for s in sources_from_specs(specs, ctx)]

  assert names == ["b", "a"]
