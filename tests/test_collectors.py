import pytest

from engine.collectors import CollectorManager
from engine.errors import DuplicateCollectorError, MissingResourceError
from engine.pipeline import SLIPipeline
from engine.schemas import BASE_REQUIREMENTS, DynamicInputs, StaticInputs
from engine.sli import declare

SPECS = [{"spec": "direct", "metric": "a", "resolution": "1h"}]


def _sum(values, ctx):
  return sum(values)


def test_declare_registers_prefixed_collector(manager):
  declaration = declare(name="api", description="api health", inputs=SPECS, aggregate=_sum, manager=manager)

  assert "sli.api" in manager
  assert declaration.collector_name == "sli.api"
  assert declaration.metric == "sli.api"
  definition = manager.get("sli.api")
  assert definition.description == "api health"
  assert definition.requires == BASE_REQUIREMENTS
  assert isinstance(declaration.inputs, StaticInputs)


def test_declare_merges_extra_requirements(manager):
  declaration = declare(name="api", inputs=SPECS, aggregate=_sum, requires="cfg", manager=manager)

  assert declaration.requires == (*BASE_REQUIREMENTS, "cfg")
  assert manager.get("sli.api").requires[-1] == "cfg"


def test_callable_inputs_become_dynamic(manager):
  declaration = declare(name="dyn", inputs=lambda ctx: SPECS, aggregate=_sum, manager=manager)

  assert isinstance(declaration.inputs, DynamicInputs)


def test_duplicate_declaration_rejected(manager):
  declare(name="api", inputs=SPECS, aggregate=_sum, manager=manager)

  with pytest.raises(DuplicateCollectorError):
    declare(name="api", inputs=SPECS, aggregate=_sum, manager=manager)
  assert len(manager) == 1


@pytest.mark.parametrize(
  "kwargs,exc",
  [
    ({"name": "", "inputs": SPECS, "aggregate": _sum}, ValueError),
    ({"name": "x", "inputs": SPECS, "aggregate": "sum"}, TypeError),
    ({"name": "x", "inputs": None, "aggregate": _sum}, TypeError),
    ({"name": "x", "inputs": SPECS[0], "aggregate": _sum}, TypeError),
  ],
)
def test_declare_rejects_bad_arguments(manager, kwargs, exc):
  with pytest.raises(exc):
    declare(manager=manager, **kwargs)
  assert len(manager) == 0


def test_test_only_collectors_hidden_by_default(manager):
  declare(name="real", inputs=SPECS, aggregate=_sum, manager=manager)
  declare(name="fixture", inputs=SPECS, aggregate=_sum, test_only=True, manager=manager)

  assert manager.names() == ["sli.real"]
  assert manager.names(include_test_only=True) == ["sli.fixture", "sli.real"]
  assert [d.name for d in manager.definitions()] == ["sli.real"]


def test_missing_resource_named_in_error(manager, components):
  declare(name="api", inputs=SPECS, aggregate=_sum, requires=["cfg"], manager=manager)

  with pytest.raises(MissingResourceError) as excinfo:
    manager.make_context("sli.api", components)

  assert excinfo.value.missing == ["cfg"]
  assert "cfg" in str(excinfo.value)


def test_context_receives_only_required_resources(manager, components):
  components["cfg"] = {"team": "infra"}
  components["unrelated"] = object()
  declare(name="api", inputs=SPECS, aggregate=_sum, requires=["cfg"], manager=manager)

  ctx = manager.make_context("sli.api", components)

  assert ctx.name == "sli.api"
  assert ctx.clock is components["clock"]
  assert ctx.resources["cfg"] == {"team": "infra"}
  assert "unrelated" not in ctx.resources


async def test_plain_collector_without_base_resources():
  manager = CollectorManager()
  seen = []

  @manager.collector(name="ping", requires=["target"])
  async def ping(ctx):
    seen.append((ctx.resources["target"], ctx.clock))
    return "pong"

  assert await manager.invoke("ping", {"target": "db", "extra": 1}) == "pong"
  assert seen == [("db", None)]


async def test_invoke_returns_running_pipeline(manager, components):
  declare(name="api", inputs=SPECS, aggregate=_sum, manager=manager)

  pipeline = await manager.invoke("sli.api", components)
  try:
    assert isinstance(pipeline, SLIPipeline)
    assert pipeline.name == "sli.api"
    assert pipeline.running
  finally:
    await pipeline.stop()


async def test_invoke_unknown_collector(manager, components):
  with pytest.raises(KeyError, match="nope"):
    await manager.invoke("nope", components)


def test_remove_and_clear(manager):
  declare(name="a", inputs=SPECS, aggregate=_sum, manager=manager)
  declare(name="b", inputs=SPECS, aggregate=_sum, manager=manager)

  manager.remove("sli.a")
  assert manager.names() == ["sli.b"]
  manager.clear()
  assert len(manager) == 0
