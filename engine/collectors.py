"""
Collector registry.

A collector is a named, lazily-invoked unit of work plus the resources it
needs. The runtime supplies the resources and decides when to invoke it.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, List, Mapping, Optional, Sequence, Tuple

from .errors import DuplicateCollectorError, MissingResourceError
from .schemas import BASE_REQUIREMENTS, PipelineContext

LOGGER = logging.getLogger("sli.collectors")

CollectorFn = Callable[[PipelineContext], Awaitable[Any]]


@dataclass(frozen=True)
class CollectorDefinition:
    name: str
    run: CollectorFn
    description: str = ""
    requires: Tuple[str, ...] = BASE_REQUIREMENTS
    test_only: bool = False


class CollectorManager:
    def __init__(self) -> None:
        self._collectors: Dict[str, CollectorDefinition] = {}

    def __contains__(self, name: str) -> bool:
        return name in self._collectors

    def __len__(self) -> int:
        return len(self._collectors)

    def collector(
        self,
        *,
        name: str,
        description: str = "",
        requires: Sequence[str] = BASE_REQUIREMENTS,
        test_only: bool = False,
    ) -> Callable[[CollectorFn], CollectorFn]:
        def register(fn: CollectorFn) -> CollectorFn:
            if name in self._collectors:
                raise DuplicateCollectorError(f"collector {name} is already declared")
            self._collectors[name] = CollectorDefinition(
                name=name,
                run=fn,
                description=description,
                requires=tuple(dict.fromkeys(requires)),
                test_only=test_only,
            )
            LOGGER.debug("Declared collector %s (requires=%s)", name, list(requires))
            return fn

        return register

    def get(self, name: str) -> CollectorDefinition:
        try:
            return self._collectors[name]
        except KeyError:
            raise KeyError(f"no collector named {name}") from None

    def remove(self, name: str) -> None:
        self._collectors.pop(name, None)

    def clear(self) -> None:
        self._collectors.clear()

    def names(self, include_test_only: bool = False) -> List[str]:
        return sorted(
            name
            for name, definition in self._collectors.items()
            if include_test_only or not definition.test_only
        )

    def definitions(self, include_test_only: bool = False) -> List[CollectorDefinition]:
        return [self._collectors[name] for name in self.names(include_test_only)]

    def make_context(self, name: str, components: Mapping[str, Any]) -> PipelineContext:
        definition = self.get(name)
        missing = [req for req in definition.requires if req not in components]
        if missing:
            raise MissingResourceError(name, missing)
        resources = {req: components[req] for req in definition.requires}
        return PipelineContext(
            name=name,
            clock=resources.get("clock"),
            backend_client=resources.get("backend_client"),
            ingest_client=resources.get("ingest_client"),
            monitor=resources.get("monitor"),
            resources=resources,
        )

    async def invoke(
        self,
        name: str,
        components: Mapping[str, Any],
        ctx: Optional[PipelineContext] = None,
    ) -> Any:
        definition = self.get(name)
        ctx = ctx or self.make_context(name, components)
        return await definition.run(ctx)


collector_manager = CollectorManager()

__all__ = [
    "CollectorDefinition",
    "CollectorManager",
    "collector_manager",
]
