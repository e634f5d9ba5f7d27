from __future__ import annotations


class SLIError(Exception):
    pass


class InvalidSpecError(SLIError, ValueError):
    """A stream spec is missing a required field or names an unknown resolution."""


class UnknownSpecKindError(SLIError, ValueError):
    """A stream spec carries a `spec` tag no resolver knows about."""


class StageError(SLIError):
    def __init__(self, stage: str, cause: BaseException) -> None:
        super().__init__(f"{stage}: {cause}")
        self.stage = stage
        self.cause = cause


class MissingResourceError(SLIError, KeyError):
    def __init__(self, collector: str, missing: list[str]) -> None:
        super().__init__(f"collector {collector} requires missing resources: {', '.join(missing)}")
        self.collector = collector
        self.missing = missing

    def __str__(self) -> str:
        return self.args[0]


class DuplicateCollectorError(SLIError, ValueError):
    pass
