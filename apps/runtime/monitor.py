"""Error reporter shared by every collector in the process."""
from __future__ import annotations

import logging
import time
from collections import Counter, deque
from dataclasses import dataclass, field
from typing import Mapping, Optional

LOGGER = logging.getLogger("sli.monitor")

MAX_REPORTS = 200


@dataclass
class ErrorReport:
  error: BaseException
  tags: dict[str, str] = field(default_factory=dict)
  ts: float = field(default_factory=time.time)

  def to_dict(self) -> dict:
    return {
      "ts": self.ts,
      "error": f"{type(self.error).__name__}: {self.error}",
      "tags": dict(self.tags),
    }


class Monitor:
  """
  Records and logs errors reported by pipeline stages.

  MVP: in-memory ring buffer of recent reports plus per-tag counters.
  """

  def __init__(self, prefix: str = "sli", max_reports: int = MAX_REPORTS):
    self.prefix = prefix
    self.reports: deque[ErrorReport] = deque(maxlen=max_reports)
    self.counts: Counter[str] = Counter()
    self.total = 0

  def report_error(
    self,
    err: BaseException,
    tags: Optional[Mapping[str, str]] = None,
  ) -> None:
    tags = dict(tags or {})
    self.total += 1
    self.counts[tags.get("sli", "unknown")] += 1
    self.reports.append(ErrorReport(err, tags))
    LOGGER.error(
      "[%s] reported error %s: %s",
      self.prefix,
      tags,
      err,
      exc_info=(type(err), err, err.__traceback__),
    )

  def reports_for(self, **tags: str) -> list[ErrorReport]:
    return [
      r for r in self.reports
      if all(r.tags.get(k) == v for k, v in tags.items())
    ]

  def to_dict(self) -> dict:
    return {
      "total": self.total,
      "by_sli": dict(self.counts),
      "recent": [r.to_dict() for r in list(self.reports)[-10:]],
    }


__all__ = ["ErrorReport", "Monitor", "MAX_REPORTS"]
