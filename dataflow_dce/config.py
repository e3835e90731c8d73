"""
dataflow_dce/config.py
══════════════════════

Analysis configuration and logging setup.

An *analysis plan* is an ordered list of :class:`AnalysisConfig`, one per
analysis to run on each method.  Plans are either built in code,
taken from :func:`default_plan`, or loaded from JSON::

    [
      {"id": "cfg", "options": {"dot": true}},
      {"id": "constprop", "options": {"strategy": "fifo"}},
      {"id": "livevar"},
      {"id": "deadcode"}
    ]

Recognised options
──────────────────
  strategy        worklist order for dataflow analyses: fifo | lifo | rpo
  max-iterations  solver safety bound (positive int)
  dot             cfg only: also store the Graphviz text under ``cfg.dot``
"""

from __future__ import annotations

import json
import logging
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, List, Mapping, Union

from dataflow_dce.dataflow_engine import WorklistStrategy
from dataflow_dce.errors import ConfigurationError, ErrorCode

_log = logging.getLogger(__name__)

DEFAULT_MAX_ITERATIONS = 1_000_000

KNOWN_OPTIONS = frozenset({"strategy", "max-iterations", "dot"})


@dataclass(frozen=True)
class AnalysisConfig:
    """Id of an analysis plus its options."""

    id: str
    options: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not isinstance(self.id, str) or not self.id:
            raise ConfigurationError(
                f"analysis id must be a non-empty string, got {self.id!r}",
                ErrorCode.INVALID_PLAN,
            )
        unknown = sorted(set(self.options) - KNOWN_OPTIONS)
        if unknown:
            raise ConfigurationError(
                f"unknown option(s) for '{self.id}': {', '.join(unknown)}",
                ErrorCode.INVALID_OPTION,
            )
        # fail at load time rather than mid-pipeline
        _ = self.strategy
        _ = self.max_iterations
        _ = self.get_bool("dot")

    def get(self, key: str, default: Any = None) -> Any:
        return self.options.get(key, default)

    def get_bool(self, key: str, default: bool = False) -> bool:
        value = self.options.get(key, default)
        if not isinstance(value, bool):
            raise ConfigurationError(
                f"option '{key}' of '{self.id}' must be true or false, got {value!r}",
                ErrorCode.INVALID_OPTION,
            )
        return value

    @property
    def strategy(self) -> WorklistStrategy:
        raw = self.options.get("strategy", WorklistStrategy.RPO.value)
        if isinstance(raw, WorklistStrategy):
            return raw
        if not isinstance(raw, str):
            raise ConfigurationError(
                f"option 'strategy' of '{self.id}' must be a string, got {raw!r}",
                ErrorCode.INVALID_OPTION,
            )
        return WorklistStrategy.from_string(raw)

    @property
    def max_iterations(self) -> int:
        raw = self.options.get("max-iterations", DEFAULT_MAX_ITERATIONS)
        if isinstance(raw, bool) or not isinstance(raw, int) or raw <= 0:
            raise ConfigurationError(
                f"option 'max-iterations' of '{self.id}' must be a positive "
                f"integer, got {raw!r}",
                ErrorCode.INVALID_OPTION,
            )
        return raw

    @classmethod
    def from_dict(cls, entry: Mapping[str, Any]) -> AnalysisConfig:
        if not isinstance(entry, Mapping) or "id" not in entry:
            raise ConfigurationError(
                f"plan entry must be an object with an 'id', got {entry!r}",
                ErrorCode.INVALID_PLAN,
            )
        options = entry.get("options", {})
        if not isinstance(options, Mapping):
            raise ConfigurationError(
                f"'options' of '{entry['id']}' must be an object",
                ErrorCode.INVALID_PLAN,
            )
        return cls(entry["id"], dict(options))


def default_plan() -> List[AnalysisConfig]:
    """``cfg → constprop → livevar → deadcode`` with default options."""
    return [
        AnalysisConfig("cfg"),
        AnalysisConfig("constprop"),
        AnalysisConfig("livevar"),
        AnalysisConfig("deadcode"),
    ]


def parse_plan(data: Any) -> List[AnalysisConfig]:
    """Turn decoded JSON into a plan."""
    if not isinstance(data, list):
        raise ConfigurationError(
            "an analysis plan must be a JSON array", ErrorCode.INVALID_PLAN,
        )
    return [AnalysisConfig.from_dict(entry) for entry in data]


def load_plan(path: Union[str, Path]) -> List[AnalysisConfig]:
    """Read a JSON analysis plan from *path*.

    Raises
    ------
    ConfigurationError
        If the file cannot be read, is not valid JSON, or describes an
        invalid plan.
    """
    p = Path(path)
    try:
        data = json.loads(p.read_text(encoding="utf-8"))
    except OSError as exc:
        raise ConfigurationError(
            f"cannot read analysis plan {p}: {exc}", ErrorCode.INVALID_PLAN,
        ) from exc
    except json.JSONDecodeError as exc:
        raise ConfigurationError(
            f"{p}:{exc.lineno}:{exc.colno}: {exc.msg}", ErrorCode.INVALID_PLAN,
        ) from exc
    plan = parse_plan(data)
    _log.debug("loaded plan from %s: %s", p, [c.id for c in plan])
    return plan


def configure_logging(verbosity: int) -> None:
    """Set up the ``dataflow_dce`` logger.

    Parameters
    ----------
    verbosity:
        0 → WARNING, 1 → INFO, 2+ → DEBUG.
    """
    level = logging.WARNING
    if verbosity == 1:
        level = logging.INFO
    elif verbosity >= 2:
        level = logging.DEBUG

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(
        logging.Formatter(
            fmt="%(asctime)s [%(levelname)-5.5s] %(name)s: %(message)s",
            datefmt="%H:%M:%S",
        )
    )
    root = logging.getLogger("dataflow_dce")
    root.setLevel(level)
    root.addHandler(handler)
