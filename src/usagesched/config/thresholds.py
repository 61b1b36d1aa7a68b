from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Annotated, Any, Dict, List, Mapping, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError

from ..models.rejection import MetricKind

logger = logging.getLogger(__name__)

CPU_USAGE_AVG_PREFIX = "CpuUsageAvg."
MEM_USAGE_AVG_PREFIX = "MemUsageAvg."

_PREFIXES = (
    (CPU_USAGE_AVG_PREFIX, MetricKind.CPU),
    (MEM_USAGE_AVG_PREFIX, MetricKind.MEM),
)

Window = Annotated[str, Field(min_length=1)]
Ceiling = Annotated[float, Field(ge=0, allow_inf_nan=False)]
_ceiling_adapter = TypeAdapter(Ceiling)


@dataclass(frozen=True)
class ParseWarning:
    kind: str
    key: str
    detail: str

    def __str__(self) -> str:
        return f"{self.kind}: {self.key!r}: {self.detail}"


class ThresholdConfig(BaseModel):
    """Utilization ceilings keyed by time-window label.

    Values share the unit of the node usage snapshots (fractions in
    practice). There is no upper bound: a ceiling above 1.0 never rejects.
    """
    model_config = ConfigDict(extra="forbid", frozen=True)
    cpu_usage_avg: Dict[Window, Ceiling] = Field(default_factory=dict)
    mem_usage_avg: Dict[Window, Ceiling] = Field(default_factory=dict)

    def ceilings(self, kind: MetricKind) -> Dict[str, float]:
        if kind == MetricKind.CPU:
            return self.cpu_usage_avg
        return self.mem_usage_avg

    def is_empty(self) -> bool:
        return not self.cpu_usage_avg and not self.mem_usage_avg


def _pairs(raw: Any) -> Optional[List[Tuple[Any, Any]]]:
    if isinstance(raw, Mapping):
        return list(raw.items())
    if isinstance(raw, (list, tuple)):
        try:
            return [(k, v) for k, v in raw]
        except (TypeError, ValueError):
            return None
    return None


def parse_ceiling(value: Any) -> float:
    """Convert one raw threshold value, raising ValueError if it is unusable.

    Numbers and numeric strings are taken as-is; ``"80%"`` is read as 0.8.
    """
    if isinstance(value, bool):
        raise ValueError("boolean is not a threshold")
    scale = 1.0
    if isinstance(value, str):
        value = value.strip()
        if value.endswith("%"):
            value = value[:-1].strip()
            scale = 100.0
    try:
        return _ceiling_adapter.validate_python(value) / scale
    except ValidationError as exc:
        msg = exc.errors()[0].get("msg", str(exc))
        raise ValueError(msg) from None


def parse_thresholds(raw: Any) -> Tuple[ThresholdConfig, List[ParseWarning]]:
    """Build a ThresholdConfig from the raw ``thresholds`` section.

    Never raises: unknown keys, empty or repeated windows and bad values are
    reported as warnings and the offending entry is skipped (a repeated
    window keeps the later value).
    """
    warnings: List[ParseWarning] = []
    cpu: Dict[str, float] = {}
    mem: Dict[str, float] = {}

    if raw is None:
        return ThresholdConfig(), warnings

    items = _pairs(raw)
    if items is None:
        warnings.append(ParseWarning("invalid-section", "thresholds",
                                     f"expected a mapping, got {type(raw).__name__}"))
        _log_warnings(warnings)
        return ThresholdConfig(), warnings

    for key, value in items:
        key_s = str(key)
        match = None
        if isinstance(key, str):
            for prefix, kind in _PREFIXES:
                if key.startswith(prefix):
                    match = (kind, key[len(prefix):].strip())
                    break
        if match is None:
            warnings.append(ParseWarning("unknown-key", key_s,
                                         f"expected prefix {CPU_USAGE_AVG_PREFIX} or {MEM_USAGE_AVG_PREFIX}"))
            continue

        kind, window = match
        if not window:
            warnings.append(ParseWarning("empty-window", key_s, "no time window after prefix"))
            continue

        try:
            ceiling = parse_ceiling(value)
        except ValueError as exc:
            warnings.append(ParseWarning("invalid-value", key_s, f"{value!r}: {exc}"))
            continue

        target = cpu if kind == MetricKind.CPU else mem
        if window in target:
            warnings.append(ParseWarning("duplicate-window", key_s,
                                         f"{kind.value} window {window!r} set twice, keeping {ceiling:g}"))
        target[window] = ceiling

    _log_warnings(warnings)
    return ThresholdConfig(cpu_usage_avg=cpu, mem_usage_avg=mem), warnings


def _log_warnings(warnings: List[ParseWarning]) -> None:
    for w in warnings:
        logger.warning("thresholds: %s", w)
