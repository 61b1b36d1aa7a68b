from __future__ import annotations

import logging
import math
from typing import TYPE_CHECKING, Annotated, Any, Iterable, List, Mapping, Optional, Tuple

from pydantic import Field, TypeAdapter, ValidationError

from ...config.thresholds import ParseWarning, ThresholdConfig, parse_thresholds
from ...errors import FitError
from ...models.node import CPU_USAGE_AVG_5M, NodeInfo
from ...models.rejection import MetricKind, RejectionReason
from ...models.task import TaskInfo
from ..base import Plugin

if TYPE_CHECKING:
    from ..session import Session

logger = logging.getLogger(__name__)

PLUGIN_NAME = "usage"
THRESHOLD_SECTION = "thresholds"
WEIGHT_KEY = "weight"
LEGACY_WEIGHT_KEY = "usage.weight"

_weight_adapter = TypeAdapter(Annotated[float, Field(allow_inf_nan=False)])

# Example arguments:
#
#   - name: usage
#     arguments:
#       thresholds:
#         CpuUsageAvg.5m: 0.80
#         MemUsageAvg.5m: 0.90
#       weight: 1


def _parse_weight(value: Any) -> float:
    if isinstance(value, bool):
        raise ValueError("boolean is not a weight")
    if isinstance(value, str):
        value = value.strip()
    try:
        return _weight_adapter.validate_python(value)
    except ValidationError as exc:
        raise ValueError(exc.errors()[0].get("msg", str(exc))) from None


class UsagePolicy(Plugin):
    """Rejects nodes whose recent average utilization is above a ceiling and
    prefers nodes with low 5m CPU usage.

    Instances are immutable once built, so filter and score may be called
    from many threads at once.
    """

    def __init__(self, thresholds: Optional[ThresholdConfig] = None, weight: float = 1.0,
                 warnings: Iterable[ParseWarning] = ()):
        self._thresholds = thresholds if thresholds is not None else ThresholdConfig()
        self._weight = float(weight)
        self._warnings = tuple(warnings)
        # (kind, window, ceiling), cpu first, windows in label order
        self._checks: Tuple[Tuple[MetricKind, str, float], ...] = tuple(
            (kind, window, ceiling)
            for kind in (MetricKind.CPU, MetricKind.MEM)
            for window, ceiling in sorted(self._thresholds.ceilings(kind).items())
        )

    @classmethod
    def from_arguments(cls, arguments: Optional[Mapping[str, Any]] = None) -> "UsagePolicy":
        warnings: List[ParseWarning] = []
        weight = 1.0

        if arguments is None:
            arguments = {}
        if not isinstance(arguments, Mapping):
            warnings.append(ParseWarning("invalid-section", "arguments",
                                         f"expected a mapping, got {type(arguments).__name__}"))
            arguments = {}

        # the legacy key is read first so an explicit "weight" overrides it
        for key in (LEGACY_WEIGHT_KEY, WEIGHT_KEY):
            if key not in arguments:
                continue
            try:
                weight = _parse_weight(arguments[key])
            except ValueError as exc:
                warnings.append(ParseWarning("invalid-value", key, f"{arguments[key]!r}: {exc}"))

        for key in arguments:
            if key not in (THRESHOLD_SECTION, WEIGHT_KEY, LEGACY_WEIGHT_KEY):
                warnings.append(ParseWarning("unknown-key", str(key), "not a usage plugin argument"))
        for w in warnings:
            logger.warning("%s plugin arguments: %s", PLUGIN_NAME, w)

        raw_thresholds = arguments.get(THRESHOLD_SECTION)
        thresholds, threshold_warnings = parse_thresholds(raw_thresholds)
        warnings.extend(threshold_warnings)
        return cls(thresholds=thresholds, weight=weight, warnings=warnings)

    @property
    def thresholds(self) -> ThresholdConfig:
        return self._thresholds

    @property
    def weight(self) -> float:
        return self._weight

    @property
    def warnings(self) -> Tuple[ParseWarning, ...]:
        return self._warnings

    def name(self) -> str:
        return PLUGIN_NAME

    def filter(self, task: TaskInfo, node: NodeInfo) -> None:
        """Raise FitError if any configured window on the node is over its ceiling.

        Windows the node has no data for are skipped. When several ceilings
        are exceeded only the first one checked is reported.
        """
        usage = node.usage
        for kind, window, ceiling in self._checks:
            observed = usage.cpu(window) if kind == MetricKind.CPU else usage.mem(window)
            # only a strictly greater reading rejects; NaN passes
            if observed is None or not observed > ceiling:
                continue
            reason = RejectionReason(
                plugin=PLUGIN_NAME,
                metric=kind,
                window=window,
                observed=observed,
                ceiling=ceiling,
                task=task.key,
                node=node.name,
            )
            logger.debug("Usage plugin filter: %s", reason.message())
            raise FitError(reason)
        logger.debug("Usage plugin filter for task %s on node %s pass.", task.key, node.name)

    def score(self, task: TaskInfo, node: NodeInfo) -> float:
        cpu = node.usage.cpu(CPU_USAGE_AVG_5M)
        if cpu is None or math.isnan(cpu):
            return 0.0
        score = self._weight * (1.0 - cpu)
        logger.debug("Usage plugin score for task %s on node %s: %g", task.key, node.name, score)
        return score

    def on_session_open(self, ssn: "Session") -> None:
        logger.debug("Enter usage plugin ...")
        ssn.add_predicate_fn(self.name(), self.filter)
        ssn.add_node_order_fn(self.name(), self.score)
        logger.debug("Leaving usage plugin.")

    def on_session_close(self, ssn: "Session") -> None:
        pass
