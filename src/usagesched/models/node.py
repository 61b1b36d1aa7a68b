from __future__ import annotations
from typing import Dict, Optional
from pydantic import BaseModel, ConfigDict, Field

# Label of the short CPU window used for scoring.
CPU_USAGE_AVG_5M = "5m"


class NodeUsageSnapshot(BaseModel):
    """Recent average utilization per time window, as fractions.

    Supplied by the host; the policy only reads it. Missing windows simply
    mean the metric has not been collected yet.
    """
    model_config = ConfigDict(extra="forbid", frozen=True)
    cpu_usage_avg: Dict[str, float] = Field(default_factory=dict)
    mem_usage_avg: Dict[str, float] = Field(default_factory=dict)

    def cpu(self, window: str) -> Optional[float]:
        return self.cpu_usage_avg.get(window)

    def mem(self, window: str) -> Optional[float]:
        return self.mem_usage_avg.get(window)


class NodeInfo(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)
    name: str = Field(..., min_length=1)
    usage: NodeUsageSnapshot = Field(default_factory=NodeUsageSnapshot)
