from __future__ import annotations
from enum import Enum
from pydantic import BaseModel, ConfigDict, Field


class MetricKind(str, Enum):
    CPU = "cpu"
    MEM = "mem"


class RejectionReason(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)
    plugin: str = Field(..., min_length=1)
    metric: MetricKind
    window: str
    observed: float
    ceiling: float
    task: str
    node: str

    def message(self) -> str:
        return (
            f"plugin {self.plugin} {self.metric.value} usage predicates: "
            f"task {self.task} is not allowed to dispatch to node {self.node} "
            f"({self.metric.value} {self.window} avg {self.observed:g} > ceiling {self.ceiling:g})"
        )
