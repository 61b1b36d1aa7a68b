from __future__ import annotations
from pydantic import BaseModel, ConfigDict, Field


class TaskInfo(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)
    namespace: str = "default"
    name: str = Field(..., min_length=1)

    @property
    def key(self) -> str:
        return f"{self.namespace}/{self.name}"

    @classmethod
    def from_key(cls, key: str) -> "TaskInfo":
        ns, sep, name = key.partition("/")
        if not sep:
            return cls(name=ns)
        return cls(namespace=ns, name=name)
