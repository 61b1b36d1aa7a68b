from __future__ import annotations
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from ..errors import ConfigError
from .loader import deep_merge, load_yaml


class PluginOption(BaseModel):
    model_config = ConfigDict(extra="forbid")
    name: str = Field(..., min_length=1)
    # Left untyped: each plugin validates its own arguments.
    arguments: Optional[Dict[Any, Any]] = None


class Tier(BaseModel):
    model_config = ConfigDict(extra="forbid")
    plugins: List[PluginOption] = Field(default_factory=list)


class SchedulerConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")
    actions: str = "enqueue, allocate, backfill"
    tiers: List[Tier] = Field(default_factory=list)

    def action_list(self) -> List[str]:
        return [a.strip() for a in self.actions.split(",") if a.strip()]

    def plugin_options(self) -> Iterator[PluginOption]:
        for tier in self.tiers:
            yield from tier.plugins


def load_scheduler_config(path: str | Path, *overrides: str | Path) -> SchedulerConfig:
    """Load a scheduler config; each override file is deep-merged on top in order."""
    raw = load_yaml(path)
    for o in overrides:
        raw = deep_merge(raw, load_yaml(o))
    try:
        return SchedulerConfig.model_validate(raw)
    except ValidationError as e:
        raise ConfigError(f"Invalid scheduler config {path}: {e}") from e
