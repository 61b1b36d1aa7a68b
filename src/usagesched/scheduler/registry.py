from __future__ import annotations
from typing import Any, List, Mapping, Optional

from ..config.schemas import SchedulerConfig
from ..errors import ConfigError
from .base import Plugin
from .plugins.usage import PLUGIN_NAME as USAGE, UsagePolicy


def get_plugin(name: str, arguments: Optional[Mapping[str, Any]] = None) -> Plugin:
    if name == USAGE:
        return UsagePolicy.from_arguments(arguments)
    raise ConfigError(f"Unknown plugin: {name}")


def build_plugins(config: SchedulerConfig) -> List[Plugin]:
    return [get_plugin(opt.name, opt.arguments) for opt in config.plugin_options()]
