from __future__ import annotations
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .models.rejection import RejectionReason


class UsageSchedError(Exception):
    """Base class for errors raised by usagesched."""


class ConfigError(UsageSchedError):
    """Scheduler configuration could not be loaded or names an unknown plugin."""


class FitError(UsageSchedError):
    """A node is infeasible for a task.

    This is an expected scheduling outcome, not an internal failure; hosts
    should catch it separately from other exceptions.
    """

    def __init__(self, reason: "RejectionReason"):
        super().__init__(reason.message())
        self.reason = reason
