from __future__ import annotations
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Callable

from ..models.node import NodeInfo
from ..models.task import TaskInfo

if TYPE_CHECKING:
    from .session import Session

# Returns None when the node is feasible, raises FitError otherwise.
PredicateFn = Callable[[TaskInfo, NodeInfo], None]
NodeOrderFn = Callable[[TaskInfo, NodeInfo], float]


class Plugin(ABC):
    @abstractmethod
    def name(self) -> str:
        raise NotImplementedError

    @abstractmethod
    def on_session_open(self, ssn: "Session") -> None:
        raise NotImplementedError

    def on_session_close(self, ssn: "Session") -> None:
        pass
