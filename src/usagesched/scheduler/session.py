from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Dict, Iterable, List, Tuple

from ..errors import FitError
from ..models.node import NodeInfo
from ..models.rejection import RejectionReason
from ..models.task import TaskInfo
from .base import NodeOrderFn, Plugin, PredicateFn

logger = logging.getLogger(__name__)


class Session:
    """Holds the predicate and node-order functions plugins register.

    Registration happens while the session is being opened; afterwards the
    function tables are only read, so lookups from worker threads are safe.
    """

    def __init__(self, plugins: Iterable[Plugin] = (), max_workers: int = 10):
        self.plugins: List[Plugin] = list(plugins)
        self.max_workers = max_workers
        self.predicate_fns: Dict[str, PredicateFn] = {}
        self.node_order_fns: Dict[str, NodeOrderFn] = {}

    def add_predicate_fn(self, name: str, fn: PredicateFn) -> None:
        self.predicate_fns[name] = fn

    def add_node_order_fn(self, name: str, fn: NodeOrderFn) -> None:
        self.node_order_fns[name] = fn

    def predicate(self, task: TaskInfo, node: NodeInfo) -> None:
        for fn in self.predicate_fns.values():
            fn(task, node)

    def node_order(self, task: TaskInfo, node: NodeInfo) -> float:
        return sum(fn(task, node) for fn in self.node_order_fns.values())

    def feasible_nodes(self, task: TaskInfo, nodes: Iterable[NodeInfo]
                       ) -> Tuple[List[NodeInfo], Dict[str, RejectionReason]]:
        feasible: List[NodeInfo] = []
        rejected: Dict[str, RejectionReason] = {}
        for node in nodes:
            try:
                self.predicate(task, node)
            except FitError as exc:
                rejected[node.name] = exc.reason
                continue
            feasible.append(node)
        return feasible, rejected

    def rank_nodes(self, task: TaskInfo, nodes: Iterable[NodeInfo]) -> List[Tuple[NodeInfo, float]]:
        """Score nodes in parallel, best first; ties ordered by node name."""
        nodes = list(nodes)
        if not nodes:
            return []
        workers = min(self.max_workers, len(nodes))
        with ThreadPoolExecutor(max_workers=workers) as executor:
            scores = list(executor.map(lambda n: self.node_order(task, n), nodes))
        ranked = list(zip(nodes, scores))
        ranked.sort(key=lambda x: (-x[1], x[0].name))
        return ranked


def open_session(plugins: Iterable[Plugin], max_workers: int = 10) -> Session:
    ssn = Session(plugins, max_workers=max_workers)
    for plugin in ssn.plugins:
        logger.debug("Open session: plugin %s", plugin.name())
        plugin.on_session_open(ssn)
    return ssn


def close_session(ssn: Session) -> None:
    for plugin in ssn.plugins:
        logger.debug("Close session: plugin %s", plugin.name())
        plugin.on_session_close(ssn)
    ssn.predicate_fns.clear()
    ssn.node_order_fns.clear()
