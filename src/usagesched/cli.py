from __future__ import annotations

import argparse
import json
import logging
from typing import Dict, List

from pydantic import ValidationError

from usagesched.config.loader import load_yaml
from usagesched.config.schemas import load_scheduler_config
from usagesched.errors import ConfigError
from usagesched.models.node import NodeInfo, NodeUsageSnapshot
from usagesched.models.task import TaskInfo
from usagesched.scheduler.registry import build_plugins
from usagesched.scheduler.session import close_session, open_session


# ---------------- Builders ----------------

def build_nodes(node_cfg: dict) -> List[NodeInfo]:
    """Nodes file layout: {node_name: {cpu_usage_avg: {...}, mem_usage_avg: {...}}}"""
    nodes = []
    for name, cfg in node_cfg.items():
        cfg = cfg or {}
        if not isinstance(cfg, dict):
            raise ConfigError(f"Invalid node {name}: expected a mapping")
        try:
            nodes.append(NodeInfo(
                name=str(name),
                usage=NodeUsageSnapshot(
                    cpu_usage_avg=cfg.get("cpu_usage_avg", {}) or {},
                    mem_usage_avg=cfg.get("mem_usage_avg", {}) or {},
                ),
            ))
        except ValidationError as e:
            raise ConfigError(f"Invalid node {name}: {e}") from e
    return nodes


# ---------------- Commands ----------------

def cmd_check_conf(args) -> int:
    conf = load_scheduler_config(*args.conf)
    plugins = build_plugins(conf)
    n_warn = 0
    for plugin in plugins:
        for w in getattr(plugin, "warnings", ()):
            print(f"[WARN] {plugin.name()}: {w}")
            n_warn += 1
    print(f"actions={','.join(conf.action_list())} plugins={len(plugins)} warnings={n_warn}")
    return 1 if n_warn else 0


def cmd_rank(args) -> int:
    conf = load_scheduler_config(*args.conf)
    nodes = build_nodes(load_yaml(args.nodes))
    try:
        task = TaskInfo.from_key(args.task)
    except ValidationError as e:
        raise ConfigError(f"Invalid task {args.task!r}: {e}") from e

    ssn = open_session(build_plugins(conf), max_workers=args.workers)
    try:
        feasible, rejected = ssn.feasible_nodes(task, nodes)
        ranked = ssn.rank_nodes(task, feasible)
    finally:
        close_session(ssn)

    if args.json:
        payload: Dict[str, object] = {
            "task": task.key,
            "ranked": [{"node": n.name, "score": s} for n, s in ranked],
            "rejected": {name: r.model_dump(mode="json") for name, r in rejected.items()},
        }
        print(json.dumps(payload, indent=2))
        return 0

    print(f"task {task.key}: feasible={len(ranked)} rejected={len(rejected)}")
    for node, score in ranked:
        print(f"[OK] {node.name} score={score:.4f}")
    for name, reason in sorted(rejected.items()):
        print(f"[REJECT] {name}: {reason.message()}")
    return 0


def _positive_int(value: str) -> int:
    n = int(value)
    if n < 1:
        raise argparse.ArgumentTypeError(f"must be >= 1, got {n}")
    return n


# ---------------- Main ----------------

def main(argv=None) -> int:
    p = argparse.ArgumentParser("usagesched")
    p.add_argument("--log-level", default="WARNING", help="DEBUG|INFO|WARNING|ERROR")
    sub = p.add_subparsers(dest="cmd", required=True)

    pc = sub.add_parser("check-conf", help="Validate plugin arguments in a scheduler config")
    pc.add_argument("--conf", required=True, action="append",
                    help="Scheduler config YAML; repeat to layer overrides on top")
    pc.set_defaults(func=cmd_check_conf)

    pr = sub.add_parser("rank", help="Filter and rank nodes for one task")
    pr.add_argument("--conf", required=True, action="append",
                    help="Scheduler config YAML; repeat to layer overrides on top")
    pr.add_argument("--nodes", required=True, help="Node usage YAML")
    pr.add_argument("--task", default="default/task-0", help="namespace/name")
    pr.add_argument("--workers", type=_positive_int, default=10)
    pr.add_argument("--json", action="store_true", help="Print the result as JSON")
    pr.set_defaults(func=cmd_rank)

    args = p.parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, str(args.log_level).upper(), logging.WARNING),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    try:
        return args.func(args)
    except ConfigError as e:
        print(f"[ERROR] {e}")
        return 2


if __name__ == "__main__":
    raise SystemExit(main())
