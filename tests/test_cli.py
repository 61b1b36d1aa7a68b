import json

import pytest

from usagesched.cli import main

CONF = """\
tiers:
- plugins:
  - name: usage
    arguments:
      thresholds:
        CpuUsageAvg.5m: 0.80
        MemUsageAvg.5m: 0.90
"""

NODES = """\
node-a:
  cpu_usage_avg: {5m: 0.35}
node-b:
  cpu_usage_avg: {5m: 0.92}
node-c:
  cpu_usage_avg: {5m: 0.10}
"""


def _write(tmp_path, conf=CONF):
    c = tmp_path / "scheduler.yaml"
    n = tmp_path / "nodes.yaml"
    c.write_text(conf, encoding="utf-8")
    n.write_text(NODES, encoding="utf-8")
    return str(c), str(n)


def test_rank_json(tmp_path, capsys):
    conf, nodes = _write(tmp_path)
    assert main(["rank", "--conf", conf, "--nodes", nodes, "--task", "ns/job", "--json"]) == 0
    out = json.loads(capsys.readouterr().out)
    assert out["task"] == "ns/job"
    assert [r["node"] for r in out["ranked"]] == ["node-c", "node-a"]
    assert out["rejected"]["node-b"]["metric"] == "cpu"


def test_rank_text(tmp_path, capsys):
    conf, nodes = _write(tmp_path)
    assert main(["rank", "--conf", conf, "--nodes", nodes]) == 0
    out = capsys.readouterr().out
    assert "[OK] node-c" in out
    assert "[REJECT] node-b" in out


def test_check_conf(tmp_path, capsys):
    conf, _ = _write(tmp_path)
    assert main(["check-conf", "--conf", conf]) == 0
    bad, _ = _write(tmp_path, CONF + "        Foo.5m: 1\n")
    assert main(["check-conf", "--conf", bad]) == 1
    assert "unknown-key" in capsys.readouterr().out


def test_missing_config(tmp_path, capsys):
    assert main(["check-conf", "--conf", str(tmp_path / "nope.yaml")]) == 2
    assert "[ERROR]" in capsys.readouterr().out


def test_layered_conf_overrides_actions(tmp_path, capsys):
    conf, nodes = _write(tmp_path)
    override = tmp_path / "override.yaml"
    override.write_text("actions: \"allocate\"\n", encoding="utf-8")
    assert main(["check-conf", "--conf", conf, "--conf", str(override)]) == 0
    out = capsys.readouterr().out
    assert "actions=allocate plugins=1 warnings=0" in out


def test_invalid_task_is_reported(tmp_path, capsys):
    conf, nodes = _write(tmp_path)
    assert main(["rank", "--conf", conf, "--nodes", nodes, "--task", "ns/"]) == 2
    assert "[ERROR] Invalid task" in capsys.readouterr().out
    assert main(["rank", "--conf", conf, "--nodes", nodes, "--task", ""]) == 2


def test_workers_must_be_positive(tmp_path):
    conf, nodes = _write(tmp_path)
    with pytest.raises(SystemExit) as ei:
        main(["rank", "--conf", conf, "--nodes", nodes, "--workers", "0"])
    assert ei.value.code == 2
