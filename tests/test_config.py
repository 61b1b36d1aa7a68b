import pytest

from usagesched.config.loader import deep_merge, load_yaml
from usagesched.config.schemas import load_scheduler_config
from usagesched.errors import ConfigError
from usagesched.scheduler.registry import build_plugins

CONF = """\
actions: "enqueue, allocate, backfill"
tiers:
- plugins:
  - name: usage
    arguments:
      thresholds:
        CpuUsageAvg.5m: 0.80
        MemUsageAvg.5m: 90%
      weight: 2
"""


def test_load_scheduler_config(tmp_path):
    path = tmp_path / "scheduler.yaml"
    path.write_text(CONF, encoding="utf-8")
    conf = load_scheduler_config(path)
    assert conf.action_list() == ["enqueue", "allocate", "backfill"]
    (plugin,) = build_plugins(conf)
    assert plugin.name() == "usage"
    assert plugin.weight == 2.0
    assert plugin.thresholds.cpu_usage_avg == {"5m": 0.8}
    assert plugin.thresholds.mem_usage_avg["5m"] == pytest.approx(0.9)
    assert plugin.warnings == ()


def test_plugin_without_arguments(tmp_path):
    path = tmp_path / "scheduler.yaml"
    path.write_text("tiers:\n- plugins:\n  - name: usage\n", encoding="utf-8")
    (plugin,) = build_plugins(load_scheduler_config(path))
    assert plugin.thresholds.is_empty()
    assert plugin.weight == 1.0


def test_invalid_structure_raises_config_error(tmp_path):
    path = tmp_path / "scheduler.yaml"
    path.write_text("tiers: 3\n", encoding="utf-8")
    with pytest.raises(ConfigError):
        load_scheduler_config(path)


def test_load_yaml_errors(tmp_path):
    with pytest.raises(ConfigError):
        load_yaml(tmp_path / "missing.yaml")
    bad = tmp_path / "bad.yaml"
    bad.write_text("a: [1, 2\n", encoding="utf-8")
    with pytest.raises(ConfigError):
        load_yaml(bad)
    empty = tmp_path / "empty.yaml"
    empty.write_text("", encoding="utf-8")
    assert load_yaml(empty) == {}


def test_deep_merge():
    base = {"a": 1, "b": {"x": 1, "y": 2}}
    out = deep_merge(base, {"b": {"y": 3}, "c": 4})
    assert out == {"a": 1, "b": {"x": 1, "y": 3}, "c": 4}
    assert base["b"]["y"] == 2


def test_override_file_is_merged(tmp_path):
    base = tmp_path / "base.yaml"
    base.write_text(CONF, encoding="utf-8")
    override = tmp_path / "override.yaml"
    override.write_text("actions: \"allocate, backfill\"\n", encoding="utf-8")
    conf = load_scheduler_config(base, override)
    assert conf.action_list() == ["allocate", "backfill"]
    (plugin,) = build_plugins(conf)
    assert plugin.weight == 2.0
