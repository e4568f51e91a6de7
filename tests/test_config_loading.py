from __future__ import annotations

import json
from pathlib import Path

import pytest

from nuclearqc.config import load_json_config
from nuclearqc.pipeline.run import RunConfig, resolve_run_config


def test_load_project_config():
    root = Path(__file__).resolve().parents[1]
    cfg = load_json_config(root / "configs" / "nuclearqc_default.json")
    assert cfg["profile"] == "immune_v1"
    assert resolve_run_config(cfg) == RunConfig()


def test_invalid_json_reports_line_and_column(tmp_path: Path):
    bad = tmp_path / "bad.json"
    bad.write_text('{"mode": "cell",}\n', encoding="utf-8")
    with pytest.raises(ValueError, match=r"line \d+, column \d+"):
        load_json_config(bad)


def test_non_object_json_config_rejected(tmp_path: Path):
    bad = tmp_path / "list.json"
    bad.write_text(json.dumps([1, 2, 3]), encoding="utf-8")
    with pytest.raises(ValueError, match="expected JSON object"):
        load_json_config(bad)


def test_non_json_extension_rejected(tmp_path: Path):
    bad = tmp_path / "cfg.yaml"
    bad.write_text("{}", encoding="utf-8")
    with pytest.raises(ValueError, match="Use a .json config file"):
        load_json_config(bad)


def test_unknown_config_key_rejected(tmp_path: Path):
    bad = tmp_path / "cfg.json"
    bad.write_text(json.dumps({"profile": "immune_v1", "h5ad_path": "x.h5ad"}), encoding="utf-8")
    with pytest.raises(ValueError, match="h5ad_path"):
        load_json_config(bad)


def test_missing_config_file(tmp_path: Path):
    with pytest.raises(FileNotFoundError):
        load_json_config(tmp_path / "absent.json")


def test_cli_values_override_config():
    cfg = {"profile": "default_v1", "mode": "sample", "key_panels": ["tf_basic"]}
    run = resolve_run_config(cfg, profile="immune_v1", mode=None, normalize=True)
    assert run.profile == "immune_v1"
    assert run.mode == "sample"
    assert run.normalize is True
    assert run.key_panels == ("tf_basic",)


@pytest.mark.parametrize(
    "cfg, message",
    [
        ({"mode": "donor"}, "mode must be one of"),
        ({"profile_overrides": [1, 2]}, "profile_overrides must be a JSON object"),
        ({"key_panels": "tf_basic"}, "key_panels must be a list"),
        ({"bogus": 1}, "Unknown run config keys"),
    ],
)
def test_invalid_run_config(cfg, message):
    with pytest.raises(ValueError, match=message):
        resolve_run_config(cfg)


@pytest.mark.parametrize(
    "payload",
    [{"strict_nuclear": "yes"}, {"plots": 1}, {"key_panels": "tf_basic"}, {"profile_overrides": []}],
)
def test_config_value_types_checked_on_load(tmp_path: Path, payload):
    bad = tmp_path / "cfg.json"
    bad.write_text(json.dumps(payload), encoding="utf-8")
    with pytest.raises(ValueError, match=f"Config key '{next(iter(payload))}'"):
        load_json_config(bad)
