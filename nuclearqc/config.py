"""Run config files for nuclearqc.

A run config is a flat JSON object. Its keys mirror the ``run`` CLI options,
and a value given on the command line replaces the value from the file.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

RUN_CONFIG_TYPES: dict[str, tuple[type, ...]] = {
    "profile": (str,),
    "strict_nuclear": (bool,),
    "mode": (str,),
    "normalize": (bool,),
    "profile_overrides": (dict,),
    "key_panels": (list, type(None)),
    "plots": (bool,),
    "sample_col": (str,),
}


def _read_json_object(config_path: Path) -> dict[str, Any]:
    try:
        data = json.loads(config_path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise ValueError(
            f"Invalid JSON in config '{config_path}' at line {exc.lineno}, "
            f"column {exc.colno}: {exc.msg}"
        ) from exc
    if not isinstance(data, dict):
        raise ValueError(
            f"Invalid config root in '{config_path}': expected JSON object, got {type(data).__name__}."
        )
    return data


def check_run_config(data: dict[str, Any], source: str = "<config>") -> None:
    """Reject unknown keys and values of the wrong JSON type."""
    unknown = sorted(k for k in data if k not in RUN_CONFIG_TYPES)
    if unknown:
        raise ValueError(f"Unknown keys in config '{source}': {', '.join(unknown)}.")
    for key, value in data.items():
        allowed = RUN_CONFIG_TYPES[key]
        # bool is an int subclass; only the listed types pass.
        if type(value) not in allowed:
            names = " or ".join("null" if t is type(None) else t.__name__ for t in allowed)
            raise ValueError(f"Config key '{key}' in '{source}' must be {names}; got {type(value).__name__}.")


def load_json_config(path: str | Path) -> dict[str, Any]:
    config_path = Path(path)
    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")
    if config_path.suffix.lower() != ".json":
        raise ValueError(f"Unsupported config format for '{config_path}'. Use a .json config file.")
    data = _read_json_object(config_path)
    check_run_config(data, str(config_path))
    return data
