"""Loader for diagnostics.yaml."""

from __future__ import annotations

from pathlib import Path

import yaml

from ads_op_tracker.diagnostics.models import DiagnosticsConfig


def load_diagnostics_config(path: str | None) -> DiagnosticsConfig:
    if path is None:
        return DiagnosticsConfig()
    config_path = Path(path)
    if not config_path.exists():
        raise FileNotFoundError(f"Diagnostics config not found: {config_path}")
    with config_path.open("r", encoding="utf-8") as handle:
        data = yaml.safe_load(handle) or {}
    return DiagnosticsConfig.from_yaml(data)
