from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import jsonschema
import yaml
from jsonschema.exceptions import ValidationError

from ..models.config_models import AnalysisSettings, EngineConfig

"""Config loader.

Responsibilities:
- Load the YAML config (default config/engine.yml)
- Validate it against contracts/config_schema.json
- Apply defaults for every optional key
"""

__all__ = [
    "DEFAULT_CONFIG_PATH",
    "CONFIG_ENV_VAR",
    "SCHEMA_PATH",
    "ConfigError",
    "resolve_config_path",
    "load_config",
]

DEFAULT_CONFIG_PATH = Path("config/engine.yml")
CONFIG_ENV_VAR = "REPORT_ENGINE_CONFIG"

# report_engine/config/loader.py -> report_engine/contracts
SCHEMA_PATH = Path(__file__).parent.parent / "contracts" / "config_schema.json"


class ConfigError(Exception):
    pass


def _validate_config_schema(data: dict[str, Any]) -> None:
    """Validate config data against the JSON schema.

    Raises:
        ConfigError: schema file missing or invalid, or the data violates it
    """
    if not SCHEMA_PATH.exists():
        raise ConfigError(f"config schema not found: {SCHEMA_PATH}")
    try:
        schema = json.loads(SCHEMA_PATH.read_text(encoding="utf-8"))
        jsonschema.validate(data, schema)
    except json.JSONDecodeError as e:
        raise ConfigError(f"invalid schema file: {e}") from e
    except ValidationError as e:
        where = ".".join(str(p) for p in e.absolute_path)
        raise ConfigError(f"config validation failed{f' at {where}' if where else ''}: {e.message}") from e


def resolve_config_path(cli_value: str | None, environ: dict[str, str]) -> Path:
    """--config wins, then $REPORT_ENGINE_CONFIG, then config/engine.yml."""
    if cli_value:
        return Path(cli_value)
    if environ.get(CONFIG_ENV_VAR):
        return Path(environ[CONFIG_ENV_VAR])
    return DEFAULT_CONFIG_PATH


def load_config(path: Path) -> EngineConfig:
    if not path.exists():
        raise ConfigError(f"config file not found: {path}")
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"invalid yaml: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError(f"config root must be a mapping, got {type(data).__name__}")

    _validate_config_schema(data)

    defaults = AnalysisSettings()
    analysis_raw = data.get("analysis") or {}
    preview_raw = data.get("preview") or {}
    analysis = AnalysisSettings(
        anomaly_threshold=float(analysis_raw.get("anomaly_threshold", defaults.anomaly_threshold)),
        forecast_periods=analysis_raw.get("forecast_periods", defaults.forecast_periods),
        moving_average_window=analysis_raw.get("moving_average_window", defaults.moving_average_window),
        enable_trend_analysis=analysis_raw.get("enable_trend_analysis", defaults.enable_trend_analysis),
        auto_detect_template=analysis_raw.get("auto_detect_template", defaults.auto_detect_template),
        preview_horizontal_rows=preview_raw.get("horizontal_rows", defaults.preview_horizontal_rows),
        preview_vertical_rows=preview_raw.get("vertical_rows", defaults.preview_vertical_rows),
    )
    return EngineConfig(
        output_directory=data["output_directory"],
        logs_directory=data.get("logs_directory", "./logs"),
        keep_na_strings=data.get("keep_na_strings"),  # None -> pandas defaults
        analysis=analysis,
    )
