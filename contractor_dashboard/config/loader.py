from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any

import jsonschema
import yaml
from jsonschema.exceptions import ValidationError

from ..models.config_models import (
    DEFAULT_BUCKET_SIZE,
    DashboardConfig,
    ServerConfig,
    SheetLayout,
)
from ..models.record import PER_DAY_RATE_LKR, RATE_LKR

"""Config loader.

Responsibilities:
- Load the YAML config (default ``config/dashboard.yml``)
- Validate it against the bundled JSON schema
- Apply environment overrides (values from ``.env`` are already in os.environ)
- Resolve relative paths against the config file's directory
"""

SCHEMA_PATH = Path(__file__).with_name("config_schema.json")
DEFAULT_CONFIG_PATH = Path("config/dashboard.yml")
CONFIG_ENV_VAR = "CONTRACTOR_DASHBOARD_CONFIG"

# 環境変数 -> 設定キー
ENV_PATH_OVERRIDES = {
    "CONTRACTOR_WORKBOOK": "workbook_path",
    "CONTRACTOR_CUMULATIVE_WORKBOOK": "cumulative_workbook_path",
}


class ConfigError(Exception):
    pass


def _validate_config_schema(data: dict[str, Any]) -> None:
    """Validate config data against the JSON schema.

    Raises:
        ConfigError: If the schema file is missing or not valid JSON, or the data
            fails validation (missing keys, wrong types, unknown keys).
    """
    if not SCHEMA_PATH.exists():
        raise ConfigError(f"config schema not found: {SCHEMA_PATH}")

    try:
        schema = json.loads(SCHEMA_PATH.read_text(encoding="utf-8"))
        jsonschema.validate(data, schema)
    except json.JSONDecodeError as e:
        raise ConfigError(f"invalid schema file: {e}") from e
    except ValidationError as e:
        raise ConfigError(f"config validation failed: {e.message}") from e


def _resolve_path(base: Path, value: str | None) -> Path | None:
    if not value:
        return None
    p = Path(value).expanduser()
    return p if p.is_absolute() else (base / p)


def _env_port() -> int | None:
    raw = os.getenv("PORT")
    if raw is None or raw.strip() == "":
        return None
    try:
        return int(raw)
    except ValueError as e:
        raise ConfigError(f"invalid PORT environment value: {raw!r}") from e


def config_from_mapping(data: dict[str, Any], base_dir: Path) -> DashboardConfig:
    """Build a DashboardConfig from validated mapping data.

    Path values are resolved against ``base_dir``; environment overrides win over
    the file values.
    """
    paths: dict[str, Path | None] = {
        "workbook_path": _resolve_path(base_dir, data.get("workbook_path")),
        "cumulative_workbook_path": _resolve_path(base_dir, data.get("cumulative_workbook_path")),
        "backup_directory": _resolve_path(base_dir, data.get("backup_directory")),
    }
    for env_name, key in ENV_PATH_OVERRIDES.items():
        value = os.getenv(env_name)
        if value:
            paths[key] = Path(value).expanduser()

    if paths["workbook_path"] is None:
        raise ConfigError("workbook_path is required")

    server_raw = data.get("server") or {}
    server = ServerConfig(
        host=os.getenv("HOST") or server_raw.get("host", ServerConfig.host),
        port=_env_port() or int(server_raw.get("port", ServerConfig.port)),
        debug=bool(server_raw.get("debug", False)),
    )

    cumulative_raw = data.get("cumulative_layout")
    return DashboardConfig(
        workbook_path=paths["workbook_path"],
        cumulative_workbook_path=paths["cumulative_workbook_path"],
        backup_directory=paths["backup_directory"],
        error_log_directory=_resolve_path(base_dir, data.get("error_log_directory")) or Path("logs"),
        default_layout=SheetLayout.from_mapping(data.get("default_layout")),
        sheet_layouts={
            str(name): SheetLayout.from_mapping(layout)
            for name, layout in (data.get("sheet_layouts") or {}).items()
        },
        cumulative_layout=SheetLayout.from_mapping(cumulative_raw) if cumulative_raw else None,
        rate_field=data.get("rate_field", PER_DAY_RATE_LKR),
        rate_bucket_size=float(data.get("rate_bucket_size", DEFAULT_BUCKET_SIZE)),
        cost_field=data.get("cost_field", RATE_LKR),
        server=server,
    )


def resolve_config_path(explicit: Path | None = None) -> Path:
    if explicit is not None:
        return explicit
    env_value = os.getenv(CONFIG_ENV_VAR)
    return Path(env_value) if env_value else DEFAULT_CONFIG_PATH


def load_config(path: Path) -> DashboardConfig:
    if not path.exists():
        raise ConfigError(f"config file not found: {path}")
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"invalid yaml: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError(f"config root must be a mapping, got {type(data).__name__}")

    _validate_config_schema(data)

    return config_from_mapping(data, path.resolve().parent)
