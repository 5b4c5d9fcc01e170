from __future__ import annotations

import importlib
import json
import os
from pathlib import Path
from typing import Any

import jsonschema
import yaml
from jsonschema.exceptions import ValidationError

from ..errors import ConfigError
from ..models.config_models import BindConfig, ColumnBindingConfig, SheetBindingConfig

"""Config loader.

Responsibilities:
- Load the YAML config (default ``config/sheetbind.yml``)
- Validate it against config_schema.json (shipped next to this module)
- Apply defaults and environment overrides (``SHEETBIND_SOURCE_DIR``)
- Import target record types ("module:Class")
"""

__all__ = [
    "ConfigError",
    "DEFAULT_CONFIG_PATH",
    "SCHEMA_PATH",
    "load_config",
    "resolve_config_path",
    "load_target",
]

SCHEMA_PATH = Path(__file__).with_name("config_schema.json")
DEFAULT_CONFIG_PATH = Path("config/sheetbind.yml")

ENV_CONFIG = "SHEETBIND_CONFIG"
ENV_SOURCE_DIR = "SHEETBIND_SOURCE_DIR"


def _validate_config_schema(data: Any) -> None:
    """Validate config data against the JSON schema.

    Raises:
        ConfigError: schema file missing or not valid JSON, or the config
            violates the schema (missing keys, wrong types, unknown keys)
    """
    if not SCHEMA_PATH.exists():
        raise ConfigError(f"config schema not found: {SCHEMA_PATH}")

    try:
        schema = json.loads(SCHEMA_PATH.read_text(encoding="utf-8"))
        jsonschema.validate(data, schema)
    except json.JSONDecodeError as e:
        raise ConfigError(f"invalid schema file: {e}") from e
    except ValidationError as e:
        location = "/".join(str(p) for p in e.absolute_path)
        where = f" at {location}" if location else ""
        raise ConfigError(f"config validation failed{where}: {e.message}") from e


def resolve_config_path(cli_path: str | Path | None = None) -> Path:
    """--config argument > $SHEETBIND_CONFIG > config/sheetbind.yml."""
    if cli_path:
        return Path(cli_path)
    env = os.getenv(ENV_CONFIG)
    if env:
        return Path(env)
    return DEFAULT_CONFIG_PATH


def _column(field: str, raw: dict[str, Any]) -> ColumnBindingConfig:
    return ColumnBindingConfig(
        field=field,
        name=raw.get("name"),
        index=raw.get("index"),
        ignore=raw.get("ignore", False),
        use_last_non_blank=raw.get("use_last_non_blank", False),
        resolver=raw.get("resolver"),
        custom_format=raw.get("custom_format"),
        builtin_format=raw.get("builtin_format"),
    )


def _chars(value: str | None) -> tuple[str, ...] | None:
    return tuple(value) if value is not None else None


def load_config(path: Path) -> BindConfig:
    if not path.exists():
        raise ConfigError(f"config file not found: {path}")
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"invalid yaml: {e}") from e

    _validate_config_schema(data)

    sheets: dict[str, SheetBindingConfig] = {}
    for sheet_name, raw in data["sheets"].items():
        columns = tuple(_column(f, c or {}) for f, c in (raw.get("columns") or {}).items())
        sheets[str(sheet_name)] = SheetBindingConfig(
            sheet_name=str(sheet_name),
            target=raw["target"],
            columns=columns,
            max_error_rows=raw.get("max_error_rows"),
        )

    source_directory = os.getenv(ENV_SOURCE_DIR) or data["source_directory"]
    return BindConfig(
        source_directory=source_directory,
        sheets=sheets,
        max_error_rows=data.get("max_error_rows", 10),
        has_header=data.get("has_header", True),
        track_records=data.get("track_records", True),
        ignored_name_chars=_chars(data.get("ignored_name_chars")),
        truncate_name_chars=_chars(data.get("truncate_name_chars")),
        default_resolver=data.get("default_resolver"),
        trim_policy=data.get("trim_policy", "clear"),
        engine=data.get("engine", "openpyxl"),
        keep_na_strings=list(data.get("keep_na_strings", [])),
    )


def load_target(target: str) -> type:
    """Import a record type from ``"package.module:ClassName"``."""
    module_name, _, attr = target.partition(":")
    if not module_name or not attr:
        raise ConfigError(f"target must look like 'module:Class', got '{target}'")
    try:
        module = importlib.import_module(module_name)
    except ImportError as e:
        raise ConfigError(f"cannot import target module '{module_name}': {e}") from e
    klass = getattr(module, attr, None)
    if not isinstance(klass, type):
        raise ConfigError(f"target '{target}' is not a class")
    return klass
