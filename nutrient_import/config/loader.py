from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import jsonschema
import yaml
from jsonschema.exceptions import ValidationError

"""Config loader for the nutrient import tool.

Responsibilities:
- Load YAML config (default ``config/import.yml``)
- Validate against ``config_schema.json`` shipped next to this module
- Apply defaults (table=foods, batch_size=50, brand=NUTTAB, 10 MB uploads)
"""

__all__ = [
    "ConfigError",
    "DatabaseConfig",
    "UploadConfig",
    "ImportConfig",
    "DEFAULT_CONFIG_PATH",
    "load_config",
]

SCHEMA_PATH = Path(__file__).with_name("config_schema.json")
DEFAULT_CONFIG_PATH = Path("config/import.yml")

DEFAULT_TABLE = "foods"
DEFAULT_BATCH_SIZE = 50
DEFAULT_UPLOAD_DIR = "./uploads"
DEFAULT_MAX_UPLOAD_BYTES = 10 * 1024 * 1024


class ConfigError(Exception):
    pass


@dataclass(frozen=True)
class DatabaseConfig:
    """Connection fallback; environment variables take precedence."""
    host: str | None = None
    port: int | None = None
    user: str | None = None
    password: str | None = None
    database: str | None = None
    dsn: str | None = None


@dataclass(frozen=True)
class UploadConfig:
    directory: str = DEFAULT_UPLOAD_DIR
    max_bytes: int = DEFAULT_MAX_UPLOAD_BYTES


@dataclass(frozen=True)
class ImportConfig:
    source_file: str
    table: str = DEFAULT_TABLE
    batch_size: int = DEFAULT_BATCH_SIZE
    brand: str | None = "NUTTAB"
    upload: UploadConfig = field(default_factory=UploadConfig)
    database: DatabaseConfig = field(default_factory=DatabaseConfig)


def _validate_config_schema(data: dict[str, Any]) -> None:
    """Validate config data against the JSON schema.

    Raises:
        ConfigError: schema file missing or not JSON, or the data violates it
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


def load_config(path: Path) -> ImportConfig:
    if not path.exists():
        raise ConfigError(f"config file not found: {path}")
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"invalid yaml: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError("config root must be a mapping")

    _validate_config_schema(data)

    db_raw = data.get("database") or {}
    up_raw = data.get("upload") or {}
    return ImportConfig(
        source_file=data["source_file"],
        table=data.get("table", DEFAULT_TABLE),
        batch_size=data.get("batch_size", DEFAULT_BATCH_SIZE),
        brand=data.get("brand", "NUTTAB"),
        upload=UploadConfig(
            directory=up_raw.get("directory", DEFAULT_UPLOAD_DIR),
            max_bytes=up_raw.get("max_bytes", DEFAULT_MAX_UPLOAD_BYTES),
        ),
        database=DatabaseConfig(
            host=db_raw.get("host"),
            port=db_raw.get("port"),
            user=db_raw.get("user"),
            password=db_raw.get("password"),
            database=db_raw.get("database"),
            dsn=db_raw.get("dsn"),
        ),
    )
