"""Configuration management for calmnote."""

import logging
import os
from dataclasses import dataclass
from pathlib import Path

logger = logging.getLogger(__name__)

CALMNOTE_HOME = Path(os.environ.get("CALMNOTE_HOME", Path.home() / "calmnote"))
CONFIG_FILE = CALMNOTE_HOME / "config" / "calmnote.conf"
DATA_DIR = CALMNOTE_HOME / "data"

LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}


@dataclass
class Config:
    """calmnote configuration."""

    data_file: str = str(DATA_DIR / "notebook.json")
    name_max_length: int = 100
    system_collection_name: str = "Unsorted"
    system_collection_icon: str = "📥"
    system_collection_color: str = "#9ca3af"
    default_filter: str = "all"
    log_level: str = "WARNING"


def _strip_value(value: str) -> str:
    """Handle quoted values and inline comments: "value" # comment"""
    if value.startswith('"') or value.startswith("'"):
        quote = value[0]
        end_quote = value.find(quote, 1)
        return value[1:end_quote] if end_quote != -1 else value[1:]
    if "#" in value:
        return value.split("#")[0].strip()
    return value


def _parse_int(key: str, value: str, default: int) -> int:
    try:
        parsed = int(value)
    except ValueError:
        logger.warning(f"Invalid integer for {key.upper()}: {value!r}, using {default}")
        return default
    if parsed <= 0:
        logger.warning(f"{key.upper()} must be positive, using {default}")
        return default
    return parsed


def load_config(path: Path | None = None) -> Config:
    """Load configuration from calmnote.conf file."""
    config = Config()
    path = path or CONFIG_FILE

    if not path.exists():
        return config

    for line in path.read_text().splitlines():
        line = line.strip()
        if not line or line.startswith("#"):
            continue

        if "=" not in line:
            continue

        key, _, value = line.partition("=")
        key = key.strip().lower()
        value = _strip_value(value.strip())

        match key:
            case "data_file":
                config.data_file = value
            case "name_max_length":
                config.name_max_length = _parse_int(key, value, config.name_max_length)
            case "system_collection_name":
                config.system_collection_name = value or config.system_collection_name
            case "system_collection_icon":
                config.system_collection_icon = value
            case "system_collection_color":
                config.system_collection_color = value
            case "default_filter":
                config.default_filter = value
            case "log_level":
                if value.upper() in LOG_LEVELS:
                    config.log_level = value.upper()
                else:
                    logger.warning(f"Unknown LOG_LEVEL {value!r}, keeping {config.log_level}")

    return config
