from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict

import yaml

from ..grid.columns import VehicleColumn

DEFAULT_CONFIG_PATH = Path("fleetgrid.config.yaml")

DEFAULT_SQLITE_PATH = "fleetgrid.db"
DEFAULT_PAGE_SIZE = 10
DEFAULT_MAX_PAGE_SIZE = 100
DEFAULT_SORT_COLUMN = "license_number"
DEFAULT_LOG_LEVEL = "INFO"


@dataclass(frozen=True)
class GridSettings:
    default_page_size: int = DEFAULT_PAGE_SIZE
    max_page_size: int = DEFAULT_MAX_PAGE_SIZE
    case_sensitive_filter: bool = True
    default_sort_column: str = DEFAULT_SORT_COLUMN


def load_config(path: Path | None = None) -> Dict[str, Any]:
    """
    Load fleetgrid configuration from YAML.

    Args:
        path: Optional path to the config file. Defaults to fleetgrid.config.yaml

    Returns:
        Config dictionary (empty sections are filled in)

    Raises:
        FileNotFoundError: If the config file doesn't exist
        ValueError: If the config structure is invalid
    """
    cfg_path = path or DEFAULT_CONFIG_PATH
    if not cfg_path.exists():
        raise FileNotFoundError(f"Config file not found: {cfg_path}")
    with cfg_path.open("r", encoding="utf-8") as f:
        config = yaml.safe_load(f) or {}

    if not isinstance(config, dict):
        raise ValueError("Config must be a dictionary")
    for section in ("storage", "grid", "logging"):
        value = config.setdefault(section, {})
        if value is None:
            config[section] = {}
        elif not isinstance(value, dict):
            raise ValueError(f"Config section '{section}' must be a dictionary")

    # raises ValueError on bad grid settings
    get_grid_settings(config)
    return config


def load_config_or_defaults(path: Path | None = None) -> Dict[str, Any]:
    """Like load_config, but a missing file yields the built-in defaults."""
    try:
        return load_config(path)
    except FileNotFoundError:
        return {"storage": {}, "grid": {}, "logging": {}}


def get_sqlite_path(config: Dict[str, Any]) -> str:
    return (config.get("storage") or {}).get("sqlite_path", DEFAULT_SQLITE_PATH)


def get_log_level(config: Dict[str, Any]) -> str:
    return str((config.get("logging") or {}).get("level", DEFAULT_LOG_LEVEL))


def get_grid_settings(config: Dict[str, Any] | None = None) -> GridSettings:
    """
    Build GridSettings from the 'grid' config section with defaults applied.

    Defaults:
    - default_page_size: 10
    - max_page_size: 100
    - case_sensitive_filter: True
    - default_sort_column: license_number
    """
    grid = (config or {}).get("grid") or {}

    default_page_size = grid.get("default_page_size", DEFAULT_PAGE_SIZE)
    max_page_size = grid.get("max_page_size", DEFAULT_MAX_PAGE_SIZE)
    for name, value in (("default_page_size", default_page_size), ("max_page_size", max_page_size)):
        if isinstance(value, bool) or not isinstance(value, int) or value < 1:
            raise ValueError(f"grid.{name} must be a positive integer")
    if default_page_size > max_page_size:
        raise ValueError("grid.default_page_size cannot exceed grid.max_page_size")

    case_sensitive = grid.get("case_sensitive_filter", True)
    if not isinstance(case_sensitive, bool):
        raise ValueError("grid.case_sensitive_filter must be true or false")

    sort_column = grid.get("default_sort_column", DEFAULT_SORT_COLUMN)
    try:
        VehicleColumn.parse(sort_column)
    except KeyError:
        raise ValueError(f"grid.default_sort_column is not a known column: {sort_column}") from None

    return GridSettings(
        default_page_size=default_page_size,
        max_page_size=max_page_size,
        case_sensitive_filter=case_sensitive,
        default_sort_column=sort_column,
    )
