"""
Configuration management for the mind-map editor.

Settings come from three layers, later ones winning:
1. built-in defaults
2. config.json next to the executable/project root
3. MINDMAP_* environment variables (a .env file is loaded by app.py)
"""

import json
import logging
import os
from dataclasses import asdict, dataclass, fields
from pathlib import Path
from typing import Any, Dict, Optional

from mindmap.paths import get_config_path, get_db_dir

logger = logging.getLogger(__name__)

ENV_PREFIX = "MINDMAP_"


@dataclass
class EditorSettings:
    storage_backend: str = "file"
    storage_dir: str = ""
    debounce_ms: int = 120
    level_gap: float = 220.0
    node_gap: float = 90.0
    zoom_min: float = 0.3
    zoom_max: float = 2.5
    font_path: Optional[str] = None
    font_size: int = 14
    max_node_width: float = 280.0

    def __post_init__(self):
        if not self.storage_dir:
            self.storage_dir = str(get_db_dir())

    @property
    def debounce_seconds(self) -> float:
        return self.debounce_ms / 1000


def load_config(config_path: Optional[Path] = None) -> dict:
    """Load configuration from config.json."""
    config_path = config_path or get_config_path()
    if config_path.exists():
        try:
            with open(config_path, 'r', encoding='utf-8') as f:
                return json.load(f)
        except (json.JSONDecodeError, IOError) as e:
            logger.warning(f"Ignoring unreadable config {config_path}: {e}")
            return {}
    return {}


def save_config(config: dict, config_path: Optional[Path] = None) -> None:
    """Save configuration to config.json."""
    config_path = config_path or get_config_path()
    with open(config_path, 'w', encoding='utf-8') as f:
        json.dump(config, f, indent=2)


def _coerce(value: Any, default: Any) -> Any:
    """Convert a raw config/env value to the type of the field default."""
    if value is None or isinstance(default, str) or default is None:
        return value
    if isinstance(default, bool):
        return str(value).lower() in ("1", "true", "yes", "on")
    return type(default)(value)


def load_settings(config_path: Optional[Path] = None,
                  environ: Optional[Dict[str, str]] = None) -> EditorSettings:
    """Build settings from defaults, config.json and the environment."""
    environ = os.environ if environ is None else environ
    raw = load_config(config_path)
    defaults = EditorSettings()
    values = {}
    for f in fields(EditorSettings):
        default = getattr(defaults, f.name)
        value = raw.get(f.name, default)
        env_value = environ.get(ENV_PREFIX + f.name.upper())
        if env_value is not None:
            value = env_value
        try:
            values[f.name] = _coerce(value, default)
        except (TypeError, ValueError):
            logger.warning(f"Invalid value {value!r} for setting {f.name}, using default")
            values[f.name] = default
    return EditorSettings(**values)


def save_settings(settings: EditorSettings, config_path: Optional[Path] = None) -> None:
    save_config(asdict(settings), config_path)
