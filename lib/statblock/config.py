# statblock/config.py
import os
import json
import logging
from dataclasses import dataclass, field, fields

from dotenv import load_dotenv

load_dotenv()  # Automatically load .env in project root

CONFIG_DIR = os.path.expanduser("~/.statblock_config")
SETTINGS_PATH = os.path.join(CONFIG_DIR, "settings.json")

logger = logging.getLogger(__name__)

LOG_FORMAT = "[%(name)s] %(levelname)s: %(message)s"

# settings field -> environment variable
_ENV_VARS = {
    "default_columns": "STATBLOCK_DEFAULT_COLUMNS",
    "max_columns": "STATBLOCK_MAX_COLUMNS",
    "column_width": "STATBLOCK_COLUMN_WIDTH",
    "min_split_height": "STATBLOCK_MIN_SPLIT_HEIGHT",
    "layout_dir": "STATBLOCK_LAYOUT_DIR",
    "log_level": "STATBLOCK_LOG_LEVEL",
}


@dataclass
class Settings:
    default_columns: int = 1
    max_columns: int = 2
    column_width: str = "400px"
    min_split_height: float = 600.0
    layout_dir: str = field(default_factory=lambda: os.path.join(CONFIG_DIR, "layouts"))
    log_level: str = "INFO"


def _coerce(current, value):
    # Keep the default's type; bad values fall back to the default
    try:
        if isinstance(current, int) and not isinstance(current, bool):
            return int(value)
        if isinstance(current, float):
            return float(value)
    except (TypeError, ValueError):
        return current
    return str(value)


def load_settings(path: str = SETTINGS_PATH) -> Settings:
    settings = Settings()

    # 1. settings.json
    stored = {}
    if os.path.exists(path):
        try:
            with open(path, "r") as f:
                stored = json.load(f)
        except (OSError, ValueError) as e:
            logger.warning("Ignoring settings file %s: %s", path, e)
        if not isinstance(stored, dict):
            logger.warning("Ignoring settings file %s: expected a JSON object", path)
            stored = {}
        for f_ in fields(Settings):
            if f_.name in stored:
                setattr(settings, f_.name, _coerce(getattr(settings, f_.name), stored[f_.name]))

    # 2. environment (.env included) wins
    for name, env_var in _ENV_VARS.items():
        value = os.getenv(env_var)
        if value:
            setattr(settings, name, _coerce(getattr(settings, name), value))

    settings.layout_dir = os.path.expanduser(settings.layout_dir)
    return settings


def save_settings(settings: Settings, path: str = SETTINGS_PATH) -> None:
    os.makedirs(os.path.dirname(path), exist_ok=True)
    with open(path, "w") as f:
        json.dump({f_.name: getattr(settings, f_.name) for f_ in fields(Settings)}, f, indent=4)


def configure_logging(level: str = "INFO") -> None:
    """Install one stream handler on the package loggers. Safe to call twice."""
    root = logging.getLogger("statblock")
    ui = logging.getLogger("ui")
    for named in (root, ui):
        named.setLevel(getattr(logging, str(level).upper(), logging.INFO))
        if not named.handlers:
            handler = logging.StreamHandler()
            handler.setFormatter(logging.Formatter(LOG_FORMAT))
            named.addHandler(handler)
