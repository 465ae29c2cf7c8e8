import logging
import os
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, Optional

import toml
import yaml
from dotenv import dotenv_values

_CONFIG_DIR = Path(__file__).resolve().parent
FIELDS_CATALOG = _CONFIG_DIR / "fields.yaml"


def _project_root() -> Path:
    # slatelog/config/config.py -> slatelog/config -> slatelog -> repo root
    return _CONFIG_DIR.parents[1]


def get_default_config() -> Dict[str, Any]:
    """Get default configuration"""
    project_root = _project_root()
    return {
        # Storage: one SQLite database per project under data_dir
        "data_dir": str(project_root / "projects"),

        # Logging
        "log_file": str(project_root / "logs" / "slatelog.log"),
        "log_level": "INFO",
        "log_console": False,

        # Project limits
        "default_camera_count": 1,
        "max_camera_count": 10,
    }


def _env_overrides(env_vars: Dict[str, Optional[str]], config: Dict[str, Any]) -> None:
    if env_vars.get("SLATELOG_DATA_DIR"):
        config["data_dir"] = env_vars["SLATELOG_DATA_DIR"]
    if env_vars.get("SLATELOG_LOG_FILE"):
        config["log_file"] = env_vars["SLATELOG_LOG_FILE"]
    if env_vars.get("SLATELOG_LOG_LEVEL"):
        config["log_level"] = env_vars["SLATELOG_LOG_LEVEL"].upper()
    if env_vars.get("SLATELOG_LOG_CONSOLE"):
        config["log_console"] = env_vars["SLATELOG_LOG_CONSOLE"].lower() == "true"


def load_config(config_file: Optional[os.PathLike] = None, env_file: Optional[os.PathLike] = None) -> Dict[str, Any]:
    """
    Load configuration from a TOML file merged over the defaults, then apply
    overrides from a .env file and finally from the process environment.
    """
    config = get_default_config()

    path = Path(config_file) if config_file is not None else Path(os.getenv("SLATELOG_CONFIG", _CONFIG_DIR / "config.toml"))
    if path.exists():
        with open(path, "r", encoding="utf-8") as f:
            loaded = toml.load(f)
        for key, value in loaded.items():
            config[key] = value

    env_path = Path(env_file) if env_file is not None else _project_root() / ".env"
    if env_path.exists():
        _env_overrides(dotenv_values(env_path), config)
    _env_overrides(dict(os.environ), config)

    config["data_dir"] = os.path.expanduser(config["data_dir"])
    config["log_file"] = os.path.expanduser(config["log_file"])
    return config


@lru_cache(maxsize=1)
def get_config() -> Dict[str, Any]:
    return load_config()


def log_level(config: Dict[str, Any]) -> int:
    return getattr(logging, str(config.get("log_level", "INFO")).upper(), logging.INFO)


@lru_cache(maxsize=1)
def load_field_catalog() -> Dict[str, Any]:
    """
    Field labels used in validation summaries and conflict messages.
    """
    with open(FIELDS_CATALOG, "r", encoding="utf-8") as f:
        return yaml.safe_load(f) or {}
