import json
import os
from importlib import resources
from pathlib import Path
from typing import Any

import tomli as toml

from bindbridge import logging as bindbridge_logging

logger = bindbridge_logging.get_logger(__name__)

_RESOURCE_PACKAGE = "bindbridge._resources"
_DEFAULT_CONFIG_NAME = "bindbridge.default.toml"
_CONFIG_ENV_VAR = "BINDBRIDGE_CONFIG"
_USER_CONFIG_NAME = "bindbridge.toml"


def load_resource_text(name: str) -> str:
    """Return the text of a bundled resource file."""
    try:
        resource = resources.files(_RESOURCE_PACKAGE).joinpath(name)
        with resource.open("r", encoding="utf-8") as handle:
            return handle.read()
    except (FileNotFoundError, ModuleNotFoundError):
        fallback = Path(__file__).resolve().parent / "_resources" / name
        if not fallback.is_file():
            raise FileNotFoundError(f"Could not locate _resources/{name}")
        return fallback.read_text(encoding="utf-8")


def _merge_configs(config, default_config):
    config_out = {}

    for key, default_value in default_config.items():
        if key in config:
            if isinstance(config[key], dict) and isinstance(default_value, dict):
                config_out[key] = _merge_configs(config[key], default_value)
            elif isinstance(config[key], dict) or isinstance(default_value, dict):
                raise TypeError(f"Type mismatch for key '{key}': "
                                f"config has {type(config[key])}, default_config has {type(default_value)}")
            # Otherwise, config[key] takes precedence
            else:
                config_out[key] = config[key]
        else:
            config_out[key] = default_value

    # Add keys that are only in config
    for key, value in config.items():
        if key not in default_config:
            config_out[key] = value

    return config_out


def load_default_config():
    """Load the bundled default configuration from packaged resources."""
    return toml.loads(load_resource_text(_DEFAULT_CONFIG_NAME))


def try_load_config(config_file=None):
    """Load user configuration merged with defaults.

    Resolution order:
    1. Explicit `config_file` argument.
    2. `BINDBRIDGE_CONFIG` environment variable.
    3. `./bindbridge.toml` relative to current working directory.
    4. `bindbridge.toml` inside the repository checkout (development mode).
    If none are found, return the default config alone.
    """
    default_config = load_default_config()

    def _load_user_config(path: Path) -> dict:
        with open(path, "rb") as f:
            return toml.load(f)

    if config_file:
        candidate = Path(config_file).expanduser()
        if not candidate.is_file():
            raise FileNotFoundError(f"Could not find config file {candidate}")
        user_config = _load_user_config(candidate)
        return _merge_configs(user_config, default_config)

    env_candidate = os.environ.get(_CONFIG_ENV_VAR)
    if env_candidate:
        env_path = Path(env_candidate).expanduser()
        if not env_path.is_file():
            raise FileNotFoundError(f"{_CONFIG_ENV_VAR}={env_candidate} does not point to a readable file")
        user_config = _load_user_config(env_path)
        return _merge_configs(user_config, default_config)

    cwd_candidate = Path.cwd() / _USER_CONFIG_NAME
    if cwd_candidate.is_file():
        user_config = _load_user_config(cwd_candidate)
        return _merge_configs(user_config, default_config)

    # Load from repository root if in development mode
    package_dir = Path(__file__).resolve().parent
    repo_candidate = package_dir.parent / _USER_CONFIG_NAME
    if repo_candidate.is_file():
        user_config = _load_user_config(repo_candidate)
        return _merge_configs(user_config, default_config)

    logger.info("No user config found; falling back to default configuration only")
    return default_config


def read_file(path: str) -> str:
    if not os.path.exists(path):
        raise FileNotFoundError(f"Could not find file {path}")
    with open(path, "r", encoding="utf-8") as f:
        return f.read()


def save_json(path: str, payload: Any, indent: int = 2) -> None:
    parent = os.path.dirname(os.path.abspath(path))
    os.makedirs(parent, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(payload, f, indent=indent, ensure_ascii=False)
        f.write("\n")
