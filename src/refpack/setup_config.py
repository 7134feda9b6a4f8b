# src/refpack/setup_config.py
"""
Configuration loading for refpack.

Settings are assembled once at process start from three layers, later layers
winning: the YAML config file, environment overrides, and command-line
overrides. The resulting Settings object is passed into the core; nothing
below the front-ends reads the environment.
"""

import os
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Tuple

import platformdirs
import yaml

from refpack.constants import (
    ARCHIVE_ROOT_PREFIX,
    CACHE_DIR_NAME,
    CONFIG_FILE_NAME,
    DEFAULT_FILTER_RULES,
    DEFAULT_MAX_LIST,
    DEV_PREFIX_ENV_VAR,
    GITHUB_API_TIMEOUT,
    GITHUB_TOKEN_ENV_VAR,
    MAX_LIST_ENV_VAR,
    PRODUCT_NAME,
    SILENT_ENV_VAR,
    SKIP_DOWNLOAD_ENV_VAR,
    SOURCE_ASSET_NAME,
    UPSTREAM_ASSET_URL_TEMPLATE,
    UPSTREAM_RELEASES_URL,
)
from refpack.exceptions import ConfigFileError, ConfigValidationError
from refpack.log_utils import logger

CONFIG_DIR = platformdirs.user_config_dir(CACHE_DIR_NAME)
CONFIG_FILE = os.path.join(CONFIG_DIR, CONFIG_FILE_NAME)


def get_downloads_dir() -> str:
    """Return the user's Downloads directory, falling back to ~/Downloads."""
    try:
        downloads = platformdirs.user_downloads_dir()
    except (OSError, AttributeError):
        downloads = None
    return downloads or os.path.join(os.path.expanduser("~"), "Downloads")


@dataclass(frozen=True)
class Settings:
    """Immutable run configuration handed to the core pipeline."""

    releases_url: str = UPSTREAM_RELEASES_URL
    asset_url_template: str = UPSTREAM_ASSET_URL_TEMPLATE
    asset_name: str = SOURCE_ASSET_NAME
    product_name: str = PRODUCT_NAME
    root_prefix: str = ARCHIVE_ROOT_PREFIX
    filter_rules: Tuple[str, ...] = DEFAULT_FILTER_RULES
    max_list: int = DEFAULT_MAX_LIST
    dev_prefix: Optional[str] = None
    skip_download: bool = False
    silent: bool = False
    output_dir: Path = field(default_factory=Path.cwd)
    delivery_dir: Optional[Path] = field(
        default_factory=lambda: Path(get_downloads_dir())
    )
    cache_dir: Optional[Path] = None
    github_token: Optional[str] = None
    api_timeout: float = GITHUB_API_TIMEOUT
    log_level: Optional[str] = None


# Config file keys (upper case, as written in refpack.yaml) -> Settings field names
CONFIG_KEYS: Dict[str, str] = {
    "RELEASES_URL": "releases_url",
    "ASSET_URL_TEMPLATE": "asset_url_template",
    "ASSET_NAME": "asset_name",
    "PRODUCT_NAME": "product_name",
    "ROOT_PREFIX": "root_prefix",
    "FILTER_RULES": "filter_rules",
    "MAX_LIST": "max_list",
    "DEV_PREFIX": "dev_prefix",
    "SKIP_DOWNLOAD": "skip_download",
    "SILENT": "silent",
    "OUTPUT_DIR": "output_dir",
    "DELIVERY_DIR": "delivery_dir",
    "CACHE_DIR": "cache_dir",
    "GITHUB_TOKEN": "github_token",
    "API_TIMEOUT": "api_timeout",
    "LOG_LEVEL": "log_level",
}

_STRING_FIELDS = {
    "releases_url",
    "asset_url_template",
    "asset_name",
    "product_name",
    "root_prefix",
}
_OPTIONAL_STRING_FIELDS = {"dev_prefix", "github_token", "log_level"}
_PATH_FIELDS = {"output_dir"}
_OPTIONAL_PATH_FIELDS = {"delivery_dir", "cache_dir"}
_BOOL_FIELDS = {"skip_download", "silent"}


def load_config(config_path: Optional[str] = None) -> Dict[str, Any]:
    """
    Load the refpack YAML configuration file.

    Parameters:
        config_path (str | None): Explicit file to read. When None, the platformdirs-managed CONFIG_FILE is used.

    Returns:
        dict: Settings keyed by Settings field name. An absent file yields an empty dict.

    Raises:
        ConfigFileError: If the file cannot be read, is not valid YAML, or is not a mapping.
    """
    path = config_path or CONFIG_FILE
    if not os.path.exists(path):
        if config_path:
            raise ConfigFileError("Configuration file not found", details=path)
        logger.debug("No configuration file at %s; using defaults", path)
        return {}

    try:
        with open(path, "r", encoding="utf-8") as f:
            raw = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as e:
        raise ConfigFileError(f"Could not read configuration {path}", details=str(e)) from e

    if raw is None:
        return {}
    if not isinstance(raw, dict):
        raise ConfigFileError(
            f"Configuration {path} must be a mapping",
            details=f"got {type(raw).__name__}",
        )

    config: Dict[str, Any] = {}
    for key, value in raw.items():
        name = CONFIG_KEYS.get(str(key).upper())
        if name is None:
            logger.warning("Ignoring unknown configuration key %s in %s", key, path)
            continue
        config[name] = value
    logger.debug("Loaded configuration from %s", path)
    return config


def _parse_positive_int(raw: str) -> Optional[int]:
    try:
        value = int(raw.strip())
    except (TypeError, ValueError):
        return None
    return value if value > 0 else None


def settings_from_environment(environ: Mapping[str, str]) -> Dict[str, Any]:
    """
    Map the legacy environment switches onto Settings field names.

    Recognised variables: MAX_LIST, DEV_PREFIX, SKIP_DOWNLOAD=1, SILENT=1 and
    GITHUB_TOKEN. An invalid or non-positive MAX_LIST is ignored.

    Parameters:
        environ (Mapping[str, str]): Usually `os.environ`, passed in by the front-end.

    Returns:
        dict: Overrides for build_settings().
    """
    overrides: Dict[str, Any] = {}

    raw_max = environ.get(MAX_LIST_ENV_VAR)
    if raw_max:
        max_list = _parse_positive_int(raw_max)
        if max_list is None:
            logger.warning("Ignoring invalid %s=%s", MAX_LIST_ENV_VAR, raw_max)
        else:
            overrides["max_list"] = max_list

    dev_prefix = environ.get(DEV_PREFIX_ENV_VAR)
    if dev_prefix:
        overrides["dev_prefix"] = dev_prefix.strip()

    if environ.get(SKIP_DOWNLOAD_ENV_VAR) == "1":
        overrides["skip_download"] = True
    if environ.get(SILENT_ENV_VAR) == "1":
        overrides["silent"] = True

    token = environ.get(GITHUB_TOKEN_ENV_VAR)
    if token and token.strip():
        overrides["github_token"] = token.strip()

    return overrides


def _coerce_bool(name: str, value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str) and value.strip().lower() in {"1", "true", "yes", "y", "on"}:
        return True
    if isinstance(value, str) and value.strip().lower() in {"0", "false", "no", "n", "off", ""}:
        return False
    if isinstance(value, int):
        return bool(value)
    raise ConfigValidationError(f"{name} must be a boolean", field=name, value=value)


def _coerce_field(name: str, value: Any) -> Any:
    if name in _STRING_FIELDS:
        if not isinstance(value, str) or not value.strip():
            raise ConfigValidationError(
                f"{name} must be a non-empty string", field=name, value=value
            )
        return value.strip()

    if name in _OPTIONAL_STRING_FIELDS:
        if value is None:
            return None
        if not isinstance(value, (str, int)):
            raise ConfigValidationError(f"{name} must be a string", field=name, value=value)
        return str(value).strip() or None

    if name in _PATH_FIELDS or name in _OPTIONAL_PATH_FIELDS:
        if value is None or value == "":
            if name in _PATH_FIELDS:
                raise ConfigValidationError(f"{name} must be a path", field=name, value=value)
            return None
        if not isinstance(value, (str, os.PathLike)):
            raise ConfigValidationError(f"{name} must be a path", field=name, value=value)
        return Path(os.path.expanduser(os.fspath(value)))

    if name in _BOOL_FIELDS:
        return _coerce_bool(name, value)

    if name == "max_list":
        if isinstance(value, bool) or not isinstance(value, (int, str)):
            raise ConfigValidationError("max_list must be an integer", field=name, value=value)
        try:
            max_list = int(value)
        except ValueError as e:
            raise ConfigValidationError(
                "max_list must be an integer", field=name, value=value
            ) from e
        if max_list < 1:
            raise ConfigValidationError("max_list must be at least 1", field=name, value=value)
        return max_list

    if name == "api_timeout":
        try:
            timeout = float(value)
        except (TypeError, ValueError) as e:
            raise ConfigValidationError(
                "api_timeout must be a number", field=name, value=value
            ) from e
        if timeout <= 0:
            raise ConfigValidationError("api_timeout must be positive", field=name, value=value)
        return timeout

    if name == "filter_rules":
        if isinstance(value, str):
            value = [value]
        if not isinstance(value, (list, tuple)) or not all(
            isinstance(rule, str) for rule in value
        ):
            raise ConfigValidationError(
                "filter_rules must be a list of strings", field=name, value=value
            )
        return tuple(rule for rule in value if rule)

    raise ConfigValidationError(f"Unknown setting {name}", field=name, value=value)


def build_settings(
    file_config: Optional[Mapping[str, Any]] = None,
    env_overrides: Optional[Mapping[str, Any]] = None,
    cli_overrides: Optional[Mapping[str, Any]] = None,
) -> Settings:
    """
    Merge configuration layers into a validated Settings object.

    Parameters:
        file_config: Values from load_config().
        env_overrides: Values from settings_from_environment().
        cli_overrides: Values from command-line flags; None values are ignored.

    Returns:
        Settings: The immutable run configuration.

    Raises:
        ConfigValidationError: If any value has the wrong type or range.
    """
    known = {f.name for f in fields(Settings)}
    merged: Dict[str, Any] = {}
    for layer in (file_config, env_overrides, cli_overrides):
        for name, value in (layer or {}).items():
            if name not in known:
                raise ConfigValidationError(f"Unknown setting {name}", field=name, value=value)
            if layer is cli_overrides and value is None:
                continue
            merged[name] = _coerce_field(name, value)

    root_prefix = merged.get("root_prefix", ARCHIVE_ROOT_PREFIX)
    if not root_prefix.strip("/"):
        raise ConfigValidationError(
            "root_prefix must name a directory", field="root_prefix", value=root_prefix
        )

    return Settings(**merged)
