"""Process configuration loader."""

from __future__ import annotations

import os
from pathlib import Path
from typing import TYPE_CHECKING, Any

import yaml

from redeployer.models.config import FILE_KEYS, Settings
from redeployer.utils.logging import get_logger

if TYPE_CHECKING:
    from collections.abc import Callable, Mapping

logger = get_logger("utils.config_loader")

SECRET_ENV_VAR = "SECRET"
CONFIG_FILE_ENV_VAR = "REDEPLOYER_CONFIG"

TRUE_VALUES = {"1", "true", "yes", "on"}
FALSE_VALUES = {"0", "false", "no", "off"}


class ConfigLoaderError(Exception):
    """Error raised when configuration loading fails."""

    pass


def _parse_bool(value: str) -> bool:
    lowered = value.strip().lower()
    if lowered in TRUE_VALUES:
        return True
    if lowered in FALSE_VALUES:
        return False
    raise ValueError(f"expected a boolean, got {value!r}")


# Environment variable -> (field name, converter)
ENV_FIELDS: dict[str, tuple[str, Callable[[str], Any]]] = {
    "DEPLOYMENT_NAME": ("deployment_name", str),
    "DEPLOYMENT_NAMESPACE": ("namespace", str),
    "RELEASE_LABEL": ("label_key", str),
    "WORKFLOW_NAME": ("workflow_name", str),
    "ENABLE_ROLLOUT_TRIGGER": ("enable_rollout_trigger", _parse_bool),
    "CLUSTER_TIMEOUT_SECONDS": ("cluster_timeout_seconds", float),
    "HOST": ("host", str),
    "PORT": ("port", int),
    "LOG_LEVEL": ("log_level", str),
}


def load_settings(environ: Mapping[str, str] | None = None) -> Settings:
    """Load settings from an optional YAML file and the environment.

    Precedence, lowest first:
    1. Built-in defaults
    2. The YAML file named by REDEPLOYER_CONFIG
    3. Environment variables

    The webhook secret is only ever taken from the SECRET environment variable.

    Args:
        environ: Environment mapping. Defaults to os.environ.

    Returns:
        Settings instance.

    Raises:
        ConfigLoaderError: If the config file or any value is invalid.
    """
    env = os.environ if environ is None else environ
    values: dict[str, Any] = {}

    config_path = env.get(CONFIG_FILE_ENV_VAR)
    if config_path:
        values.update(_load_config_file(Path(config_path)))

    for var, (field_name, convert) in ENV_FIELDS.items():
        raw = env.get(var)
        if raw is None or raw == "":
            continue
        try:
            values[field_name] = convert(raw)
        except ValueError as e:
            raise ConfigLoaderError(f"Invalid value for {var}: {e}") from e

    secret = env.get(SECRET_ENV_VAR)
    values["webhook_secret"] = secret.encode() if secret else None

    try:
        settings = Settings.from_mapping(values)
    except (TypeError, ValueError) as e:
        raise ConfigLoaderError(f"Invalid configuration: {e}") from e

    if not settings.has_secret:
        logger.error(
            "Webhook secret not configured, all deliveries will be rejected",
            extra={"variable": SECRET_ENV_VAR},
        )

    logger.info("Loaded configuration", extra={"settings": settings.redacted()})
    return settings


def _load_config_file(filepath: Path) -> dict[str, Any]:
    """Load non-secret settings from a YAML file.

    Values are returned as YAML typed them. Settings rejects wrong types, so a
    quoted "false" is an error rather than a truthy string.

    Args:
        filepath: Path to the YAML file.

    Returns:
        Field values found in the file.

    Raises:
        ConfigLoaderError: If the file cannot be read or parsed.
    """
    try:
        content = filepath.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigLoaderError(f"Failed to read config file {filepath}: {e}") from e

    if not content.strip():
        logger.debug("Config file is empty, using defaults", extra={"file": str(filepath)})
        return {}

    try:
        raw = yaml.safe_load(content)
    except yaml.YAMLError as e:
        raise ConfigLoaderError(f"Failed to parse config file {filepath}: {e}") from e

    if raw is None:
        return {}

    if not isinstance(raw, dict):
        raise ConfigLoaderError(f"Config file {filepath} must contain a mapping")

    unknown = set(raw) - FILE_KEYS
    if unknown:
        raise ConfigLoaderError(
            f"Unknown keys in config file {filepath}: {', '.join(sorted(map(str, unknown)))}"
        )

    logger.debug("Loaded config file", extra={"file": str(filepath)})
    return dict(raw)
