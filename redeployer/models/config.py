"""Configuration models for redeployer."""

from __future__ import annotations

from dataclasses import dataclass, fields
from typing import Any

DEFAULT_DEPLOYMENT_NAME = "simple-budget"
DEFAULT_LABEL_KEY = "released"
DEFAULT_WORKFLOW_NAME = "continuous-delivery"

# Keys accepted from a YAML config file. The secret is deliberately absent.
FILE_KEYS = {
    "deployment_name",
    "namespace",
    "label_key",
    "workflow_name",
    "enable_rollout_trigger",
    "cluster_timeout_seconds",
    "host",
    "port",
    "log_level",
}

# Accepted value types per field. bool is rejected wherever it is not listed.
FIELD_TYPES: dict[str, tuple[type, ...]] = {
    "webhook_secret": (bytes, type(None)),
    "deployment_name": (str,),
    "namespace": (str, type(None)),
    "label_key": (str,),
    "workflow_name": (str,),
    "enable_rollout_trigger": (bool,),
    "cluster_timeout_seconds": (int, float),
    "host": (str,),
    "port": (int,),
    "log_level": (str,),
}


@dataclass(frozen=True)
class Settings:
    """Process configuration, loaded once at startup.

    The webhook secret is read when the process starts; rotating it requires a
    restart. A missing secret does not prevent startup, every delivery is then
    rejected with a configuration error instead.
    """

    webhook_secret: bytes | None = None
    deployment_name: str = DEFAULT_DEPLOYMENT_NAME
    namespace: str | None = None  # None means the current namespace
    label_key: str = DEFAULT_LABEL_KEY
    workflow_name: str = DEFAULT_WORKFLOW_NAME
    enable_rollout_trigger: bool = True
    cluster_timeout_seconds: float = 5.0
    host: str = "0.0.0.0"  # noqa: S104
    port: int = 3000
    log_level: str = "INFO"

    def __post_init__(self) -> None:
        """Validate configuration values."""
        for name, expected in FIELD_TYPES.items():
            value = getattr(self, name)
            if not isinstance(value, expected) or (
                isinstance(value, bool) and bool not in expected
            ):
                allowed = " or ".join(t.__name__ for t in expected)
                raise TypeError(f"{name} must be {allowed}, got {type(value).__name__}")

        if not self.deployment_name:
            raise ValueError("deployment_name must not be empty")

        if not self.label_key:
            raise ValueError("label_key must not be empty")

        if not self.workflow_name:
            raise ValueError("workflow_name must not be empty")

        if self.cluster_timeout_seconds <= 0:
            raise ValueError(
                f"cluster_timeout_seconds must be positive, got {self.cluster_timeout_seconds}"
            )

        if not 0 < self.port < 65536:
            raise ValueError(f"port must be between 1 and 65535, got {self.port}")

    @property
    def has_secret(self) -> bool:
        """Whether a usable webhook secret is configured."""
        return bool(self.webhook_secret)

    @classmethod
    def from_mapping(cls, values: dict[str, Any]) -> Settings:
        """Build settings from already-typed values, ignoring unknown keys.

        Args:
            values: Field values keyed by field name.

        Returns:
            Settings instance.
        """
        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in values.items() if k in known})

    def redacted(self) -> dict[str, Any]:
        """Return the settings as a dict that is safe to log."""
        return {
            "secret_configured": self.has_secret,
            "deployment_name": self.deployment_name,
            "namespace": self.namespace,
            "label_key": self.label_key,
            "workflow_name": self.workflow_name,
            "enable_rollout_trigger": self.enable_rollout_trigger,
            "cluster_timeout_seconds": self.cluster_timeout_seconds,
        }
