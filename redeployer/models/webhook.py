"""Workflow run webhook payload model."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class WorkflowRunEvent:
    """The parts of a ``workflow_run`` delivery that redeployer looks at.

    Only ``name`` drives behavior. The other fields are carried for logging.
    """

    name: str
    action: str | None = None
    run_id: int | None = None
    head_sha: str | None = None
    conclusion: str | None = None
    repository: str | None = None

    def __post_init__(self) -> None:
        """Validate fields after initialization."""
        if not isinstance(self.name, str):
            raise ValueError(f"workflow_run.name must be a string, got {type(self.name).__name__}")

    @classmethod
    def from_webhook_payload(cls, payload: Any) -> WorkflowRunEvent:
        """Create a WorkflowRunEvent from a decoded webhook payload.

        Unknown or absent optional fields are ignored.

        Args:
            payload: The decoded JSON document.

        Returns:
            WorkflowRunEvent instance.

        Raises:
            KeyError: If ``workflow_run.name`` is missing.
            ValueError: If the payload does not have the expected shape.
        """
        if not isinstance(payload, dict):
            raise ValueError(f"Expected a JSON object, got {type(payload).__name__}")

        run = payload["workflow_run"]
        if not isinstance(run, dict):
            raise ValueError("workflow_run must be an object")

        repository = payload.get("repository")
        return cls(
            name=run["name"],
            action=_optional_str(payload.get("action")),
            run_id=run.get("id") if isinstance(run.get("id"), int) else None,
            head_sha=_optional_str(run.get("head_sha")),
            conclusion=_optional_str(run.get("conclusion")),
            repository=(
                _optional_str(repository.get("full_name")) if isinstance(repository, dict) else None
            ),
        )

    def log_context(self) -> dict[str, Any]:
        """Fields to attach to log records about this event."""
        return {
            "workflow_name": self.name,
            "action": self.action,
            "run_id": self.run_id,
            "head_sha": self.head_sha,
            "conclusion": self.conclusion,
            "repository": self.repository,
        }


def _optional_str(value: Any) -> str | None:
    return value if isinstance(value, str) else None
