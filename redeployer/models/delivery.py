"""Webhook delivery model."""

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum


class DeliveryState(str, Enum):
    """State of a single webhook delivery."""

    RECEIVED = "received"
    VERIFYING = "verifying"
    REJECTED = "rejected"
    VERIFIED = "verified"
    PARSING = "parsing"
    IGNORED = "ignored"
    TRIGGERING = "triggering"
    COMPLETED = "completed"
    FAILED = "failed"


class TriggerResult(str, Enum):
    """Outcome of handing a verified payload to the on-verified hook."""

    IGNORED_PARSE_FAILURE = "ignored_parse_failure"
    IGNORED_NAME_MISMATCH = "ignored_name_mismatch"
    TRIGGERED = "triggered"


# Valid state transitions
VALID_TRANSITIONS: dict[DeliveryState, set[DeliveryState]] = {
    DeliveryState.RECEIVED: {DeliveryState.VERIFYING},
    DeliveryState.VERIFYING: {DeliveryState.VERIFIED, DeliveryState.REJECTED},
    # VERIFIED -> COMPLETED when no on-verified hook is configured
    DeliveryState.VERIFIED: {DeliveryState.PARSING, DeliveryState.COMPLETED},
    DeliveryState.PARSING: {DeliveryState.IGNORED, DeliveryState.TRIGGERING},
    DeliveryState.TRIGGERING: {DeliveryState.COMPLETED, DeliveryState.FAILED},
    # Terminal states have no valid transitions
    DeliveryState.REJECTED: set(),
    DeliveryState.IGNORED: set(),
    DeliveryState.COMPLETED: set(),
    DeliveryState.FAILED: set(),
}

TERMINAL_STATES = frozenset(
    {
        DeliveryState.REJECTED,
        DeliveryState.IGNORED,
        DeliveryState.COMPLETED,
        DeliveryState.FAILED,
    }
)

# Auth and configuration failures share one status so callers cannot tell them apart
ERROR_STATES = frozenset({DeliveryState.REJECTED, DeliveryState.FAILED})


@dataclass
class WebhookDelivery:
    """Tracks one inbound delivery from receipt to a terminal state.

    This is an in-memory state tracker - not persisted.
    """

    delivery_id: str | None = None
    state: DeliveryState = DeliveryState.RECEIVED
    received_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    completed_at: datetime | None = None
    history: list[DeliveryState] = field(default_factory=lambda: [DeliveryState.RECEIVED])
    reason: str | None = None
    error: str | None = None

    def transition_to(self, new_state: DeliveryState) -> None:
        """Transition to a new state with validation.

        Args:
            new_state: The state to transition to.

        Raises:
            ValueError: If the transition is invalid.
        """
        valid_next_states = VALID_TRANSITIONS.get(self.state, set())

        if new_state not in valid_next_states:
            raise ValueError(
                f"Invalid transition: {self.state.value} -> {new_state.value}. "
                f"Valid transitions: {[s.value for s in valid_next_states]}"
            )

        self.state = new_state
        self.history.append(new_state)

        if new_state in TERMINAL_STATES:
            self.completed_at = datetime.now(UTC)

    def reject(self, reason: str) -> None:
        """Move a delivery under verification to the rejected state.

        Args:
            reason: Internal description of why authentication failed.
        """
        self.reason = reason
        self.transition_to(DeliveryState.REJECTED)

    def ignore(self, result: TriggerResult) -> None:
        """Record that a verified payload did not qualify for a rollout."""
        self.reason = result.value
        self.transition_to(DeliveryState.IGNORED)

    def fail(self, error: str) -> None:
        """Transition to failed state with error message.

        Args:
            error: The error message.
        """
        self.error = error
        if self.state is not DeliveryState.TRIGGERING:
            self.transition_to(DeliveryState.TRIGGERING)
        self.transition_to(DeliveryState.FAILED)

    @property
    def is_terminal(self) -> bool:
        """Check if the delivery is in a terminal state."""
        return self.state in TERMINAL_STATES

    @property
    def status_code(self) -> int:
        """HTTP status for the delivery's terminal state."""
        if not self.is_terminal:
            raise ValueError(f"Delivery is not finished: {self.state.value}")
        return 500 if self.state in ERROR_STATES else 200

    @property
    def duration_seconds(self) -> float | None:
        """Get delivery handling time in seconds, if finished."""
        if self.completed_at is None:
            return None
        return (self.completed_at - self.received_at).total_seconds()
