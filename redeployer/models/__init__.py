"""Data models for redeployer."""

from redeployer.models.config import (
    DEFAULT_DEPLOYMENT_NAME,
    DEFAULT_LABEL_KEY,
    DEFAULT_WORKFLOW_NAME,
    Settings,
)
from redeployer.models.delivery import DeliveryState, TriggerResult, WebhookDelivery
from redeployer.models.webhook import WorkflowRunEvent

__all__ = [
    "DEFAULT_DEPLOYMENT_NAME",
    "DEFAULT_LABEL_KEY",
    "DEFAULT_WORKFLOW_NAME",
    "DeliveryState",
    "Settings",
    "TriggerResult",
    "WebhookDelivery",
    "WorkflowRunEvent",
]
