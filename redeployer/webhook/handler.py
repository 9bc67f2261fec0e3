"""Webhook delivery handler."""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Protocol

from redeployer.models.delivery import DeliveryState, TriggerResult, WebhookDelivery
from redeployer.models.webhook import WorkflowRunEvent
from redeployer.tools.kubernetes import ClusterError
from redeployer.utils.logging import get_logger
from redeployer.webhook.validators import (
    ConfigurationError,
    WebhookAuthError,
    verify_webhook_signature,
)

if TYPE_CHECKING:
    from redeployer.models.config import Settings

logger = get_logger("webhook.handler")


class WebhookParseError(Exception):
    """Raised when webhook payload parsing fails."""

    pass


class VerifiedWebhookHook(Protocol):
    """Async callable run with the raw body of every verified delivery."""

    async def __call__(self, payload: bytes) -> TriggerResult: ...


def parse_workflow_run(payload: bytes) -> WorkflowRunEvent:
    """Parse a workflow_run webhook body.

    Args:
        payload: The raw request body.

    Returns:
        WorkflowRunEvent instance.

    Raises:
        WebhookParseError: If the body is not JSON or lacks workflow_run.name.
    """
    try:
        document = json.loads(payload)
    except (ValueError, RecursionError) as e:
        raise WebhookParseError(f"Invalid JSON: {e}") from e

    try:
        return WorkflowRunEvent.from_webhook_payload(document)
    except KeyError as e:
        raise WebhookParseError(f"Missing required field: {e}") from e
    except ValueError as e:
        raise WebhookParseError(f"Invalid field value: {e}") from e


class WebhookHandler:
    """Authenticates deliveries and hands verified bodies to an optional hook.

    Both webhook routes share this handler. With no hook configured, or with
    the rollout trigger disabled, a verified delivery completes immediately.
    """

    def __init__(self, settings: Settings, on_verified: VerifiedWebhookHook | None = None) -> None:
        self.settings = settings
        self.on_verified = on_verified if settings.enable_rollout_trigger else None

    async def handle(
        self,
        body: bytes,
        signature: bytes | str | None,
        delivery_id: str | None = None,
    ) -> WebhookDelivery:
        """Run one delivery through verification and the on-verified hook.

        Parsing and cluster calls happen inside the hook, so the states after
        PARSING are recorded from its outcome once it returns or raises.
        TRIGGERING in the history means cluster work was attempted, and
        completed_at is when the outcome was recorded.

        Args:
            body: The raw request body, exactly as received.
            signature: The X-Hub-Signature-256 header value, if present.
            delivery_id: The X-GitHub-Delivery header value, for logging.

        Returns:
            The delivery in a terminal state.
        """
        delivery = WebhookDelivery(delivery_id=delivery_id)
        delivery.transition_to(DeliveryState.VERIFYING)

        try:
            verify_webhook_signature(self.settings.webhook_secret, body, signature)
        except ConfigurationError as e:
            logger.error(
                "Webhook secret not configured",
                extra={"delivery_id": delivery_id, "error": str(e)},
            )
            delivery.reject(type(e).__name__)
            return delivery
        except WebhookAuthError as e:
            logger.warning(
                "Signature verification failed",
                extra={"delivery_id": delivery_id, "error": str(e)},
            )
            delivery.reject(type(e).__name__)
            return delivery

        delivery.transition_to(DeliveryState.VERIFIED)

        if self.on_verified is None:
            logger.info(
                "Delivery verified, no trigger configured",
                extra={"delivery_id": delivery_id},
            )
            delivery.transition_to(DeliveryState.COMPLETED)
            return delivery

        delivery.transition_to(DeliveryState.PARSING)

        try:
            result = await self.on_verified(body)
        except ClusterError as e:
            logger.error(
                "Rollout failed",
                extra={"delivery_id": delivery_id, **e.log_context()},
                exc_info=True,
            )
            delivery.fail(str(e))
            return delivery
        except Exception as e:
            logger.exception(
                "On-verified hook raised unexpectedly",
                extra={"delivery_id": delivery_id},
            )
            delivery.fail(str(e))
            return delivery

        if result is TriggerResult.TRIGGERED:
            delivery.transition_to(DeliveryState.TRIGGERING)
            delivery.transition_to(DeliveryState.COMPLETED)
        else:
            delivery.ignore(result)

        logger.info(
            "Delivery handled",
            extra={
                "delivery_id": delivery_id,
                "state": delivery.state.value,
                "result": result.value,
            },
        )
        return delivery
