"""Rolling restart trigger for verified workflow_run deliveries."""

from __future__ import annotations

import asyncio
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

from redeployer.models.delivery import TriggerResult
from redeployer.tools.kubernetes import (
    ClusterError,
    build_release_patch,
    create_apps_client,
    describe_deployment,
    get_deployment,
    patch_deployment,
    release_timestamp,
)
from redeployer.utils.logging import get_logger
from redeployer.webhook.handler import WebhookParseError, parse_workflow_run

if TYPE_CHECKING:
    from collections.abc import Callable

    from kubernetes import client

    from redeployer.models.config import Settings

logger = get_logger("rollout.trigger")


class RolloutTrigger:
    """Restarts the configured deployment when the target workflow reports in.

    Each qualifying delivery results in one fetch and one merge patch that
    stamps the pod template with the trigger time. Nothing is retried.
    """

    def __init__(
        self,
        settings: Settings,
        client_factory: Callable[[str | None], tuple[client.AppsV1Api, str]] = create_apps_client,
        clock: Callable[[], datetime] = lambda: datetime.now(UTC),
    ) -> None:
        """Initialize the trigger.

        Args:
            settings: Process configuration.
            client_factory: Returns an AppsV1 client and the resolved namespace.
            clock: Source of the trigger instant.
        """
        self.settings = settings
        self._client_factory = client_factory
        self._clock = clock

    async def __call__(self, payload: bytes) -> TriggerResult:
        return await self.maybe_trigger(payload)

    async def maybe_trigger(self, payload: bytes) -> TriggerResult:
        """Trigger a rollout if the payload is the target workflow run.

        Must only be called with a payload whose signature was verified.

        Args:
            payload: The raw, verified request body.

        Returns:
            What was done with the payload.

        Raises:
            ClusterError: If obtaining the client, fetching or patching fails.
        """
        try:
            event = parse_workflow_run(payload)
        except WebhookParseError as e:
            logger.info("Ignoring unparseable payload", extra={"error": str(e)})
            return TriggerResult.IGNORED_PARSE_FAILURE

        if event.name != self.settings.workflow_name:
            logger.info(
                "Workflow does not trigger a rollout",
                extra={**event.log_context(), "expected": self.settings.workflow_name},
            )
            return TriggerResult.IGNORED_NAME_MISMATCH

        logger.info("Rollout triggered", extra=event.log_context())
        await self._restart()
        return TriggerResult.TRIGGERED

    async def _restart(self) -> None:
        name = self.settings.deployment_name
        timeout = self.settings.cluster_timeout_seconds

        api, namespace = await self._run(
            "create_client", None, self._client_factory, self.settings.namespace
        )

        deployment = await self._run(
            "get", namespace, get_deployment, api, name, namespace, timeout
        )
        logger.debug(
            "Fetched deployment",
            extra={"deployment": name, "namespace": namespace, **describe_deployment(deployment)},
        )

        label_value = release_timestamp(self._clock())
        patch = build_release_patch(self.settings.label_key, label_value)
        await self._run("patch", namespace, patch_deployment, api, name, namespace, patch, timeout)

        logger.info(
            "Deployment patched",
            extra={
                "deployment": name,
                "namespace": namespace,
                "label": self.settings.label_key,
                "value": label_value,
            },
        )

    async def _run(
        self,
        operation: str,
        namespace: str | None,
        func: Callable[..., Any],
        *args: Any,
    ) -> Any:
        """Run a blocking cluster call off the event loop, bounded by the timeout."""
        timeout = self.settings.cluster_timeout_seconds
        try:
            return await asyncio.wait_for(asyncio.to_thread(func, *args), timeout=timeout)
        except TimeoutError as e:
            raise ClusterError(
                f"Timed out after {timeout}s",
                operation=operation,
                deployment=self.settings.deployment_name,
                namespace=namespace,
            ) from e
        except ClusterError:
            raise
        except Exception as e:
            raise ClusterError(
                f"Unexpected error: {e}",
                operation=operation,
                deployment=self.settings.deployment_name,
                namespace=namespace,
            ) from e
