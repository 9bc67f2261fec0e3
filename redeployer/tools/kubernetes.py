"""Kubernetes API tools for triggering deployment rollouts."""

import re
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from kubernetes import client, config
from kubernetes.client.rest import ApiException

from redeployer.utils.logging import get_logger

logger = get_logger("tools.kubernetes")

SERVICE_ACCOUNT_NAMESPACE_FILE = Path("/var/run/secrets/kubernetes.io/serviceaccount/namespace")
DEFAULT_NAMESPACE = "default"
MERGE_PATCH_CONTENT_TYPE = "application/merge-patch+json"

_NON_DIGITS = re.compile(r"\D")


class ClusterError(Exception):
    """Error raised when a cluster API interaction fails."""

    def __init__(
        self,
        message: str,
        operation: str,
        deployment: str | None = None,
        namespace: str | None = None,
    ) -> None:
        """Initialize the ClusterError.

        Args:
            message: Error message.
            operation: The cluster operation that failed.
            deployment: Name of the targeted deployment, if known.
            namespace: Namespace of the targeted deployment, if known.
        """
        super().__init__(message)
        self.operation = operation
        self.deployment = deployment
        self.namespace = namespace

    def log_context(self) -> dict[str, Any]:
        """Fields to attach to log records about this error."""
        return {
            "operation": self.operation,
            "deployment": self.deployment,
            "namespace": self.namespace,
            "error": str(self),
        }


def load_cluster_config() -> bool:
    """Load ambient cluster credentials.

    Tries the in-cluster service account first and falls back to the local
    kubeconfig.

    Returns:
        True if the in-cluster configuration was loaded.

    Raises:
        ClusterError: If neither configuration can be loaded.
    """
    try:
        config.load_incluster_config()
        logger.debug("Loaded in-cluster Kubernetes config")
        return True
    except config.ConfigException:
        pass

    try:
        config.load_kube_config()
        logger.debug("Loaded kubeconfig from local environment")
        return False
    except (config.ConfigException, OSError) as e:
        raise ClusterError(
            f"Failed to load Kubernetes config: {e}", operation="load_config"
        ) from e


def current_namespace(in_cluster: bool) -> str:
    """Resolve the namespace the process is considered to run in.

    Args:
        in_cluster: Whether the in-cluster configuration is active.

    Returns:
        The service account namespace in-cluster, otherwise the namespace of
        the active kubeconfig context, otherwise ``default``.
    """
    if in_cluster:
        try:
            namespace = SERVICE_ACCOUNT_NAMESPACE_FILE.read_text(encoding="utf-8").strip()
        except OSError:
            namespace = ""
        return namespace or DEFAULT_NAMESPACE

    try:
        _, active_context = config.list_kube_config_contexts()
    except (config.ConfigException, OSError):
        return DEFAULT_NAMESPACE

    namespace = (active_context or {}).get("context", {}).get("namespace")
    return namespace or DEFAULT_NAMESPACE


def create_apps_client(namespace: str | None = None) -> tuple[client.AppsV1Api, str]:
    """Create an AppsV1 API client from ambient credentials.

    Args:
        namespace: Explicit namespace, or None to use the current namespace.

    Returns:
        Tuple of the API client and the resolved namespace.

    Raises:
        ClusterError: If credentials cannot be loaded.
    """
    in_cluster = load_cluster_config()
    resolved = namespace or current_namespace(in_cluster)

    try:
        return client.AppsV1Api(), resolved
    except Exception as e:
        raise ClusterError(
            f"Failed to create Kubernetes client: {e}",
            operation="create_client",
            namespace=resolved,
        ) from e


def release_timestamp(now: datetime | None = None) -> str:
    """Render an instant as a digits-only label value.

    The UTC time is formatted as ``YYYY-MM-DD HH:MM:SS`` and every non-digit
    character is stripped, giving ``YYYYMMDDHHMMSS``.

    Args:
        now: The instant to render. Defaults to the current time.

    Returns:
        Digits-only timestamp string, unique to the second.
    """
    if now is None:
        now = datetime.now(UTC)
    elif now.tzinfo is not None:
        now = now.astimezone(UTC)

    iso = now.replace(tzinfo=None).isoformat(sep=" ", timespec="seconds")
    return _NON_DIGITS.sub("", iso)


def build_release_patch(label_key: str, label_value: str) -> dict[str, Any]:
    """Build a merge patch that sets a pod template label.

    Changing a template label changes the pod template hash, which makes the
    deployment controller roll every pod without touching the containers.

    Args:
        label_key: The pod template label to set.
        label_value: The label value.

    Returns:
        Merge patch document.
    """
    return {"spec": {"template": {"metadata": {"labels": {label_key: label_value}}}}}


def get_deployment(
    api: client.AppsV1Api,
    name: str,
    namespace: str,
    timeout: float | None = None,
) -> client.V1Deployment:
    """Fetch a deployment.

    Args:
        api: AppsV1 API client.
        name: Deployment name.
        namespace: Deployment namespace.
        timeout: Request timeout in seconds.

    Returns:
        The deployment resource.

    Raises:
        ClusterError: If the request fails.
    """
    try:
        return api.read_namespaced_deployment(name, namespace, _request_timeout=timeout)
    except ApiException as e:
        raise ClusterError(
            f"Failed to get deployment: {e.status} {e.reason}",
            operation="get",
            deployment=name,
            namespace=namespace,
        ) from e
    except Exception as e:
        raise ClusterError(
            f"Failed to get deployment: {e}",
            operation="get",
            deployment=name,
            namespace=namespace,
        ) from e


def patch_deployment(
    api: client.AppsV1Api,
    name: str,
    namespace: str,
    body: dict[str, Any],
    timeout: float | None = None,
) -> client.V1Deployment:
    """Apply a JSON merge patch to a deployment.

    Args:
        api: AppsV1 API client.
        name: Deployment name.
        namespace: Deployment namespace.
        body: Merge patch document.
        timeout: Request timeout in seconds.

    Returns:
        The patched deployment resource.

    Raises:
        ClusterError: If the request fails.
    """
    try:
        return api.patch_namespaced_deployment(
            name,
            namespace,
            body,
            _content_type=MERGE_PATCH_CONTENT_TYPE,
            _request_timeout=timeout,
        )
    except ApiException as e:
        raise ClusterError(
            f"Failed to patch deployment: {e.status} {e.reason}",
            operation="patch",
            deployment=name,
            namespace=namespace,
        ) from e
    except Exception as e:
        raise ClusterError(
            f"Failed to patch deployment: {e}",
            operation="patch",
            deployment=name,
            namespace=namespace,
        ) from e


def describe_deployment(deployment: Any) -> dict[str, Any]:
    """Summarize a deployment for logging."""
    metadata = getattr(deployment, "metadata", None)
    spec = getattr(deployment, "spec", None)
    status = getattr(deployment, "status", None)
    return {
        "resource_version": getattr(metadata, "resource_version", None),
        "generation": getattr(metadata, "generation", None),
        "replicas": getattr(spec, "replicas", None),
        "ready_replicas": getattr(status, "ready_replicas", None),
    }
