"""Pytest configuration and shared fixtures."""

from __future__ import annotations

import hashlib
import hmac
import json
import os
from typing import TYPE_CHECKING, Any
from unittest.mock import MagicMock

import pytest

from redeployer.models.config import Settings
from tests.fixtures.webhook_payloads import create_workflow_run_payload

if TYPE_CHECKING:
    from collections.abc import Callable, Generator

TEST_SECRET = b"test-webhook-secret"


@pytest.fixture(autouse=True)
def reset_env() -> Generator[None]:
    """Reset environment variables after each test."""
    original_env = os.environ.copy()
    yield
    os.environ.clear()
    os.environ.update(original_env)


@pytest.fixture
def webhook_secret() -> bytes:
    """Shared webhook secret for testing."""
    return TEST_SECRET


@pytest.fixture
def settings(webhook_secret: bytes) -> Settings:
    """Settings with a secret and a short cluster timeout."""
    return Settings(
        webhook_secret=webhook_secret,
        namespace="apps",
        cluster_timeout_seconds=1.0,
    )


@pytest.fixture
def sign(webhook_secret: bytes) -> Callable[[bytes], str]:
    """Return a function that signs a body with the test secret."""

    def _sign(body: bytes) -> str:
        return "sha256=" + hmac.new(webhook_secret, body, hashlib.sha256).hexdigest()

    return _sign


@pytest.fixture
def delivery_payload() -> dict[str, Any]:
    """A qualifying workflow_run payload."""
    return create_workflow_run_payload()


@pytest.fixture
def delivery_body(delivery_payload: dict[str, Any]) -> bytes:
    """Raw body bytes for the qualifying payload."""
    return json.dumps(delivery_payload).encode()


@pytest.fixture
def mock_apps_api() -> MagicMock:
    """Mock AppsV1Api client."""
    api = MagicMock()
    api.read_namespaced_deployment.return_value = MagicMock()
    api.patch_namespaced_deployment.return_value = MagicMock()
    return api


@pytest.fixture
def client_factory(mock_apps_api: MagicMock) -> MagicMock:
    """Client factory returning the mock API and the requested namespace."""
    factory = MagicMock()
    factory.side_effect = lambda namespace: (mock_apps_api, namespace or "default")
    return factory
