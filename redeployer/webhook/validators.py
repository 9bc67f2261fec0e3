"""Webhook signature validation."""

import hashlib
import hmac

SIGNATURE_PREFIX = b"sha256="


class WebhookAuthError(Exception):
    """Raised when a delivery cannot be authenticated."""

    pass


class MissingSignatureError(WebhookAuthError):
    """Raised when the delivery carries no signature header."""

    pass


class InvalidSignatureError(WebhookAuthError):
    """Raised when the claimed signature does not match the body."""

    pass


class ConfigurationError(WebhookAuthError):
    """Raised when the webhook secret is not configured."""

    pass


def compute_signature(secret: bytes, payload: bytes) -> bytes:
    """Compute the X-Hub-Signature-256 value for a payload.

    Args:
        secret: The shared webhook secret.
        payload: The raw request body bytes.

    Returns:
        The signature as ``b"sha256=<lowercase hex>"``.
    """
    digest = hmac.new(secret, payload, hashlib.sha256).hexdigest()
    return SIGNATURE_PREFIX + digest.encode("ascii")


def verify_webhook_signature(
    secret: bytes | None,
    payload: bytes,
    signature: bytes | str | None,
) -> None:
    """Verify the HMAC-SHA256 signature of a webhook payload.

    The digest is computed over the exact bytes received. Signatures of a
    different length are rejected before comparing; equal-length signatures
    are compared in constant time.

    Args:
        secret: The shared webhook secret, or None if not configured.
        payload: The raw request body bytes.
        signature: The X-Hub-Signature-256 header value.

    Raises:
        MissingSignatureError: If the signature header is missing or empty.
        ConfigurationError: If no secret is configured.
        InvalidSignatureError: If the signature does not match.
    """
    if not signature:
        raise MissingSignatureError("Missing signature header")

    if not secret:
        raise ConfigurationError("Webhook secret not configured")

    if isinstance(signature, str):
        try:
            claimed = signature.encode("latin-1")
        except UnicodeEncodeError as e:
            raise InvalidSignatureError("Signature contains non-latin-1 characters") from e
    else:
        claimed = signature

    expected = compute_signature(secret, payload)

    if len(claimed) != len(expected):
        raise InvalidSignatureError("Signature length mismatch")

    if not hmac.compare_digest(claimed, expected):
        raise InvalidSignatureError("Signature verification failed")
