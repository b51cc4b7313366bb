"""Webhook signature verification.

GitHub signs every delivery with an HMAC of the raw request body keyed by
the webhook secret and sends it in ``X-Hub-Signature`` as ``sha1=<hex>``.
"""

import hashlib
import hmac
from typing import Optional

import structlog

logger = structlog.get_logger(__name__)

SUPPORTED_SCHEME = "sha1"


class SignatureError(Exception):
    """Raised when a webhook delivery fails signature verification."""


class UnsupportedSignatureSchemeError(SignatureError):
    """Raised when the signature header uses a scheme other than sha1."""

    def __init__(self, scheme: str):
        self.scheme = scheme
        super().__init__(f"unsupported webhook signature scheme: {scheme!r}")


class SignatureMismatchError(SignatureError):
    """Raised when the computed digest does not match the received one."""


def verify_signature(
    secret: str,
    body: bytes,
    signature_header: Optional[str],
) -> None:
    """Verify the ``X-Hub-Signature`` header of a webhook delivery.

    The scheme prefix is checked before any digest is computed, so an
    unknown or missing scheme is rejected without touching the body.

    Args:
        secret: The shared webhook secret.
        body: The raw request body exactly as received.
        signature_header: The ``X-Hub-Signature`` header value.

    Raises:
        UnsupportedSignatureSchemeError: Scheme is not ``sha1``.
        SignatureMismatchError: Digest does not match.
    """
    scheme, _, received = (signature_header or "").partition("=")
    if scheme != SUPPORTED_SCHEME:
        raise UnsupportedSignatureSchemeError(scheme)

    expected = hmac.new(secret.encode("utf-8"), body, hashlib.sha1).hexdigest()
    received_digest = received.encode("utf-8", "replace")
    if not hmac.compare_digest(expected.encode("ascii"), received_digest):
        logger.warning(
            "Webhook signature mismatch",
            received_prefix=received[:8],
        )
        raise SignatureMismatchError("webhook signature does not match payload")


def compute_signature(secret: str, body: bytes) -> str:
    """Compute the ``X-Hub-Signature`` header value for a body."""
    digest = hmac.new(secret.encode("utf-8"), body, hashlib.sha1).hexdigest()
    return f"{SUPPORTED_SCHEME}={digest}"
