"""HMAC-SHA256 verification for GitHub webhook deliveries.

GitHub signs the exact request bytes, so verification must run against the
raw body as received. Re-serializing parsed JSON can change whitespace or key
order and break the digest.
"""

from __future__ import annotations

import hashlib
import hmac

SIGNATURE_HEADER = "X-Hub-Signature-256"
SIGNATURE_PREFIX = "sha256="


def compute_signature(raw_body: bytes, secret: str) -> str:
    """Return the ``sha256=<hex>`` header value for *raw_body*.

    Examples
    --------
    >>> compute_signature(b"{}", "s3cret")[:7]
    'sha256='

    """
    digest = hmac.new(secret.encode("utf-8"), raw_body, hashlib.sha256).hexdigest()
    return f"{SIGNATURE_PREFIX}{digest}"


def verify_signature(
    raw_body: bytes | None,
    header_signature: str | None,
    secret: str | None,
) -> bool:
    """Return whether *header_signature* authenticates *raw_body*.

    Fails closed: a missing secret, body or header, or a header without the
    ``sha256=`` prefix, is treated as a failed verification. The comparison
    runs in constant time.

    Parameters
    ----------
    raw_body
        Request body exactly as received.
    header_signature
        Value of the ``X-Hub-Signature-256`` header.
    secret
        Shared webhook secret.

    Returns
    -------
    bool
        ``True`` only when the signature matches.

    """
    if not secret or raw_body is None or not header_signature:
        return False
    if not header_signature.startswith(SIGNATURE_PREFIX):
        return False

    expected = compute_signature(raw_body, secret)
    return hmac.compare_digest(
        expected.encode("ascii"),
        header_signature.strip().encode("utf-8", "replace"),
    )
