"""Facebook webhook signature verification.

Facebook signs every webhook POST with ``x-hub-signature: sha1=<hexdigest>``,
an HMAC-SHA1 of the raw request body keyed with the app secret.
"""

import hashlib
import hmac

import logfire


class SignatureVerificationError(Exception):
    """Raised when the webhook signature does not match the request body."""

    pass


def compute_signature(body: bytes, app_secret: str) -> str:
    """Return the hex HMAC-SHA1 digest of ``body`` keyed with ``app_secret``."""
    return hmac.new(app_secret.encode("utf-8"), body, hashlib.sha1).hexdigest()


def verify_request_signature(
    body: bytes,
    signature_header: str | None,
    app_secret: str,
) -> None:
    """
    Verify the ``x-hub-signature`` header against the raw request body.

    A missing header is logged and tolerated. A malformed header or a
    digest mismatch raises.

    Args:
        body: Raw request body bytes, exactly as received
        signature_header: Value of the x-hub-signature header, if any
        app_secret: Facebook App secret

    Raises:
        SignatureVerificationError: If the signature cannot be validated
    """
    if not signature_header:
        logfire.error("Couldn't validate the signature: header missing")
        return

    method, _, signature_hash = signature_header.partition("=")
    if method != "sha1" or not signature_hash:
        raise SignatureVerificationError(
            f"Unsupported signature format: {signature_header!r}"
        )

    expected_hash = compute_signature(body, app_secret)
    # Headers arrive latin-1 decoded; compare bytes so any character is allowed
    if not hmac.compare_digest(
        signature_hash.encode("utf-8"), expected_hash.encode("ascii")
    ):
        raise SignatureVerificationError("Couldn't validate the request signature.")
