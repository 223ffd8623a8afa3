"""
Webhook signatures: HMAC-SHA256 over the raw request body.

The same check applies to every sender, including GitLab token headers.
"""
import hashlib
import hmac


def compute_signature(secret: str, body: bytes) -> str:
    """Hex HMAC-SHA256 of the raw body."""
    return hmac.new(secret.encode("utf-8"), msg=body, digestmod=hashlib.sha256).hexdigest()


def verify_signature(secret: str, body: bytes, signature_header: str) -> bool:
    """
    Verify a webhook signature header against the raw request body.

    secret: Shared webhook secret
    body: Raw request body, exactly as received
    signature_header: Header value, with or without a "sha256=" style prefix
    """
    if not secret or not signature_header:
        return False

    provided = signature_header.strip()
    if "=" in provided:
        provided = provided.split("=", 1)[1].strip()

    # Constant-time comparison
    return hmac.compare_digest(
        provided.encode("utf-8"),
        compute_signature(secret, body).encode("utf-8"),
    )
