import hashlib
import hmac
from luckypaws.core.errors import AuthenticationError

def compute_signature(secret: str, raw_body: bytes) -> str:
    """Hex HMAC-SHA256 of the raw request body"""
    return hmac.new(secret.encode(), raw_body, hashlib.sha256).hexdigest()

def _same(a: str, b: str) -> bool:
    # compare_digest refuses non-ASCII str, header values can be any latin-1
    return hmac.compare_digest(a.encode("utf-8"), b.encode("utf-8"))

def verify_signature(raw_body: bytes, signature: str | None, secret: str) -> None:
    """
    Reject a webhook body whose signature is absent or does not match.
    Must run before the body is parsed.
    """
    if not secret:
        raise AuthenticationError("Webhook secret is not configured")
    if not signature:
        raise AuthenticationError("Missing signature")
    expected = compute_signature(secret, raw_body)
    if not _same(expected, signature.strip().lower()):
        raise AuthenticationError("Invalid signature")

def verify_api_key(provided: str | None, expected: str) -> None:
    """Admin header check, disabled when no key is configured"""
    if not expected:
        return
    if not provided or not _same(provided, expected):
        raise AuthenticationError("Invalid admin key")
