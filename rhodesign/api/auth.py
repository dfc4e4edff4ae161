# File: rhodesign/api/auth.py

import hashlib
import hmac
from functools import wraps
from time import time

from flask import current_app, jsonify, request

from rhodesign.logging_config import configure_logging

logger = configure_logging("rhodesign.api.auth", "rhodesign.log")


def sign_payload(secret: str, timestamp: str, body: str) -> str:
    """Hex HMAC-SHA256 of timestamp + body, as expected in X-Signature."""
    return hmac.new(secret.encode(), f"{timestamp}{body}".encode(), hashlib.sha256).hexdigest()


def is_valid_hmac_request(req, secret: str, window_seconds: int = 300) -> bool:
    timestamp = req.headers.get("X-Timestamp", "")
    signature = req.headers.get("X-Signature", "")

    if not secret or not timestamp or not signature:
        logger.warning("Missing HMAC headers or shared secret")
        return False

    try:
        timestamp_int = int(timestamp)
    except ValueError:
        logger.warning("Invalid X-Timestamp format")
        return False

    if abs(time() - timestamp_int) > window_seconds:
        logger.warning("Request timestamp is outside the allowable window")
        return False

    expected_sig = sign_payload(secret, timestamp, req.get_data(as_text=True))
    if not hmac.compare_digest(expected_sig, signature):
        logger.warning("HMAC signature mismatch")
        return False

    return True


def require_hmac(view):
    """Reject the request with 401 unless it carries a valid API HMAC."""

    @wraps(view)
    def wrapper(*args, **kwargs):
        settings = current_app.extensions["rhodesign"].settings
        if not is_valid_hmac_request(request, settings.signing_api_secret, settings.hmac_window_seconds):
            return jsonify({"error": "Unauthorized", "code": "UNAUTHORIZED"}), 401
        return view(*args, **kwargs)

    return wrapper


def is_valid_webhook_signature(payload: bytes, header_value: str | None, secret: str) -> bool:
    """Check an `X-RhodeSign-Signature: sha256=<hex>` header against the raw body."""
    if not header_value:
        return False
    provided = header_value.strip()
    if provided.startswith("sha256="):
        provided = provided[len("sha256="):]
    expected = hmac.new(secret.encode(), payload, hashlib.sha256).hexdigest()
    return hmac.compare_digest(expected, provided)
