# File: rhodesign/api/ratelimit.py
# DESCRIPTION: Per-client request limits for the RhodeSign workflow and webhook routes.

from flask import jsonify, request
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address

from rhodesign.api.context import services

limiter = Limiter(key_func=get_remote_address, headers_enabled=True)

WORKFLOW_LIMIT_MESSAGE = "Too many RhodeSign requests, please try again later"
WEBHOOK_LIMIT_MESSAGE = "Webhook rate limit exceeded"

RATE_LIMIT_CODES = {
    WORKFLOW_LIMIT_MESSAGE: "RHODESIGN_RATE_LIMIT_EXCEEDED",
    WEBHOOK_LIMIT_MESSAGE: "WEBHOOK_RATE_LIMIT_EXCEEDED",
}


def workflow_limit():
    return limiter.limit(lambda: services().settings.workflow_rate_limit,
                         error_message=WORKFLOW_LIMIT_MESSAGE)


def webhook_limit():
    return limiter.limit(lambda: services().settings.webhook_rate_limit,
                         error_message=WEBHOOK_LIMIT_MESSAGE)


def rate_limit_response(error):
    """JSON body for a 429 raised by one of the limits above."""
    message = error.description
    return jsonify({
        "error": message,
        "code": RATE_LIMIT_CODES.get(message, "RATE_LIMIT_EXCEEDED"),
    }), 429
