# File: rhodesign/api/routes_rhodesign.py
# DESCRIPTION: Contract signature workflow: initiation, status, provider webhooks and resends.

from flask import Blueprint, jsonify, request
from flask_limiter.errors import RateLimitExceeded

from rhodesign.api.auth import is_valid_webhook_signature, require_hmac
from rhodesign.api.context import contract_id_from, json_object, services
from rhodesign.api.ratelimit import rate_limit_response, webhook_limit, workflow_limit
from rhodesign.core.errors import SessionAlreadyCompleted, SessionExpired, SessionNotFound
from rhodesign.core.integrity import format_timestamp
from rhodesign.core.tracking import SIGNED, make_request_id
from rhodesign.logging_config import configure_logging

logger = configure_logging("rhodesign.routes_rhodesign", "rhodesign.log")

rhodesign_bp = Blueprint("rhodesign_workflow", __name__, url_prefix="/api/rhodesign")
rhodesign_bp.register_error_handler(RateLimitExceeded, rate_limit_response)

INITIATE_REQUIRED_FIELDS = ["contractId", "contractTitle", "contractContent", "signerEmail"]
WEBHOOK_STRING_FIELDS = ["requestId", "signedAt", "failedAt", "updatedAt"]


def bad_request(message: str):
    return jsonify({"error": message}), 400


def invalid_webhook_field(data: dict) -> str | None:
    """Name of the first optional webhook field sent with the wrong JSON type."""
    for field in WEBHOOK_STRING_FIELDS:
        value = data.get(field)
        if value is not None and not isinstance(value, str):
            return field
    signer = data.get("signer")
    if signer is not None and not isinstance(signer, dict):
        return "signer"
    return None


def signing_url_for(session_id: str) -> str:
    return f"{services().settings.public_base_url}/api/v1/signing/sessions/{session_id}"


def session_state(session_id: str | None) -> str:
    if not session_id:
        return "UNKNOWN"
    try:
        services().store.get_valid_session(session_id)
        return "PENDING"
    except SessionExpired:
        return "EXPIRED"
    except SessionAlreadyCompleted:
        return "COMPLETED"
    except SessionNotFound:
        return "NOT_FOUND"


def verify_webhook() -> bool:
    settings = services().settings
    if not settings.webhook_secret:
        if settings.allow_unsigned_webhooks:
            logger.warning("RHODESIGN_WEBHOOK_SECRET not configured, skipping signature verification")
            return True
        logger.error("RHODESIGN_WEBHOOK_SECRET not configured, rejecting webhook")
        return False

    return is_valid_webhook_signature(
        request.get_data(), request.headers.get("X-RhodeSign-Signature"), settings.webhook_secret
    )


def _open_session(contract_id: str, signer_email: str, contract_data: dict):
    svc = services()
    session = svc.store.create_session(contract_id, signer_email, contract_data)
    signing_url = signing_url_for(session.id)
    svc.notifier.signing_link(contract_id, signer_email, signing_url, format_timestamp(session.expires_at))
    return session, signing_url


@rhodesign_bp.route("/initiate-signature", methods=["POST"])
@workflow_limit()
@require_hmac
def initiate_signature():
    data = json_object(request)
    if data is None:
        return bad_request("Request body must be a JSON object")
    if not all(data.get(field) for field in INITIATE_REQUIRED_FIELDS):
        logger.warning(f"Missing required fields in initiate request. Provided fields: {list(data.keys())}")
        return jsonify({"error": "Missing required fields", "required": INITIATE_REQUIRED_FIELDS}), 400

    contract_id = contract_id_from(data)
    signer_email = data["signerEmail"]
    if contract_id is None or not isinstance(signer_email, str):
        return bad_request("contractId and signerEmail must be strings")

    svc = services()
    request_id = make_request_id(contract_id, svc.store.clock())

    contract_data = {
        "title": data["contractTitle"],
        "content": data["contractContent"],
        "type": "CONTRACT",
        "event": data.get("eventDetails"),
        "signerName": data.get("signerName") or signer_email.split("@")[0],
    }
    session, signing_url = _open_session(contract_id, signer_email, contract_data)

    svc.tracker.initiate(
        request_id,
        contract_id,
        request_data={
            "contractId": contract_id,
            "signerEmail": signer_email,
            "contractData": contract_data,
            "returnUrl": data.get("returnUrl"),
            "callbackUrl": data.get("callbackUrl"),
        },
        signing_url=signing_url,
        session_id=session.id,
        expires_at=format_timestamp(session.expires_at),
    )
    logger.info(f"Initiated signature request {request_id} for contract {contract_id}")

    return jsonify({
        "success": True,
        "signatureRequestId": request_id,
        "sessionId": session.id,
        "signingUrl": signing_url,
        "expiresAt": format_timestamp(session.expires_at),
        "status": "INITIATED",
        "message": "Signature process initiated successfully",
    }), 200


@rhodesign_bp.route("/signature-status/<contract_id>", methods=["GET"])
@workflow_limit()
@require_hmac
def signature_status(contract_id):
    status = services().tracker.get_status(contract_id)
    if not status:
        return jsonify({"error": "No signature process found for this contract"}), 404

    return jsonify({
        "contractId": contract_id,
        **status,
        "latestUpdate": {
            "status": session_state(status.get("sessionId")),
            "lastChecked": format_timestamp(services().store.clock()),
        },
    }), 200


@rhodesign_bp.route("/webhook/signature-complete", methods=["POST"])
@webhook_limit()
def webhook_signature_complete():
    if not verify_webhook():
        logger.error("Invalid webhook signature")
        return jsonify({"error": "Invalid signature"}), 401

    data = json_object(request)
    if data is None:
        return bad_request("Request body must be a JSON object")
    contract_id = contract_id_from(data)
    if not contract_id:
        return bad_request("Missing contractId")
    invalid = invalid_webhook_field(data)
    if invalid:
        return bad_request(f"Invalid {invalid}")
    signer = data.get("signer") or {}

    logger.info(f"Signature completed for contract {contract_id} by {signer.get('email')}")
    svc = services()
    svc.tracker.mark_signed(
        contract_id,
        data.get("requestId"),
        signed_at=data.get("signedAt"),
        signer=signer,
        signed_document=data.get("signedDocument"),
    )
    svc.notifier.signature_complete(contract_id, signer.get("email"), data.get("signedAt"))

    return jsonify({"success": True, "message": "Signature completion processed successfully"}), 200


@rhodesign_bp.route("/webhook/signature-failed", methods=["POST"])
@webhook_limit()
def webhook_signature_failed():
    if not verify_webhook():
        logger.error("Invalid webhook signature")
        return jsonify({"error": "Invalid signature"}), 401

    data = json_object(request)
    if data is None:
        return bad_request("Request body must be a JSON object")
    contract_id = contract_id_from(data)
    if not contract_id:
        return bad_request("Missing contractId")
    invalid = invalid_webhook_field(data)
    if invalid:
        return bad_request(f"Invalid {invalid}")

    logger.info(f"Signature failed for contract {contract_id}: {data.get('failureReason')}")
    svc = services()
    svc.tracker.mark_failed(
        contract_id,
        data.get("requestId"),
        reason=data.get("failureReason"),
        failed_at=data.get("failedAt"),
        signer=data.get("signer"),
    )
    svc.notifier.signature_failed(contract_id, data.get("failureReason"))

    return jsonify({"success": True, "message": "Signature failure processed successfully"}), 200


@rhodesign_bp.route("/webhook/status-update", methods=["POST"])
@webhook_limit()
def webhook_status_update():
    if not verify_webhook():
        logger.error("Invalid webhook signature")
        return jsonify({"error": "Invalid signature"}), 401

    data = json_object(request)
    if data is None:
        return bad_request("Request body must be a JSON object")
    contract_id = contract_id_from(data)
    status = data.get("status")
    if not contract_id or not status:
        return bad_request("Missing contractId or status")
    invalid = "status" if not isinstance(status, str) else invalid_webhook_field(data)
    if invalid:
        return bad_request(f"Invalid {invalid}")

    logger.info(f"Status update for contract {contract_id}: {status}")
    services().tracker.update_status(
        contract_id,
        data.get("requestId"),
        status=status,
        updated_at=data.get("updatedAt"),
        details=data.get("details"),
    )

    return jsonify({"success": True, "message": "Status update processed successfully"}), 200


@rhodesign_bp.route("/resend-signature", methods=["POST"])
@workflow_limit()
@require_hmac
def resend_signature():
    data = json_object(request)
    if data is None:
        return bad_request("Request body must be a JSON object")
    contract_id = contract_id_from(data)

    svc = services()
    status = svc.tracker.get_status(contract_id) if contract_id else None
    if not status:
        return jsonify({"error": "No signature process found for this contract"}), 404

    if status["status"] == SIGNED:
        return bad_request("Contract is already signed")

    tracked_request = svc.tracker.get_request(status.get("signatureRequestId")) or {}
    state = session_state(status.get("sessionId"))

    if state in ("EXPIRED", "NOT_FOUND") and tracked_request.get("signerEmail"):
        # The old link is dead; issue a fresh session for the same document.
        session, signing_url = _open_session(
            contract_id, tracked_request["signerEmail"], tracked_request.get("contractData")
        )
        svc.tracker.replace_session(contract_id, session.id, signing_url,
                                    format_timestamp(session.expires_at))
        logger.info(f"Replaced expired session for contract {contract_id} with {session.id[:8]}...")
    else:
        svc.notifier.signing_link(
            contract_id,
            tracked_request.get("signerEmail", ""),
            status.get("signingUrl", ""),
            status.get("expiresAt") or "unknown",
        )

    updated = svc.tracker.mark_resent(contract_id)
    return jsonify({
        "success": True,
        "message": "Signature request resent successfully",
        "resentAt": updated["resentAt"],
        "signingUrl": updated.get("signingUrl"),
    }), 200


@rhodesign_bp.route("/contracts", methods=["GET"])
@workflow_limit()
@require_hmac
def list_contracts():
    contracts = services().tracker.all_contracts()
    return jsonify({"contracts": contracts, "total": len(contracts)}), 200
