# File: rhodesign/api/routes_signing.py

from flask import Blueprint, jsonify, request

from rhodesign.api.auth import require_hmac
from rhodesign.api.context import client_ip, contract_id_from, json_object, services
from rhodesign.core.errors import SigningError
from rhodesign.core.integrity import format_timestamp
from rhodesign.logging_config import configure_logging

logger = configure_logging("rhodesign.routes_signing", "rhodesign.log")

signing_bp = Blueprint("rhodesign_signing", __name__, url_prefix="/api/v1/signing")


@signing_bp.errorhandler(SigningError)
def handle_signing_error(error):
    return jsonify(error.to_dict()), error.status_code


@signing_bp.route("/sessions", methods=["POST"])
@require_hmac
def create_session():
    data = json_object(request)
    if data is None:
        return jsonify({"error": "Request body must be a JSON object"}), 400

    required_fields = ["contractId", "signerEmail"]
    if not all(data.get(field) for field in required_fields):
        logger.warning(f"Missing required fields in session request. Provided fields: {list(data.keys())}")
        return jsonify({"error": "Missing required fields", "required": required_fields}), 400

    contract_id = contract_id_from(data)
    if contract_id is None or not isinstance(data["signerEmail"], str):
        return jsonify({"error": "contractId and signerEmail must be strings"}), 400

    session = services().store.create_session(
        contract_id=contract_id,
        signer_email=data["signerEmail"],
        contract_data=data.get("contractData"),
    )
    return jsonify(session.to_dict()), 201


@signing_bp.route("/sessions/<session_id>", methods=["GET"])
def get_session(session_id):
    session = services().store.get_valid_session(session_id)
    return jsonify(session.to_dict()), 200


@signing_bp.route("/sessions/<session_id>/complete", methods=["POST"])
def complete_session(session_id):
    logger.info(f"Submitting signature for session: {session_id[:8]}...")
    data = json_object(request) if request.is_json else request.form
    signature_data = (data or {}).get("signature")
    if not isinstance(signature_data, str) or not signature_data:
        return jsonify({"error": "Missing signature data.", "code": "SIGNATURE_REQUIRED"}), 400

    svc = services()
    record = svc.store.complete_signature(
        session_id,
        signature_data,
        ip_address=client_ip(request),
        user_agent=request.headers.get("User-Agent", ""),
    )

    signed_at = format_timestamp(record.timestamp)
    if svc.tracker.get_status(record.contract_id):
        svc.tracker.mark_signed(
            record.contract_id,
            request_id=None,
            signed_at=signed_at,
            signer={"email": record.signer_email},
        )
    svc.notifier.signature_complete(record.contract_id, record.signer_email, signed_at)

    return jsonify(record.to_dict()), 201


@signing_bp.route("/contracts/<contract_id>/signatures", methods=["GET"])
@require_hmac
def list_signatures(contract_id):
    records = services().store.list_signatures(contract_id)
    return jsonify({
        "contractId": contract_id,
        "signatures": [r.to_dict() for r in records],
        "total": len(records),
    }), 200


@signing_bp.route("/signatures/<signature_id>/verify", methods=["GET"])
@require_hmac
def verify_signature(signature_id):
    report = services().store.verify_integrity(signature_id)
    return jsonify(report.to_dict()), 200
