# File: tests/test_routes_rhodesign.py

import hashlib
import hmac
import json

import pytest

from conftest import WEBHOOK_SECRET, signed_get, signed_post
from rhodesign import create_app
from rhodesign.api.ratelimit import limiter

INITIATE_PAYLOAD = {
    "contractId": "c-100",
    "contractTitle": "Smith Wedding Banquet",
    "contractContent": "Terms and conditions...",
    "signerEmail": "client@example.com",
    "signerName": "Pat Smith",
    "eventDetails": {"date": "2025-09-12", "guests": 150},
}


def webhook_post(client, path, payload, secret=WEBHOOK_SECRET):
    body = json.dumps(payload)
    digest = hmac.new(secret.encode(), body.encode(), hashlib.sha256).hexdigest()
    return client.post(
        path,
        data=body,
        content_type="application/json",
        headers={"X-RhodeSign-Signature": f"sha256={digest}"},
    )


@pytest.fixture
def initiated(client):
    response = signed_post(client, "/api/rhodesign/initiate-signature", INITIATE_PAYLOAD)
    assert response.status_code == 200
    return response.get_json()


def test_initiate_requires_hmac(client):
    response = client.post("/api/rhodesign/initiate-signature", json=INITIATE_PAYLOAD)
    assert response.status_code == 401


def test_initiate_missing_fields(client):
    payload = {k: v for k, v in INITIATE_PAYLOAD.items() if k != "contractContent"}
    response = signed_post(client, "/api/rhodesign/initiate-signature", payload)
    assert response.status_code == 400
    assert "contractContent" in response.get_json()["required"]


def test_initiate_opens_signing_session(client, initiated, notifier):
    assert initiated["success"] is True
    assert initiated["status"] == "INITIATED"
    assert initiated["signatureRequestId"].startswith("vh_c-100_")
    assert initiated["signingUrl"] == (
        f"https://sign.example.com/api/v1/signing/sessions/{initiated['sessionId']}"
    )
    assert any(initiated["signingUrl"] in m for m in notifier.messages)

    session = client.get(f"/api/v1/signing/sessions/{initiated['sessionId']}").get_json()
    assert session["signerEmail"] == "client@example.com"
    assert session["contractData"]["title"] == "Smith Wedding Banquet"
    assert session["contractData"]["signerName"] == "Pat Smith"


def test_signature_status(client, initiated):
    response = signed_get(client, "/api/rhodesign/signature-status/c-100")
    assert response.status_code == 200
    body = response.get_json()
    assert body["status"] == "PENDING_SIGNATURE"
    assert body["signatureRequestId"] == initiated["signatureRequestId"]
    assert body["latestUpdate"]["status"] == "PENDING"


def test_signature_status_unknown_contract(client):
    assert signed_get(client, "/api/rhodesign/signature-status/nope").status_code == 404


def test_local_completion_marks_contract_signed(client, initiated):
    client.post(
        f"/api/v1/signing/sessions/{initiated['sessionId']}/complete",
        json={"signature": "sig-bytes"},
    )
    body = signed_get(client, "/api/rhodesign/signature-status/c-100").get_json()
    assert body["status"] == "SIGNED"
    assert body["signer"] == {"email": "client@example.com"}
    assert body["latestUpdate"]["status"] == "COMPLETED"


def test_status_reports_expired_session(client, initiated, clock):
    clock.advance(hours=25)
    body = signed_get(client, "/api/rhodesign/signature-status/c-100").get_json()
    assert body["latestUpdate"]["status"] == "EXPIRED"


def test_webhook_complete(client, initiated, notifier):
    response = webhook_post(client, "/api/rhodesign/webhook/signature-complete", {
        "requestId": initiated["signatureRequestId"],
        "contractId": "c-100",
        "signedDocument": "https://files.example.com/c-100.pdf",
        "signer": {"email": "client@example.com"},
        "signedAt": "2025-06-01T13:00:00.000Z",
    })
    assert response.status_code == 200

    status = signed_get(client, "/api/rhodesign/signature-status/c-100").get_json()
    assert status["status"] == "SIGNED"
    assert status["signedDocument"] == "https://files.example.com/c-100.pdf"
    assert any("Contract signed" in m for m in notifier.messages)


def test_webhook_rejects_bad_signature(client, initiated):
    response = webhook_post(client, "/api/rhodesign/webhook/signature-complete", {
        "contractId": "c-100",
        "signer": {"email": "client@example.com"},
    }, secret="not-the-secret")
    assert response.status_code == 401

    status = signed_get(client, "/api/rhodesign/signature-status/c-100").get_json()
    assert status["status"] == "PENDING_SIGNATURE"


def test_webhook_rejects_missing_header(client):
    response = client.post("/api/rhodesign/webhook/status-update", json={"contractId": "c-100", "status": "VIEWED"})
    assert response.status_code == 401


def test_webhook_failed(client, initiated):
    response = webhook_post(client, "/api/rhodesign/webhook/signature-failed", {
        "requestId": initiated["signatureRequestId"],
        "contractId": "c-100",
        "failureReason": "Signer declined",
        "failedAt": "2025-06-01T13:00:00.000Z",
        "signer": {"email": "client@example.com"},
    })
    assert response.status_code == 200

    status = signed_get(client, "/api/rhodesign/signature-status/c-100").get_json()
    assert status["status"] == "SIGNATURE_FAILED"
    assert status["failureReason"] == "Signer declined"


def test_webhook_status_update_merges(client, initiated):
    response = webhook_post(client, "/api/rhodesign/webhook/status-update", {
        "requestId": initiated["signatureRequestId"],
        "contractId": "c-100",
        "status": "VIEWED",
        "updatedAt": "2025-06-01T12:30:00.000Z",
        "details": {"viewer": "client@example.com"},
    })
    assert response.status_code == 200

    status = signed_get(client, "/api/rhodesign/signature-status/c-100").get_json()
    assert status["status"] == "VIEWED"
    assert status["signingUrl"] == initiated["signingUrl"]
    assert status["statusDetails"] == {"viewer": "client@example.com"}


def test_unsigned_webhooks_allowed_only_when_configured(store, notifier, settings):
    settings.webhook_secret = ""
    client = create_app(settings=settings, store=store, notifier=notifier).test_client()
    payload = {"contractId": "c-100", "status": "VIEWED"}
    assert client.post("/api/rhodesign/webhook/status-update", json=payload).status_code == 401

    settings.allow_unsigned_webhooks = True
    client = create_app(settings=settings, store=store, notifier=notifier).test_client()
    assert client.post("/api/rhodesign/webhook/status-update", json=payload).status_code == 200


def test_resend_unknown_contract(client):
    assert signed_post(client, "/api/rhodesign/resend-signature", {"contractId": "nope"}).status_code == 404


def test_resend_signed_contract(client, initiated):
    client.post(
        f"/api/v1/signing/sessions/{initiated['sessionId']}/complete",
        json={"signature": "sig-bytes"},
    )
    response = signed_post(client, "/api/rhodesign/resend-signature", {"contractId": "c-100"})
    assert response.status_code == 400


def test_resend_pending_keeps_link(client, initiated):
    response = signed_post(client, "/api/rhodesign/resend-signature", {"contractId": "c-100"})
    assert response.status_code == 200
    body = response.get_json()
    assert body["signingUrl"] == initiated["signingUrl"]
    assert body["resentAt"] == "2025-06-01T12:00:00.000Z"


def test_resend_after_expiry_issues_new_session(client, initiated, clock):
    clock.advance(hours=25)
    response = signed_post(client, "/api/rhodesign/resend-signature", {"contractId": "c-100"})
    assert response.status_code == 200
    body = response.get_json()
    assert body["signingUrl"] != initiated["signingUrl"]

    new_session_id = body["signingUrl"].rsplit("/", 1)[-1]
    session = client.get(f"/api/v1/signing/sessions/{new_session_id}").get_json()
    assert session["contractId"] == "c-100"
    assert session["signerEmail"] == "client@example.com"


def test_list_contracts(client, initiated):
    second = dict(INITIATE_PAYLOAD, contractId="c-200")
    signed_post(client, "/api/rhodesign/initiate-signature", second)

    response = signed_get(client, "/api/rhodesign/contracts")
    assert response.status_code == 200
    body = response.get_json()
    assert body["total"] == 2
    assert {c["contractId"] for c in body["contracts"]} == {"c-100", "c-200"}


@pytest.mark.parametrize("path", [
    "/api/rhodesign/webhook/signature-complete",
    "/api/rhodesign/webhook/signature-failed",
    "/api/rhodesign/webhook/status-update",
])
@pytest.mark.parametrize("payload", [[1], "x", 42])
def test_webhooks_reject_non_object_body(client, path, payload):
    response = webhook_post(client, path, payload)
    assert response.status_code == 400


def test_webhook_rejects_string_signer(client, initiated):
    response = webhook_post(client, "/api/rhodesign/webhook/signature-complete", {
        "contractId": "c-100",
        "signer": "client@example.com",
    })
    assert response.status_code == 400
    assert response.get_json()["error"] == "Invalid signer"

    status = signed_get(client, "/api/rhodesign/signature-status/c-100").get_json()
    assert status["status"] == "PENDING_SIGNATURE"


@pytest.mark.parametrize("payload", [
    {"contractId": ["c-100"], "status": "VIEWED"},
    {"contractId": "c-100", "status": {"state": "VIEWED"}},
    {"contractId": "c-100", "status": "VIEWED", "requestId": ["vh_1"]},
])
def test_status_update_rejects_wrong_field_types(client, initiated, payload):
    response = webhook_post(client, "/api/rhodesign/webhook/status-update", payload)
    assert response.status_code == 400


def test_numeric_contract_id_is_accepted_by_webhooks(client):
    response = webhook_post(client, "/api/rhodesign/webhook/status-update", {"contractId": 300, "status": "VIEWED"})
    assert response.status_code == 200
    assert signed_get(client, "/api/rhodesign/signature-status/300").get_json()["status"] == "VIEWED"


@pytest.mark.parametrize("path", ["/api/rhodesign/initiate-signature", "/api/rhodesign/resend-signature"])
def test_workflow_rejects_non_object_body(client, path):
    assert signed_post(client, path, ["c-100"]).status_code == 400


def test_initiate_rejects_non_string_signer_email(client):
    payload = dict(INITIATE_PAYLOAD, signerEmail=12345, signerName=None)
    response = signed_post(client, "/api/rhodesign/initiate-signature", payload)
    assert response.status_code == 400
    assert signed_get(client, "/api/rhodesign/contracts").get_json()["total"] == 0


def test_workflow_rate_limit(store, notifier, settings):
    settings.workflow_rate_limit = "2 per minute"
    client = create_app(settings=settings, store=store, notifier=notifier).test_client()
    limiter.reset()

    assert signed_get(client, "/api/rhodesign/contracts").status_code == 200
    assert signed_get(client, "/api/rhodesign/contracts").status_code == 200
    response = signed_get(client, "/api/rhodesign/contracts")

    assert response.status_code == 429
    assert response.get_json() == {
        "error": "Too many RhodeSign requests, please try again later",
        "code": "RHODESIGN_RATE_LIMIT_EXCEEDED",
    }


def test_webhook_rate_limit_is_separate(store, notifier, settings):
    settings.workflow_rate_limit = "1 per minute"
    settings.webhook_rate_limit = "2 per minute"
    client = create_app(settings=settings, store=store, notifier=notifier).test_client()
    limiter.reset()
    payload = {"contractId": "c-100", "status": "VIEWED"}

    assert signed_get(client, "/api/rhodesign/contracts").status_code == 200
    assert webhook_post(client, "/api/rhodesign/webhook/status-update", payload).status_code == 200
    assert webhook_post(client, "/api/rhodesign/webhook/status-update", payload).status_code == 200
    response = webhook_post(client, "/api/rhodesign/webhook/status-update", payload)

    assert response.status_code == 429
    assert response.get_json()["code"] == "WEBHOOK_RATE_LIMIT_EXCEEDED"


def test_signing_routes_are_not_rate_limited(store, notifier, settings):
    settings.workflow_rate_limit = "1 per minute"
    client = create_app(settings=settings, store=store, notifier=notifier).test_client()
    limiter.reset()

    for _ in range(3):
        assert client.get("/api/v1/signing/sessions/missing").status_code == 404
