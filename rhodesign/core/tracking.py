# ------------------------------------------------------------------------
# File: tracking.py
# Location: rhodesign/core/tracking.py
# Description:
#     Per-contract signature status tracking for the RhodeSign workflow.
#     A signature request is initiated by staff, a signing link is sent,
#     and the contract status then moves as the signer (or the provider's
#     webhooks) report progress. State is held in memory for the lifetime
#     of the process, like the signing sessions it points at.
# ------------------------------------------------------------------------

import copy
import threading
from datetime import datetime

from rhodesign.core.integrity import format_timestamp, utcnow

PENDING_SIGNATURE = "PENDING_SIGNATURE"
SIGNED = "SIGNED"
SIGNATURE_FAILED = "SIGNATURE_FAILED"

REQUEST_INITIATED = "INITIATED"
REQUEST_COMPLETED = "COMPLETED"
REQUEST_FAILED = "FAILED"


def make_request_id(contract_id: str, now: datetime) -> str:
    return f"vh_{contract_id}_{int(now.timestamp() * 1000)}"


class SignatureTracker:
    def __init__(self, clock=utcnow):
        self.clock = clock
        self.requests: dict[str, dict] = {}
        self.statuses: dict[str, dict] = {}
        self._lock = threading.Lock()

    def _stamp(self) -> str:
        return format_timestamp(self.clock())

    def initiate(self, request_id: str, contract_id: str, request_data: dict, signing_url: str,
                 session_id: str, expires_at: str | None = None) -> dict:
        now = self._stamp()
        with self._lock:
            self.requests[request_id] = {
                **request_data,
                "requestId": request_id,
                "sessionId": session_id,
                "status": REQUEST_INITIATED,
                "createdAt": now,
                "signingUrl": signing_url,
            }
            self.statuses[contract_id] = {
                "status": PENDING_SIGNATURE,
                "signatureRequestId": request_id,
                "sessionId": session_id,
                "signingUrl": signing_url,
                "expiresAt": expires_at,
                "initiatedAt": now,
                "lastUpdated": now,
            }
            return copy.deepcopy(self.statuses[contract_id])

    def get_status(self, contract_id: str) -> dict | None:
        with self._lock:
            status = self.statuses.get(contract_id)
            return copy.deepcopy(status) if status else None

    def get_request(self, request_id: str) -> dict | None:
        with self._lock:
            request = self.requests.get(request_id)
            return copy.deepcopy(request) if request else None

    def _update_request(self, request_id: str | None, **fields) -> None:
        if request_id and request_id in self.requests:
            self.requests[request_id].update(fields)

    def mark_signed(self, contract_id: str, request_id: str | None, signed_at: str | None,
                    signer, signed_document=None) -> dict:
        with self._lock:
            previous = self.statuses.get(contract_id, {})
            request_id = request_id or previous.get("signatureRequestId")
            self.statuses[contract_id] = {
                "status": SIGNED,
                "signatureRequestId": request_id,
                "sessionId": previous.get("sessionId"),
                "signedAt": signed_at,
                "signer": signer,
                "signedDocument": signed_document,
                "lastUpdated": self._stamp(),
            }
            self._update_request(request_id, status=REQUEST_COMPLETED, signedAt=signed_at,
                                 signer=signer, signedDocument=signed_document)
            return copy.deepcopy(self.statuses[contract_id])

    def mark_failed(self, contract_id: str, request_id: str | None, reason: str | None,
                    failed_at: str | None, signer) -> dict:
        with self._lock:
            previous = self.statuses.get(contract_id, {})
            request_id = request_id or previous.get("signatureRequestId")
            self.statuses[contract_id] = {
                "status": SIGNATURE_FAILED,
                "signatureRequestId": request_id,
                "sessionId": previous.get("sessionId"),
                "signingUrl": previous.get("signingUrl"),
                "expiresAt": previous.get("expiresAt"),
                "failureReason": reason,
                "failedAt": failed_at,
                "signer": signer,
                "lastUpdated": self._stamp(),
            }
            self._update_request(request_id, status=REQUEST_FAILED, failureReason=reason,
                                 failedAt=failed_at)
            return copy.deepcopy(self.statuses[contract_id])

    def update_status(self, contract_id: str, request_id: str | None, status: str,
                      updated_at: str | None, details) -> dict:
        with self._lock:
            current = self.statuses.get(contract_id, {})
            self.statuses[contract_id] = {
                **current,
                "status": status,
                "lastUpdated": updated_at or self._stamp(),
                "statusDetails": details,
            }
            self._update_request(request_id, status=status, lastUpdated=updated_at,
                                 statusDetails=details)
            return copy.deepcopy(self.statuses[contract_id])

    def replace_session(self, contract_id: str, session_id: str, signing_url: str,
                        expires_at: str | None = None) -> None:
        with self._lock:
            status = self.statuses[contract_id]
            status.update(sessionId=session_id, signingUrl=signing_url, expiresAt=expires_at)
            self._update_request(status.get("signatureRequestId"), sessionId=session_id,
                                 signingUrl=signing_url)

    def mark_resent(self, contract_id: str) -> dict:
        now = self._stamp()
        with self._lock:
            self.statuses[contract_id].update(lastUpdated=now, resentAt=now)
            return copy.deepcopy(self.statuses[contract_id])

    def all_contracts(self) -> list[dict]:
        with self._lock:
            return [{"contractId": cid, **copy.deepcopy(s)} for cid, s in self.statuses.items()]
