# ------------------------------------------------------------------------
# File: store.py
# Location: rhodesign/core/store.py
# Description:
#     SigningSessionStore owns the lifecycle of e-signature sessions:
#
#         pending --(complete)--> completed
#         pending --(expires_at passes)--> evicted, reported as expired
#
#     A completed session yields exactly one SignatureRecord carrying an
#     integrity digest. Storage is injected (MemoryStorage or SqlStorage) and
#     so is the clock, which keeps route handlers and tests isolated from
#     each other and from wall time.
# ------------------------------------------------------------------------

import hmac
import threading
import uuid
from datetime import timedelta
from typing import Any, Callable

from rhodesign.core.errors import (
    InvalidSignatureData,
    SessionAlreadyCompleted,
    SessionExpired,
    SessionNotFound,
    SignatureNotFound,
)
from rhodesign.core.integrity import compute_integrity_hash, ensure_aware, truncate_to_millis, utcnow
from rhodesign.core.models import IntegrityReport, SessionStatus, SignatureRecord, SigningSession
from rhodesign.logging_config import configure_logging

logger = configure_logging("rhodesign.store", "rhodesign.log")

DEFAULT_SESSION_TTL = timedelta(hours=24)


class SigningSessionStore:
    def __init__(self, storage, clock: Callable = utcnow, ttl: timedelta = DEFAULT_SESSION_TTL):
        self.storage = storage
        self.clock = clock
        self.ttl = ttl
        self._complete_lock = threading.Lock()

    def _now(self):
        return truncate_to_millis(ensure_aware(self.clock()))

    def create_session(self, contract_id: str, signer_email: str, contract_data: Any) -> SigningSession:
        now = self._now()
        session = SigningSession(
            id=str(uuid.uuid4()),
            contract_id=contract_id,
            signer_email=signer_email,
            contract_data=contract_data,
            status=SessionStatus.pending,
            created_at=now,
            expires_at=now + self.ttl,
        )
        self.storage.add_session(session)
        logger.info(f"Created signing session {session.id[:8]}... for contract {contract_id}")
        return session

    def get_valid_session(self, session_id: str) -> SigningSession:
        """
        Return the session if it exists, has not expired and is still pending.
        An expired session is removed from storage before SessionExpired is raised.
        """
        session = self.storage.get_session(session_id)
        if session is None:
            logger.warning(f"Signing session not found: {session_id[:8]}...")
            raise SessionNotFound()

        if session.is_expired(self._now()):
            self.storage.delete_session(session_id)
            logger.warning(f"Signing session expired and evicted: {session_id[:8]}...")
            raise SessionExpired()

        if session.status != SessionStatus.pending:
            logger.warning(f"Signing session {session_id[:8]}... is {session.status.value}")
            raise SessionAlreadyCompleted()

        return session

    def complete_signature(self, session_id: str, signature_data: str, ip_address: str | None,
                           user_agent: str | None) -> SignatureRecord:
        # Stored as text, so anything else would hash differently once reloaded.
        if not isinstance(signature_data, str) or not signature_data:
            raise InvalidSignatureData()

        with self._complete_lock:
            session = self.get_valid_session(session_id)
            timestamp = self._now()

            record = SignatureRecord(
                id=str(uuid.uuid4()),
                session_id=session.id,
                contract_id=session.contract_id,
                signer_email=session.signer_email,
                signature_data=signature_data,
                timestamp=timestamp,
                ip_address=ip_address,
                user_agent=user_agent,
                hash_integrity=compute_integrity_hash(
                    session.contract_id, session.signer_email, signature_data, timestamp
                ),
            )

            session.status = SessionStatus.completed
            session.signature_data = signature_data
            session.completed_at = timestamp
            session.ip_address = ip_address
            session.user_agent = user_agent

            # Another process may have completed it between the check and here.
            if not self.storage.complete_session(session, record):
                logger.warning(f"Lost completion race for session {session_id[:8]}...")
                raise SessionAlreadyCompleted()

        logger.info(f"Signature {record.id[:8]}... recorded for contract {record.contract_id}")
        return record

    def get_signature(self, signature_id: str) -> SignatureRecord:
        record = self.storage.get_record(signature_id)
        if record is None:
            raise SignatureNotFound()
        return record

    def list_signatures(self, contract_id: str) -> list[SignatureRecord]:
        records = self.storage.records_for_contract(contract_id)
        return sorted(records, key=lambda r: ensure_aware(r.timestamp))

    def verify_integrity(self, signature_id: str) -> IntegrityReport:
        """
        Recompute the digest from the record's own fields and compare it with
        the stored one. This only shows the record still agrees with itself;
        anyone able to rewrite the record can rewrite the digest too.
        """
        record = self.get_signature(signature_id)
        expected = compute_integrity_hash(
            record.contract_id, record.signer_email, record.signature_data, record.timestamp
        )
        valid = hmac.compare_digest(expected, record.hash_integrity or "")
        if not valid:
            logger.warning(f"Integrity mismatch for signature {signature_id[:8]}...")
        return IntegrityReport(valid=valid, record=record, expected_hash=expected,
                               actual_hash=record.hash_integrity)

    def sweep_expired(self) -> int:
        """Delete every session whose expiry has passed. Returns how many were removed."""
        removed = self.storage.delete_expired_sessions(self._now())
        if removed:
            logger.info(f"Swept {removed} expired signing session(s)")
        return removed
