# ------------------------------------------------------------------------
# File: storage.py
# Location: rhodesign/db/storage.py
# Description:
#     SQLAlchemy-backed storage for signing sessions and signature records.
#     Completion is a conditional UPDATE on status = 'pending', so when
#     several workers race on the same session only one of them inserts a
#     signature record.
# ------------------------------------------------------------------------

from datetime import datetime

from sqlalchemy import delete, func, select, update

from rhodesign.core.integrity import ensure_aware
from rhodesign.core.models import SessionStatus, SignatureRecord, SigningSession
from rhodesign.db.models import SignatureRecordRow, SigningSessionRow
from rhodesign.logging_config import configure_logging

logger = configure_logging(name="rhodesign.db.storage", logfile="rhodesign.log")


def _optional_aware(value):
    return ensure_aware(value) if value is not None else None


def _session_from_row(row: SigningSessionRow) -> SigningSession:
    return SigningSession(
        id=row.id,
        contract_id=row.contract_id,
        signer_email=row.signer_email,
        contract_data=row.contract_data,
        status=row.status,
        created_at=ensure_aware(row.created_at),
        expires_at=ensure_aware(row.expires_at),
        ip_address=row.ip_address,
        user_agent=row.user_agent,
        signature_data=row.signature_data,
        completed_at=_optional_aware(row.completed_at),
    )


def _record_from_row(row: SignatureRecordRow) -> SignatureRecord:
    return SignatureRecord(
        id=row.id,
        session_id=row.session_id,
        contract_id=row.contract_id,
        signer_email=row.signer_email,
        signature_data=row.signature_data,
        timestamp=ensure_aware(row.timestamp),
        ip_address=row.ip_address,
        user_agent=row.user_agent,
        hash_integrity=row.hash_integrity,
    )


class SqlStorage:
    def __init__(self, session_factory):
        self.session_factory = session_factory

    def add_session(self, session: SigningSession) -> None:
        with self.session_factory() as db:
            db.add(SigningSessionRow(
                id=session.id,
                contract_id=session.contract_id,
                signer_email=session.signer_email,
                contract_data=session.contract_data,
                status=session.status,
                created_at=session.created_at,
                expires_at=session.expires_at,
            ))
            db.commit()

    def get_session(self, session_id: str) -> SigningSession | None:
        with self.session_factory() as db:
            row = db.get(SigningSessionRow, session_id)
            return _session_from_row(row) if row else None

    def delete_session(self, session_id: str) -> None:
        with self.session_factory() as db:
            db.execute(delete(SigningSessionRow).where(SigningSessionRow.id == session_id))
            db.commit()

    def complete_session(self, session: SigningSession, record: SignatureRecord) -> bool:
        with self.session_factory() as db:
            result = db.execute(
                update(SigningSessionRow)
                .where(SigningSessionRow.id == session.id)
                .where(SigningSessionRow.status == SessionStatus.pending)
                .values(
                    status=session.status,
                    signature_data=session.signature_data,
                    completed_at=session.completed_at,
                    ip_address=session.ip_address,
                    user_agent=session.user_agent,
                )
            )
            if result.rowcount != 1:
                db.rollback()
                return False

            db.add(SignatureRecordRow(
                id=record.id,
                session_id=record.session_id,
                contract_id=record.contract_id,
                signer_email=record.signer_email,
                signature_data=record.signature_data,
                timestamp=record.timestamp,
                ip_address=record.ip_address,
                user_agent=record.user_agent,
                hash_integrity=record.hash_integrity,
            ))
            db.commit()
            return True

    def get_record(self, record_id: str) -> SignatureRecord | None:
        with self.session_factory() as db:
            row = db.get(SignatureRecordRow, record_id)
            return _record_from_row(row) if row else None

    def records_for_contract(self, contract_id: str) -> list[SignatureRecord]:
        with self.session_factory() as db:
            rows = db.scalars(
                select(SignatureRecordRow)
                .where(SignatureRecordRow.contract_id == contract_id)
                .order_by(SignatureRecordRow.timestamp)
            ).all()
            return [_record_from_row(row) for row in rows]

    def delete_expired_sessions(self, now: datetime) -> int:
        with self.session_factory() as db:
            result = db.execute(delete(SigningSessionRow).where(SigningSessionRow.expires_at < now))
            db.commit()
            return result.rowcount

    def count_expired_sessions(self, now: datetime) -> int:
        with self.session_factory() as db:
            return db.scalar(
                select(func.count()).select_from(SigningSessionRow).where(SigningSessionRow.expires_at < now)
            )

    def count_sessions(self) -> int:
        with self.session_factory() as db:
            return db.scalar(select(func.count()).select_from(SigningSessionRow))
