# File: rhodesign/db/models.py

import datetime

from sqlalchemy import Column, DateTime, Enum, Index, JSON, String, Text
from sqlalchemy.orm import declarative_base

from rhodesign.core.models import SessionStatus

Base = declarative_base()


def _utcnow():
    return datetime.datetime.now(datetime.timezone.utc)


class SigningSessionRow(Base):
    __tablename__ = "signing_sessions"

    id = Column(String(36), primary_key=True)
    contract_id = Column(String, nullable=False, index=True)
    signer_email = Column(String, nullable=False)
    contract_data = Column(JSON, nullable=True)
    status = Column(Enum(SessionStatus, name="signing_session_status"), nullable=False,
                    default=SessionStatus.pending)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    expires_at = Column(DateTime(timezone=True), nullable=False, index=True)
    ip_address = Column(String(45), nullable=True)
    user_agent = Column(Text, nullable=True)
    signature_data = Column(Text, nullable=True)
    completed_at = Column(DateTime(timezone=True), nullable=True)


class SignatureRecordRow(Base):
    __tablename__ = "signature_records"

    id = Column(String(36), primary_key=True)
    session_id = Column(String(36), nullable=False)
    contract_id = Column(String, nullable=False)
    signer_email = Column(String, nullable=False)
    signature_data = Column(Text, nullable=False)
    timestamp = Column(DateTime(timezone=True), nullable=False)
    ip_address = Column(String(45), nullable=True)
    user_agent = Column(Text, nullable=True)
    hash_integrity = Column(String(64), nullable=False)

    __table_args__ = (
        Index("ix_signature_records_contract_ts", "contract_id", "timestamp"),
    )
