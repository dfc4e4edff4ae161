# File: rhodesign/core/models.py

import enum
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Optional

from rhodesign.core.integrity import format_timestamp


class SessionStatus(enum.Enum):
    pending = "pending"
    completed = "completed"
    # Declared for parity with stored data; nothing transitions into it yet.
    cancelled = "cancelled"


@dataclass
class SigningSession:
    """One time-boxed, single-use invitation for one signer to sign one contract."""

    id: str
    contract_id: str
    signer_email: str
    contract_data: Any
    status: SessionStatus
    created_at: datetime
    expires_at: datetime
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    signature_data: Optional[str] = None
    completed_at: Optional[datetime] = None

    def is_expired(self, now: datetime) -> bool:
        return now > self.expires_at

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "contractId": self.contract_id,
            "signerEmail": self.signer_email,
            "contractData": self.contract_data,
            "status": self.status.value,
            "createdAt": format_timestamp(self.created_at),
            "expiresAt": format_timestamp(self.expires_at),
            "ipAddress": self.ip_address,
            "userAgent": self.user_agent,
            "signatureData": self.signature_data,
            "completedAt": format_timestamp(self.completed_at),
        }


@dataclass
class SignatureRecord:
    """Result of a completed session, with the digest captured at signing time."""

    id: str
    session_id: str
    contract_id: str
    signer_email: str
    signature_data: str
    timestamp: datetime
    ip_address: Optional[str]
    user_agent: Optional[str]
    hash_integrity: str

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "sessionId": self.session_id,
            "contractId": self.contract_id,
            "signerEmail": self.signer_email,
            "signatureData": self.signature_data,
            "timestamp": format_timestamp(self.timestamp),
            "ipAddress": self.ip_address,
            "userAgent": self.user_agent,
            "hashIntegrity": self.hash_integrity,
        }


@dataclass
class IntegrityReport:
    valid: bool
    record: SignatureRecord
    expected_hash: str
    actual_hash: str

    def to_dict(self) -> dict:
        return {
            "valid": self.valid,
            "signature": self.record.to_dict(),
            "expectedHash": self.expected_hash,
            "actualHash": self.actual_hash,
        }
