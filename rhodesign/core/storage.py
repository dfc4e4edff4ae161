# File: rhodesign/core/storage.py
# DESCRIPTION: In-process storage backend for signing sessions and signature records.

import copy
import threading
from datetime import datetime

from rhodesign.core.models import SessionStatus, SignatureRecord, SigningSession


class MemoryStorage:
    """
    Dict-backed storage. Objects are copied on the way in and out so that a
    caller holding a returned session or record cannot change what is stored.
    Contents are lost when the process exits.
    """

    def __init__(self):
        self.sessions: dict[str, SigningSession] = {}
        self.records: dict[str, SignatureRecord] = {}
        self._lock = threading.Lock()

    def add_session(self, session: SigningSession) -> None:
        with self._lock:
            self.sessions[session.id] = copy.deepcopy(session)

    def get_session(self, session_id: str) -> SigningSession | None:
        with self._lock:
            session = self.sessions.get(session_id)
            return copy.deepcopy(session) if session else None

    def delete_session(self, session_id: str) -> None:
        with self._lock:
            self.sessions.pop(session_id, None)

    def complete_session(self, session: SigningSession, record: SignatureRecord) -> bool:
        """Apply the completed session and insert the record, only if still pending."""
        with self._lock:
            stored = self.sessions.get(session.id)
            if stored is None or stored.status != SessionStatus.pending:
                return False
            self.sessions[session.id] = copy.deepcopy(session)
            self.records[record.id] = copy.deepcopy(record)
            return True

    def get_record(self, record_id: str) -> SignatureRecord | None:
        with self._lock:
            record = self.records.get(record_id)
            return copy.deepcopy(record) if record else None

    def records_for_contract(self, contract_id: str) -> list[SignatureRecord]:
        with self._lock:
            return [copy.deepcopy(r) for r in self.records.values() if r.contract_id == contract_id]

    def delete_expired_sessions(self, now: datetime) -> int:
        with self._lock:
            expired = [sid for sid, s in self.sessions.items() if s.is_expired(now)]
            for sid in expired:
                del self.sessions[sid]
            return len(expired)

    def count_sessions(self) -> int:
        with self._lock:
            return len(self.sessions)
