# ------------------------------------------------------------------------
# File: integrity.py
# Location: rhodesign/core/integrity.py
# Description:
#     Timestamp helpers and the integrity digest stored with every signature
#     record. The digest is SHA-256 over a compact JSON object whose keys are
#     always serialized in the same order (contractId, signerEmail,
#     signatureData, timestamp), so a record can be re-hashed later and
#     compared with the value captured at signing time. Timestamps use the
#     millisecond "Z" form so digests match those produced by the earlier
#     Node service.
# ------------------------------------------------------------------------

import hashlib
import json
import re
from datetime import datetime, timezone

# json.loads pairs valid surrogates, so any left in a str are unpaired.
_LONE_SURROGATE = re.compile("[\ud800-\udfff]")


def utcnow() -> datetime:
    """Current UTC time, truncated to whole milliseconds."""
    return truncate_to_millis(datetime.now(timezone.utc))


def truncate_to_millis(value: datetime) -> datetime:
    return value.replace(microsecond=(value.microsecond // 1000) * 1000)


def ensure_aware(value: datetime) -> datetime:
    # Naive values come back from databases that drop tzinfo; they are stored as UTC.
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def format_timestamp(value: datetime | None) -> str | None:
    """Render a datetime as YYYY-MM-DDTHH:MM:SS.mmmZ."""
    if value is None:
        return None
    value = ensure_aware(value)
    return value.strftime("%Y-%m-%dT%H:%M:%S.") + f"{value.microsecond // 1000:03d}Z"


def canonical_payload(contract_id, signer_email, signature_data, timestamp: datetime) -> str:
    payload = {
        "contractId": contract_id,
        "signerEmail": signer_email,
        "signatureData": signature_data,
        "timestamp": format_timestamp(timestamp),
    }
    serialized = json.dumps(payload, separators=(",", ":"), ensure_ascii=False)
    # Unpaired surrogates cannot be UTF-8 encoded; write them as \udxxx escapes like JSON.stringify.
    return _LONE_SURROGATE.sub(lambda match: f"\\u{ord(match.group()):04x}", serialized)


def compute_integrity_hash(contract_id, signer_email, signature_data, timestamp: datetime) -> str:
    """Hex SHA-256 digest of the canonical signature payload."""
    payload = canonical_payload(contract_id, signer_email, signature_data, timestamp)
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()
