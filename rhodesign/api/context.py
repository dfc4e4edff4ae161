# File: rhodesign/api/context.py

from dataclasses import dataclass
from typing import Optional

from flask import current_app

from rhodesign.config import Settings
from rhodesign.core.store import SigningSessionStore
from rhodesign.core.sweeper import SessionSweeper
from rhodesign.core.tracking import SignatureTracker
from rhodesign.integrations.notifier import Notifier


@dataclass
class Services:
    """Dependencies shared by the route handlers of one application instance."""

    settings: Settings
    store: SigningSessionStore
    tracker: SignatureTracker
    notifier: Notifier
    sweeper: Optional[SessionSweeper] = None


def services() -> Services:
    return current_app.extensions["rhodesign"]


def client_ip(req) -> str | None:
    """First X-Forwarded-For hop when behind the proxy, else the socket address."""
    forwarded = req.headers.get("X-Forwarded-For", "")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return req.remote_addr


def json_object(req) -> dict | None:
    """The request's JSON body when it is an object, else None."""
    data = req.get_json(silent=True)
    return data if isinstance(data, dict) else None


def contract_id_from(data: dict) -> str | None:
    value = data.get("contractId")
    # bool is an int subclass but never a contract id
    if isinstance(value, bool) or not isinstance(value, (str, int)) or value == "":
        return None
    return str(value)
