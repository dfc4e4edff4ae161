# File: rhodesign/integrations/notifier.py

import requests

from rhodesign.logging_config import configure_logging

logger = configure_logging("rhodesign.notifier", "rhodesign.log")


class Notifier:
    """Posts plain-text staff notifications to a chat webhook."""

    def __init__(self, webhook_url: str = "", disabled: bool = False, timeout: float = 5):
        self.webhook_url = webhook_url
        self.disabled = disabled
        self.timeout = timeout

    @property
    def enabled(self) -> bool:
        return bool(self.webhook_url) and not self.disabled

    def send(self, message: str) -> bool:
        """Send `message`; returns True on a 2xx response. Failures are logged, not raised."""
        if not self.enabled:
            logger.info(f"Webhook disabled - would have sent: {message}")
            return False

        try:
            response = requests.post(self.webhook_url, json={"text": message}, timeout=self.timeout)
            logger.info(f"Webhook sent: {response.status_code}")
            return response.ok
        except requests.exceptions.RequestException as e:
            logger.error(f"Failed to send webhook: {e}")
            return False

    def signing_link(self, contract_id: str, signer_email: str, signing_url: str, expires_at: str) -> bool:
        return self.send(
            f"New contract ready for signing:\n"
            f"URL: {signing_url}\n"
            f"Contract: {contract_id}\n"
            f"Signer: {signer_email}\n"
            f"Expires: {expires_at}"
        )

    def signature_complete(self, contract_id: str, signer_email: str, signed_at: str) -> bool:
        return self.send(
            f"Contract signed:\n"
            f"Contract: {contract_id}\n"
            f"Signer: {signer_email}\n"
            f"Signed At: {signed_at}"
        )

    def signature_failed(self, contract_id: str, reason: str | None) -> bool:
        return self.send(
            f"Signature failed:\n"
            f"Contract: {contract_id}\n"
            f"Reason: {reason or 'Unknown'}"
        )
