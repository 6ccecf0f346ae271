"""Inbound webhook signature checks."""

import hashlib
import hmac
from dataclasses import dataclass


@dataclass(frozen=True)
class WebhookAuthenticator:
    """Validate HMAC-SHA256 signatures over raw request bodies."""

    secret: str

    def sign(self, raw_body: bytes) -> str:
        """Return the hex signature the sender is expected to provide."""
        key = self.secret.encode("utf-8")
        return hmac.new(key, raw_body, hashlib.sha256).hexdigest()

    def verify(self, raw_body: bytes, provided_signature: str | None) -> bool:
        """Return true only for an exact signature match."""
        if not self.secret or not provided_signature:
            return False
        if not provided_signature.isascii():
            return False
        return hmac.compare_digest(self.sign(raw_body), provided_signature)
