"""Login sessions bound to verified identities."""

import logging
import secrets
from dataclasses import dataclass

from pi_paywall.domain.errors import AuthError
from pi_paywall.services.persistence import PersistenceAdapter
from pi_paywall.services.verification import AuthVerifier

_logger = logging.getLogger(__name__)


@dataclass
class SessionService:
    """Issue and resolve sessions."""

    store: PersistenceAdapter
    auth_verifier: AuthVerifier

    async def login(self, token: str) -> str:
        """Verify an identity token and open a new session for it."""
        user_id = await self.auth_verifier.verify(token)
        if not user_id:
            raise AuthError("Invalid token")
        session_id = generate_id("sess")
        self.store.create_session(session_id, user_id)
        _logger.info("Session opened", extra={"user_id": user_id})
        return session_id

    def resolve(self, session_id: str | None) -> str:
        """Return the user id behind a session or raise AuthError."""
        if not session_id:
            raise AuthError()
        session = self.store.get_session(session_id)
        if session is None:
            raise AuthError()
        return session.user_id


def generate_id(prefix: str) -> str:
    """Return a prefixed identifier from a cryptographically random source."""
    return f"{prefix}_{secrets.token_hex(16)}"
