"""Pi platform API client."""

from dataclasses import dataclass
from typing import Protocol
from urllib.parse import quote

import httpx

PLATFORM_TIMEOUT_SECONDS = 10


class PiPlatformClient(Protocol):
    """Interface for the identity and payment endpoints of the Pi platform."""

    async def verify_auth_token(self, id_token: str) -> dict[str, object]:
        """Verify an identity token and return raw API data."""

    async def get_payment(self, payment_id: str) -> dict[str, object]:
        """Fetch a payment by id and return raw API data."""


@dataclass
class HttpxPiPlatformClient(PiPlatformClient):
    """HTTPX-backed Pi platform client."""

    base_url: str
    api_secret: str
    http_client: httpx.AsyncClient

    @classmethod
    def create(cls, base_url: str, api_secret: str) -> "HttpxPiPlatformClient":
        """Create a platform client with a managed httpx session."""
        return cls(
            base_url=base_url.rstrip("/"),
            api_secret=api_secret,
            http_client=httpx.AsyncClient(),
        )

    async def verify_auth_token(self, id_token: str) -> dict[str, object]:
        """Exchange an identity token for the platform's user record."""
        response = await self.http_client.post(
            f"{self.base_url}/auth/verify",
            json={"idToken": id_token},
            headers=self._headers(),
            timeout=PLATFORM_TIMEOUT_SECONDS,
        )
        response.raise_for_status()
        return response.json()

    async def get_payment(self, payment_id: str) -> dict[str, object]:
        """Fetch the platform's view of a payment."""
        response = await self.http_client.get(
            f"{self.base_url}/payments/{quote(payment_id, safe='')}",
            headers=self._headers(),
            timeout=PLATFORM_TIMEOUT_SECONDS,
        )
        response.raise_for_status()
        return response.json()

    async def close(self) -> None:
        """Close the underlying HTTP session."""
        await self.http_client.aclose()

    def _headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self.api_secret}"}
