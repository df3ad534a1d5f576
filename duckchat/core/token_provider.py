"""VQD session token acquisition.

A single GET to the status endpoint returns the token in the x-vqd-4
response header. No retry happens here; the session decides when to ask
again.
"""

import httpx
import structlog

from duckchat.core.errors import AuthError
from duckchat.core.profile import DEFAULT_PROFILE, TOKEN_HEADER, ClientProfile

logger = structlog.get_logger(__name__)


class TokenProvider:
    """Fetches fresh VQD tokens over a shared httpx client."""

    def __init__(self, client: httpx.AsyncClient, profile: ClientProfile = DEFAULT_PROFILE):
        self._client = client
        self._profile = profile

    async def acquire(self) -> str:
        """Probe the status endpoint and return the token header.

        Returns:
            Opaque VQD token string.

        Raises:
            AuthError: If the request fails or the header is missing.
        """
        try:
            response = await self._client.get(
                self._profile.status_url,
                headers=self._profile.status_headers(),
            )
        except httpx.HTTPError as e:
            logger.error("token.probe_failed", error=str(e))
            raise AuthError(f"Unable to obtain VQD token: {e}") from e

        token = response.headers.get(TOKEN_HEADER)
        if not token:
            logger.error("token.missing", status=response.status_code)
            raise AuthError(
                f"Unable to obtain VQD token (status {response.status_code}, no {TOKEN_HEADER} header)"
            )

        logger.debug("token.acquired", status=response.status_code)
        return token
