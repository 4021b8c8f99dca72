"""Interface for access token providers.

Defines the contract the retry dispatcher relies on to attach credentials to
a request and to discard them after an authentication failure.
"""

import abc
from typing import Any, Dict, Optional

from intraclient.domain.models.common import AccessToken, TokenOverride


class TokenProvider(abc.ABC):
    """Abstract Base Class for access token sources."""

    @abc.abstractmethod
    async def get_token(self, override: Optional[TokenOverride] = None) -> AccessToken:
        """Returns the token to send with the next request.

        Args:
            override: Explicit token supplied by the caller; returned verbatim.

        Returns:
            The bearer token string.

        Raises:
            httpx.HTTPError: If a fresh token had to be requested and the token
                endpoint failed.
        """
        pass

    @abc.abstractmethod
    async def invalidate(self, stale_token: Optional[AccessToken] = None) -> None:
        """Discards the cached token so the next request acquires a new one.

        Args:
            stale_token: The token that was rejected, if known.
        """
        pass

    @abc.abstractmethod
    async def exchange_authorization_code(
        self, code: str, redirect_uri: Optional[str] = None
    ) -> Dict[str, Any]:
        """Exchanges a user-authorized code for a token payload (not cached)."""
        pass
