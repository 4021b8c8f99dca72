"""OAuth2 token store for the client-credentials and authorization-code grants.

Holds at most one cached client-credentials access token per client. The token
is not expiry-tracked: it is reused until a 401 makes the dispatcher
invalidate it, and the next request acquires a new one.
"""

import asyncio
import logging
from typing import Any, Dict, Optional

import httpx

from intraclient.domain.events.api_events import DomainEvent, EventListener, TokenAcquired, TokenInvalidated
from intraclient.domain.interfaces.token_provider import TokenProvider
from intraclient.domain.models.common import AccessToken, TokenOverride, token_from_override
from intraclient.domain.models.request import Credentials
from intraclient.infrastructure.resilience.rate_limiter import RateLimiter

logger = logging.getLogger(__name__)


class TokenStore(TokenProvider):
    """Acquires, caches and invalidates the client-credentials token."""

    def __init__(
        self,
        credentials: Credentials,
        http_client: httpx.AsyncClient,
        rate_limiter: RateLimiter,
        token_url: str,
        redirect_uri: Optional[str] = None,
        single_flight: bool = True,
        event_listener: Optional[EventListener] = None,
    ):
        """Initializes the store.

        Args:
            credentials: Client id, secret and scopes.
            http_client: Transport for token endpoint calls.
            rate_limiter: Shared gate; token requests count against the limit.
            token_url: OAuth token endpoint.
            redirect_uri: Default redirect URI for code exchanges.
            single_flight: Serialize acquisition and make invalidation
                compare-and-clear, so concurrent 401s trigger one refresh.
            event_listener: Optional observer for token events.
        """
        self.credentials = credentials
        self.http_client = http_client
        self.rate_limiter = rate_limiter
        self.token_url = token_url
        self.redirect_uri = redirect_uri
        self.single_flight = single_flight
        self.event_listener = event_listener
        self._access_token: Optional[AccessToken] = None
        self._lock = asyncio.Lock()
        self.acquisitions = 0

    @property
    def cached_token(self) -> Optional[AccessToken]:
        return self._access_token

    def _dispatch_event(self, event: DomainEvent) -> None:
        logger.debug(f"EVENT: {event}")
        if self.event_listener:
            self.event_listener(event)

    async def _post_token_request(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        """POSTs a grant to the token endpoint and returns the token payload.

        Raises:
            httpx.HTTPStatusError: On a non-2xx answer.
            httpx.DecodingError: If a 2xx body is not a JSON object carrying
                an `access_token`.
        """
        await self.rate_limiter.admit()
        response = await self.http_client.post(self.token_url, json=payload)
        response.raise_for_status()
        try:
            data = response.json()
        except ValueError as e:
            raise httpx.DecodingError(f"Token endpoint returned a non-JSON body: {e}", request=response.request) from e
        if not isinstance(data, dict) or not data.get("access_token"):
            raise httpx.DecodingError("Token endpoint response has no access_token", request=response.request)
        return data

    async def _acquire(self) -> AccessToken:
        logger.debug(f"Requesting client-credentials token from {self.token_url}")
        data = await self._post_token_request({
            "grant_type": "client_credentials",
            "client_id": self.credentials.client_id,
            "client_secret": self.credentials.client_secret,
            "scope": self.credentials.scope,
        })
        token = AccessToken(data["access_token"])
        self._access_token = token
        self.acquisitions += 1
        logger.info("Acquired client-credentials access token.")
        self._dispatch_event(TokenAcquired(token_url=self.token_url))
        return token

    async def get_token(self, override: Optional[TokenOverride] = None) -> AccessToken:
        """Returns the override if given, else the cached token (acquiring it if absent)."""
        explicit = token_from_override(override)
        if explicit is not None:
            return explicit

        if self._access_token is not None:
            return self._access_token

        if not self.single_flight:
            return await self._acquire()

        async with self._lock:
            # Another waiter may have refreshed while we queued
            if self._access_token is not None:
                return self._access_token
            return await self._acquire()

    async def invalidate(self, stale_token: Optional[AccessToken] = None) -> None:
        """Clears the cached token.

        In single-flight mode a `stale_token` that differs from the cached one
        leaves the cache untouched: the rejected token was already replaced.
        """
        if self.single_flight and stale_token is not None and stale_token != self._access_token:
            logger.debug("Cached token already refreshed; skipping invalidation.")
            self._dispatch_event(TokenInvalidated(cleared=False))
            return
        self._access_token = None
        logger.info("Access token invalidated.")
        self._dispatch_event(TokenInvalidated(cleared=True))

    async def exchange_authorization_code(
        self, code: str, redirect_uri: Optional[str] = None
    ) -> Dict[str, Any]:
        """Exchanges an authorization code for a user token payload.

        The returned token belongs to the caller; it is never cached here.
        """
        logger.debug("Exchanging authorization code for a user token.")
        return await self._post_token_request({
            "grant_type": "authorization_code",
            "client_id": self.credentials.client_id,
            "client_secret": self.credentials.client_secret,
            "redirect_uri": redirect_uri or self.redirect_uri,
            "code": code,
        })
