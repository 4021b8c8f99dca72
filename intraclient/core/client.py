"""Public client for the 42 Intra API.

Wires the token store, rate gate, retry dispatcher and pagination
orchestrator together (Composition Root for one client instance) and exposes
the HTTP verbs plus the OAuth helpers.
"""

import logging
import secrets
from dataclasses import dataclass
from typing import Any, Optional
from urllib.parse import urlencode, urlsplit, urlunsplit, parse_qsl

import httpx

from intraclient.core.pagination import DEFAULT_PER_PAGE, PaginatedItems, PaginationOrchestrator
from intraclient.domain.errors import ErrorKind
from intraclient.domain.events.api_events import EventListener
from intraclient.domain.models.common import HttpMethod, QueryParams, TokenOverride
from intraclient.domain.models.request import AttemptState, Credentials, RequestIntent
from intraclient.infrastructure.auth.token_store import TokenStore
from intraclient.infrastructure.config.settings import ClientConfig
from intraclient.infrastructure.http import error_normalizer
from intraclient.infrastructure.http.transport import build_async_client, decode_body, resolve_url
from intraclient.infrastructure.resilience.api_retry import ApiRetryService
from intraclient.infrastructure.resilience.rate_limiter import RateLimiter

logger = logging.getLogger(__name__)

STATE_BYTES = 32


@dataclass(frozen=True)
class OAuthUrl:
    """Authorization URL to redirect the user to, and the state it carries."""
    url: str
    state: str


class IntraClient:
    """Authenticated, rate limited and retrying client for one API.

    Example:
        async with IntraClient(client_id, client_secret) as client:
            me = await client.get("users/norminet")
            campus_users = await client.get_all("campus/1/users", max_pages=3)
    """

    def __init__(
        self,
        client_id: str,
        client_secret: str,
        config: Optional[ClientConfig] = None,
        *,
        http_client: Optional[httpx.AsyncClient] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        event_listener: Optional[EventListener] = None,
    ):
        """Initializes the client.

        Args:
            client_id: OAuth application id.
            client_secret: OAuth application secret.
            config: Client configuration; defaults target the 42 Intra API.
            http_client: Pre-built httpx client. Closed by the caller.
            transport: httpx transport for the client built internally
                (ignored when http_client is given).
            event_listener: Observer receiving every pipeline event.
        """
        self.config = config or ClientConfig()
        self.credentials = Credentials(client_id, client_secret, self.config.scopes)

        self._owns_http_client = http_client is None
        self.http_client = http_client or build_async_client(self.config, transport=transport)

        self.rate_limiter = RateLimiter(
            max_requests=self.config.rate_limit_max_requests,
            time_window=self.config.rate_limit_window_seconds,
        )
        self.token_store = TokenStore(
            credentials=self.credentials,
            http_client=self.http_client,
            rate_limiter=self.rate_limiter,
            token_url=self.config.token_url,
            redirect_uri=self.config.redirect_uri,
            single_flight=self.config.token_single_flight,
            event_listener=event_listener,
        )
        self.dispatcher = ApiRetryService(
            http_client=self.http_client,
            token_provider=self.token_store,
            rate_limiter=self.rate_limiter,
            throw_on_error=self.config.throw_on_error,
            retry_non_idempotent=self.config.retry_non_idempotent,
            initial_backoff_s=self.config.retry_backoff_seconds,
            backoff_factor=self.config.retry_backoff_factor,
            event_listener=event_listener,
        )
        self.paginator = PaginationOrchestrator(self.dispatcher)
        logger.debug(f"IntraClient initialized for {self.config.base_url} (client_id={client_id})")

    # --- Lifecycle ---

    async def aclose(self) -> None:
        if self._owns_http_client:
            await self.http_client.aclose()

    async def __aenter__(self) -> "IntraClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    # --- Helpers ---

    def url(self, endpoint: str) -> str:
        """Resolves an endpoint against the configured base URL."""
        return resolve_url(endpoint, self.config.base_url)

    def _intent(
        self,
        method: str,
        endpoint: str,
        query: Optional[QueryParams],
        body: Any,
        token: Optional[TokenOverride],
        log_line: Optional[bool],
        err_log_body: Optional[bool],
    ) -> RequestIntent:
        return RequestIntent(
            method=HttpMethod(method),
            url=self.url(endpoint),
            query=dict(query or {}),
            body=body,
            token=token,
            log_line=self.config.log_line if log_line is None else log_line,
            err_log_body=self.config.err_log_body if err_log_body is None else err_log_body,
        )

    async def request(
        self,
        method: str,
        endpoint: str,
        *,
        query: Optional[QueryParams] = None,
        body: Any = None,
        token: Optional[TokenOverride] = None,
        max_retry: Optional[int] = None,
        log_line: Optional[bool] = None,
        err_log_body: Optional[bool] = None,
    ) -> Any:
        """Performs one logical request and returns the decoded body.

        Returns:
            Decoded JSON (or text) body; None for empty bodies or for failures
            swallowed by a non-throwing client.

        Raises:
            IntraClientError: On terminal failure when throw_on_error is set.
        """
        intent = self._intent(method, endpoint, query, body, token, log_line, err_log_body)
        state = AttemptState(max_retry=self.config.max_retry if max_retry is None else max_retry)
        response = await self.dispatcher.send(intent, state)
        return decode_body(response)

    # --- HTTP verbs ---

    async def get(self, endpoint: str, **options: Any) -> Any:
        return await self.request("GET", endpoint, **options)

    async def post(self, endpoint: str, **options: Any) -> Any:
        return await self.request("POST", endpoint, **options)

    async def put(self, endpoint: str, **options: Any) -> Any:
        return await self.request("PUT", endpoint, **options)

    async def patch(self, endpoint: str, **options: Any) -> Any:
        return await self.request("PATCH", endpoint, **options)

    async def delete(self, endpoint: str, **options: Any) -> Any:
        return await self.request("DELETE", endpoint, **options)

    async def get_all(
        self,
        endpoint: str,
        *,
        per_page: int = DEFAULT_PER_PAGE,
        max_pages: Optional[int] = None,
        query: Optional[QueryParams] = None,
        token: Optional[TokenOverride] = None,
        max_retry: Optional[int] = None,
        log_line: Optional[bool] = None,
        err_log_body: Optional[bool] = None,
    ) -> Optional[PaginatedItems]:
        """Fetches every page of a collection endpoint.

        Args:
            endpoint: Collection path or URL.
            per_page: Page size.
            max_pages: Stop after this many pages even if the server reports more.
            query: Extra query parameters (nested mappings become `key[sub]`).
            token: Explicit token instead of the client-credentials one.
            max_retry: Per-page retry budget override.

        Returns:
            All items in page order; `failed_pages` on the result is non-empty
            when some pages were swallowed. None if page 1 was swallowed.
        """
        intent = self._intent("GET", endpoint, query, None, token, log_line, err_log_body)
        return await self.paginator.fetch_all(
            intent,
            max_retry=self.config.max_retry if max_retry is None else max_retry,
            per_page=per_page,
            max_pages=max_pages,
        )

    # --- OAuth ---

    def get_oauth_url(self, redirect_uri: Optional[str] = None, state: Optional[str] = None) -> OAuthUrl:
        """Builds the authorization URL for the authorization-code flow.

        Args:
            redirect_uri: Overrides the configured redirect URI.
            state: Anti-CSRF state; 32 random bytes (base64url) when omitted.

        Raises:
            ValueError: If no redirect URI is given or configured.
        """
        redirect = redirect_uri or self.config.redirect_uri
        if not redirect:
            raise ValueError("Missing redirect_uri parameter")
        state = state or secrets.token_urlsafe(STATE_BYTES)

        parts = urlsplit(self.config.oauth_url)
        params = dict(parse_qsl(parts.query))
        params.update({
            "client_id": self.credentials.client_id,
            "redirect_uri": redirect,
            "response_type": "code",
            "scope": self.credentials.scope,
            "state": state,
        })
        url = urlunsplit((parts.scheme, parts.netloc, parts.path, urlencode(params), parts.fragment))
        return OAuthUrl(url=url, state=state)

    async def exchange_oauth_code(self, code: str, redirect_uri: Optional[str] = None) -> Any:
        """Exchanges an authorization code for a user token payload.

        The payload can be passed back as `token=` on later calls; it is not
        cached by the client.

        Raises:
            IntraClientError: If the token endpoint rejects the exchange.
        """
        try:
            return await self.token_store.exchange_authorization_code(code, redirect_uri)
        except httpx.HTTPError as e:
            raise error_normalizer.normalize(e, ErrorKind.TOKEN_ACQUISITION) from e

    async def token_infos(self, **options: Any) -> Any:
        """Describes the token in use (or the one passed as `token=`)."""
        return await self.get(self.config.token_info_url, **options)
