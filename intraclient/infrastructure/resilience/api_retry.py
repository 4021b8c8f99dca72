"""Service for executing API calls with automatic retries.

Every attempt resolves a token, passes the shared rate gate and issues the
request through httpx. Failed attempts with a retryable status (401, 429, 500)
are repeated until `max_retry` is used up; a 401 first discards the cached
token so the next attempt authenticates afresh.
"""

import asyncio
import logging
import time
from typing import Optional

import httpx

from intraclient.domain.errors import ErrorKind, IntraClientError
from intraclient.domain.events.api_events import (
    DomainEvent, EventListener, RequestDeferred, RequestFailed,
    RequestSucceeded, RetryScheduled,
)
from intraclient.domain.interfaces.token_provider import TokenProvider
from intraclient.domain.models.common import AccessToken, IDEMPOTENT_METHODS
from intraclient.domain.models.request import AttemptState, RequestIntent
from intraclient.infrastructure.http import error_normalizer
from intraclient.infrastructure.http.transport import merge_query
from intraclient.infrastructure.monitoring.request_log import log_failure, log_success
from intraclient.infrastructure.resilience.rate_limiter import RateLimiter

logger = logging.getLogger(__name__)

# Fixed set; not user-configurable
RETRY_ON_STATUS = frozenset({401, 429, 500})
# Statuses where the server rejected the request before acting on it
REJECTED_STATUS = frozenset({401, 429})


class ApiRetryService:
    """Dispatches logical requests with rate limiting, authentication and retries."""

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        token_provider: TokenProvider,
        rate_limiter: RateLimiter,
        throw_on_error: bool = True,
        retry_non_idempotent: bool = False,
        initial_backoff_s: float = 0.0,
        backoff_factor: float = 2.0,
        event_listener: Optional[EventListener] = None,
    ):
        """Initializes the ApiRetryService.

        Args:
            http_client: Transport used for every attempt.
            token_provider: Source of bearer tokens.
            rate_limiter: Gate shared with every other request of the client.
            throw_on_error: Raise IntraClientError on terminal failure; when
                False the failure is logged and None returned.
            retry_non_idempotent: Retry 500s for POST/PATCH too.
            initial_backoff_s: Delay before the first retry.
            backoff_factor: Multiplier for the backoff delay after each retry.
            event_listener: Optional observer for request events.
        """
        self.http_client = http_client
        self.token_provider = token_provider
        self.rate_limiter = rate_limiter
        self.throw_on_error = throw_on_error
        self.retry_non_idempotent = retry_non_idempotent
        self.initial_backoff_s = initial_backoff_s
        self.backoff_factor = backoff_factor
        self.event_listener = event_listener

    def _dispatch_event(self, event: DomainEvent) -> None:
        logger.debug(f"EVENT: {event}")
        if self.event_listener:
            self.event_listener(event)

    def is_retryable(self, status: Optional[int], method: str) -> bool:
        """Whether a failed attempt with `status` may be repeated for `method`."""
        if status is None or status not in RETRY_ON_STATUS:
            return False
        if status in REJECTED_STATUS:
            return True
        return self.retry_non_idempotent or method.upper() in IDEMPOTENT_METHODS

    async def _attempt(self, intent: RequestIntent, token: AccessToken) -> httpx.Response:
        clean_url, params = merge_query(intent.url, intent.query)

        wait_duration = await self.rate_limiter.get_wait_time()
        if wait_duration > 0:
            self._dispatch_event(RequestDeferred(method=intent.method, route=clean_url, wait_time_seconds=wait_duration))
        await self.rate_limiter.admit()

        response = await self.http_client.request(
            intent.method,
            clean_url,
            headers={"Authorization": f"Bearer {token}"},
            params=params,
            json=intent.body,
        )
        response.raise_for_status()
        return response

    async def send(self, intent: RequestIntent, state: AttemptState) -> Optional[httpx.Response]:
        """Executes one logical request, retrying transient failures.

        Args:
            intent: What to request.
            state: Attempt bookkeeping; `attempt` is advanced in place.

        Returns:
            The successful response, or None if the request failed and the
            service does not throw on errors.

        Raises:
            IntraClientError: On terminal failure when throw_on_error is set.
            Exception: Any non-httpx exception, unchanged and never retried.
        """
        method = intent.method.upper()
        current_backoff = self.initial_backoff_s

        while True:
            token: Optional[AccessToken] = None
            try:
                token = await self.token_provider.get_token(intent.token)
                start_time = time.perf_counter()
                response = await self._attempt(intent, token)
                latency_ms = (time.perf_counter() - start_time) * 1000
            except httpx.HTTPError as e:
                # token is still None when the token endpoint itself failed
                token_failure = token is None
                if intent.log_line:
                    log_failure(e, method, include_body=intent.err_log_body)

                status = error_normalizer.status_of(e)
                retryable = self.is_retryable(status, method)
                if retryable and state.can_retry:
                    if status == 401:
                        await self.token_provider.invalidate(token)
                    state.attempt += 1
                    self._dispatch_event(RetryScheduled(
                        method=method,
                        route=str(intent.url),
                        status_code=status,
                        attempt_number=state.attempt,
                        delay_seconds=current_backoff,
                        page=state.current_page,
                    ))
                    logger.debug(
                        f"Retrying {method} {intent.url} after HTTP {status} "
                        f"(attempt {state.attempt}/{state.max_retry})"
                    )
                    if current_backoff > 0:
                        await asyncio.sleep(current_backoff)
                        current_backoff *= self.backoff_factor
                    continue

                if token_failure:
                    kind = ErrorKind.TOKEN_ACQUISITION
                elif retryable:
                    kind = ErrorKind.EXHAUSTED_RETRIES
                else:
                    kind = None
                return self._fail(e, kind, state)

            if intent.log_line:
                log_success(response, method, state)
            self._dispatch_event(RequestSucceeded(
                method=method,
                route=str(response.request.url),
                status_code=response.status_code,
                attempt=state.attempt,
                latency_ms=latency_ms,
                page=state.current_page,
            ))
            return response

    def _fail(self, exc: httpx.HTTPError, kind: Optional[ErrorKind], state: AttemptState) -> None:
        error: IntraClientError = error_normalizer.normalize(exc, kind)
        self._dispatch_event(RequestFailed(
            method=error.method or "",
            route=error.route or "",
            status_code=error.status_code,
            error_kind=error.kind.value,
            swallowed=not self.throw_on_error,
            page=state.current_page,
        ))
        if self.throw_on_error:
            raise error from exc
        logger.debug(f"Swallowing failed request: {error}")
        return None
