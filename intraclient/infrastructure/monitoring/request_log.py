"""Formats the one-line request summaries emitted when `log_line` is enabled.

Success:  "200 GET    /v2/users {"filter[login]": "x"} | page: 2/3"
Failure:  "404 GET    /v2/users/nobody"
"""

import json
import logging
from typing import Any, Mapping, Optional
from urllib.parse import urlsplit

import httpx

from intraclient.domain.models.request import AttemptState
from intraclient.infrastructure.http.transport import decode_body

logger = logging.getLogger(__name__)

PAGINATION_PARAMS = ("page", "per_page")


def _params_token(params: Mapping[str, Any]) -> Optional[str]:
    if not params:
        return None
    return json.dumps(dict(params), ensure_ascii=False, default=str)


def _params_of(url: httpx.URL) -> dict:
    params: dict = {}
    for key, value in url.params.multi_items():
        if key in params:
            existing = params[key]
            params[key] = existing + [value] if isinstance(existing, list) else [existing, value]
        else:
            params[key] = value
    return params


def format_success_line(response: httpx.Response, method: str, state: Optional[AttemptState] = None) -> str:
    """Builds the log line for a successful attempt.

    Pagination params are omitted from the params token; the page position is
    appended instead when the request belongs to a paginated fetch.
    """
    tokens = [str(response.status_code), method.ljust(6)]
    url = response.request.url
    tokens.append(urlsplit(str(url)).path)

    params = {k: v for k, v in _params_of(url).items() if k not in PAGINATION_PARAMS}
    params_token = _params_token(params)
    if params_token:
        tokens.append(params_token)

    if state is not None and state.current_page is not None:
        last = "unknown" if state.last_page is None else str(state.last_page)
        tokens.append(f"| page: {state.current_page}/{last}")

    return " ".join(tokens)


def format_error_line(exc: httpx.HTTPError, method: str) -> str:
    """Builds the log line for a failed attempt."""
    response = exc.response if isinstance(exc, httpx.HTTPStatusError) else None
    tokens = [str(response.status_code) if response is not None else "---", method.ljust(6)]
    try:
        url = exc.request.url
    except RuntimeError:
        url = None
    if url is not None:
        tokens.append(urlsplit(str(url)).path)
        params_token = _params_token(_params_of(url))
        if params_token:
            tokens.append(params_token)
    else:
        tokens.append(f"({type(exc).__name__}: {exc})")
    return " ".join(tokens)


def format_payload(body: Any) -> str:
    """Renders a decoded response body as indented JSON (text bodies unchanged)."""
    if isinstance(body, str):
        return body
    try:
        return json.dumps(body, indent=2, ensure_ascii=False)
    except (TypeError, ValueError):
        return str(body)


def format_error_body(exc: httpx.HTTPError) -> Optional[str]:
    """Pretty-prints a failure's response body, or None when there is nothing to show."""
    if not isinstance(exc, httpx.HTTPStatusError):
        return None
    body = decode_body(exc.response)
    if not body:
        return None
    return format_payload(body)


def log_success(response: httpx.Response, method: str, state: Optional[AttemptState] = None) -> None:
    logger.info(format_success_line(response, method, state))


def log_failure(exc: httpx.HTTPError, method: str, include_body: bool = True) -> None:
    line = format_error_line(exc, method)
    body = format_error_body(exc) if include_body else None
    if body:
        logger.warning(f"{line}\n{body}")
    else:
        logger.warning(line)
