"""Helpers around httpx: client construction, URL and query handling.

The client never talks to the network except through the `httpx.AsyncClient`
built here (or one supplied by the caller, e.g. with an `httpx.MockTransport`).
"""

import logging
from typing import Any, Dict, List, Mapping, Optional, Tuple, Union
from urllib.parse import parse_qsl, urljoin, urlsplit, urlunsplit

import httpx

from intraclient.domain.models.common import QueryParams
from intraclient.infrastructure.config.settings import ClientConfig

logger = logging.getLogger(__name__)

FlatParams = Dict[str, Union[str, List[str]]]


def build_async_client(
    config: Optional[ClientConfig] = None,
    *,
    transport: Optional[httpx.AsyncBaseTransport] = None,
    extra_headers: Optional[Dict[str, str]] = None,
) -> httpx.AsyncClient:
    """Creates the `httpx.AsyncClient` every request goes through.

    Args:
        config: Client configuration (timeout, user agent).
        transport: Optional transport override, used by tests.
        extra_headers: Headers added to every request.
    """
    config = config or ClientConfig()
    headers: Dict[str, str] = {
        "User-Agent": config.user_agent,
        "Accept": "application/json",
    }
    if extra_headers:
        headers.update(extra_headers)
    return httpx.AsyncClient(
        timeout=httpx.Timeout(config.http_timeout_seconds),
        headers=headers,
        transport=transport,
    )


def resolve_url(endpoint: str, base_url: str) -> str:
    """Resolves an endpoint against the API base URL.

    Relative paths append to the base path ("users" -> ".../v2/users"), rooted
    paths replace it ("/v2/me"), absolute URLs are returned unchanged.
    """
    return urljoin(base_url, endpoint)


def _stringify(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def flatten_query(query: Optional[Mapping[str, Any]], prefix: str = "") -> FlatParams:
    """Flattens nested query mappings into bracketed keys.

    `{"filter": {"login": "x"}, "range": {"id": [1, 5]}}` becomes
    `{"filter[login]": "x", "range[id]": ["1", "5"]}`. Lists are sent as
    repeated keys; None values are dropped.
    """
    flat: FlatParams = {}
    if not query:
        return flat
    for key, value in query.items():
        full_key = f"{prefix}[{key}]" if prefix else str(key)
        if value is None:
            continue
        if isinstance(value, Mapping):
            flat.update(flatten_query(value, full_key))
        elif isinstance(value, (list, tuple)):
            flat[full_key] = [_stringify(item) for item in value]
        else:
            flat[full_key] = _stringify(value)
    return flat


def merge_query(url: str, query: Optional[QueryParams] = None) -> Tuple[str, FlatParams]:
    """Splits the query string off `url` and merges it with explicit params.

    Explicit params win on key collision.

    Returns:
        The URL without query string or fragment, and the combined params.
    """
    parts = urlsplit(url)
    url_params: FlatParams = {}
    for key, value in parse_qsl(parts.query, keep_blank_values=True):
        url_params[key] = value  # Last occurrence wins
    combined: FlatParams = {**url_params, **flatten_query(query)}
    clean_url = urlunsplit((parts.scheme, parts.netloc, parts.path, "", ""))
    return clean_url, combined


def strip_query(url: Union[str, httpx.URL]) -> str:
    parts = urlsplit(str(url))
    return urlunsplit((parts.scheme, parts.netloc, parts.path, "", ""))


def decode_body(response: Optional[httpx.Response]) -> Any:
    """Returns the decoded JSON body, the raw text if it is not JSON, or None if empty."""
    if response is None or not response.content:
        return None
    try:
        return response.json()
    except ValueError:
        return response.text
