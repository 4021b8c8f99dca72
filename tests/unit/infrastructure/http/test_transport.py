import httpx
import pytest

from intraclient.infrastructure.config.settings import ClientConfig
from intraclient.infrastructure.http.transport import (
    build_async_client, decode_body, flatten_query, merge_query, resolve_url, strip_query,
)

BASE = "https://api.intra.42.fr/v2/"


@pytest.mark.parametrize("endpoint, expected", [
    ("users", "https://api.intra.42.fr/v2/users"),
    ("campus/1/users", "https://api.intra.42.fr/v2/campus/1/users"),
    ("/v2/me", "https://api.intra.42.fr/v2/me"),
    ("https://api.intra.42.fr/oauth/token/info", "https://api.intra.42.fr/oauth/token/info"),
])
def test_resolve_url(endpoint, expected):
    assert resolve_url(endpoint, BASE) == expected


def test_flatten_query_handles_nesting_lists_and_booleans():
    query = {
        "filter": {"login": "norminet", "active": True},
        "range": {"id": [1, 5]},
        "sort": "-created_at",
        "ignored": None,
    }

    assert flatten_query(query) == {
        "filter[login]": "norminet",
        "filter[active]": "true",
        "range[id]": ["1", "5"],
        "sort": "-created_at",
    }


def test_flatten_query_empty():
    assert flatten_query(None) == {}
    assert flatten_query({}) == {}


def test_merge_query_explicit_params_win():
    url, params = merge_query(f"{BASE}users?page=3&sort=id#frag", {"page": 1})

    assert url == f"{BASE}users"
    assert params == {"page": "1", "sort": "id"}


def test_merge_query_without_query_string():
    url, params = merge_query(f"{BASE}users")
    assert url == f"{BASE}users"
    assert params == {}


def test_strip_query_accepts_httpx_urls():
    assert strip_query(httpx.URL(f"{BASE}users?page=2")) == f"{BASE}users"


def test_decode_body_variants():
    request = httpx.Request("GET", f"{BASE}users")
    assert decode_body(None) is None
    assert decode_body(httpx.Response(204, request=request)) is None
    assert decode_body(httpx.Response(200, json={"id": 1}, request=request)) == {"id": 1}
    assert decode_body(httpx.Response(200, text="plain text", request=request)) == "plain text"


@pytest.mark.asyncio
async def test_build_async_client_sets_default_headers():
    seen = []

    def handler(request):
        seen.append(request)
        return httpx.Response(200)

    config = ClientConfig(user_agent="tests/1.0")
    async with build_async_client(config, transport=httpx.MockTransport(handler), extra_headers={"X-Trace": "1"}) as client:
        await client.get(f"{BASE}users")

    headers = seen[0].headers
    assert headers["User-Agent"] == "tests/1.0"
    assert headers["Accept"] == "application/json"
    assert headers["X-Trace"] == "1"
