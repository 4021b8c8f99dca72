import asyncio

import httpx
import pytest

from intraclient.domain.events.api_events import TokenAcquired, TokenInvalidated
from intraclient.domain.models.request import Credentials
from intraclient.infrastructure.auth.token_store import TokenStore
from intraclient.infrastructure.resilience.rate_limiter import RateLimiter

TOKEN_URL = "https://api.intra.42.fr/oauth/token"


@pytest.fixture
def make_store(fake_api, events):
    def _make(single_flight=True, scopes=("public",), redirect_uri=None):
        return TokenStore(
            credentials=Credentials("uid-test", "secret-test", scopes),
            http_client=httpx.AsyncClient(transport=httpx.MockTransport(fake_api)),
            rate_limiter=RateLimiter(max_requests=1000, time_window=60),
            token_url=TOKEN_URL,
            redirect_uri=redirect_uri,
            single_flight=single_flight,
            event_listener=events.append,
        )
    return _make


@pytest.mark.asyncio
async def test_client_credentials_request_payload(make_store, fake_api, events):
    store = make_store(scopes=("public", "projects"))

    token = await store.get_token()

    assert token == "token-1"
    assert store.cached_token == "token-1"
    assert fake_api.token_requests == [{
        "grant_type": "client_credentials",
        "client_id": "uid-test",
        "client_secret": "secret-test",
        "scope": "public projects",
    }]
    assert [type(e) for e in events] == [TokenAcquired]


@pytest.mark.asyncio
async def test_token_requests_pass_the_rate_gate(make_store):
    store = make_store()
    await store.get_token()
    assert len(store.rate_limiter.timestamps) == 1


@pytest.mark.asyncio
async def test_override_bypasses_cache(make_store, fake_api):
    store = make_store()

    assert await store.get_token("explicit") == "explicit"
    assert await store.get_token({"access_token": "from-code"}) == "from-code"
    assert fake_api.token_requests == []
    assert store.cached_token is None


@pytest.mark.asyncio
async def test_concurrent_first_requests_share_one_acquisition(make_store, fake_api):
    fake_api.token_delay = 0.01
    store = make_store()

    tokens = await asyncio.gather(*(store.get_token() for _ in range(5)))

    assert tokens == ["token-1"] * 5
    assert len(fake_api.token_requests) == 1
    assert store.acquisitions == 1


@pytest.mark.asyncio
async def test_legacy_mode_acquires_once_per_concurrent_caller(make_store, fake_api):
    fake_api.token_delay = 0.01
    store = make_store(single_flight=False)

    await asyncio.gather(*(store.get_token() for _ in range(3)))

    assert len(fake_api.token_requests) == 3


@pytest.mark.asyncio
async def test_stale_invalidation_keeps_newer_token(make_store, events):
    store = make_store()
    await store.get_token()

    await store.invalidate("token-0")
    assert store.cached_token == "token-1"

    await store.invalidate("token-1")
    assert store.cached_token is None

    cleared = [e.cleared for e in events if isinstance(e, TokenInvalidated)]
    assert cleared == [False, True]


@pytest.mark.asyncio
async def test_legacy_invalidation_always_clears(make_store):
    store = make_store(single_flight=False)
    await store.get_token()

    await store.invalidate("something-else")

    assert store.cached_token is None


@pytest.mark.asyncio
async def test_exchange_authorization_code_does_not_cache(make_store, fake_api):
    store = make_store(redirect_uri="https://app.example/callback")

    payload = await store.exchange_authorization_code("the-code")

    assert payload["access_token"] == "token-1"
    assert store.cached_token is None
    assert fake_api.token_requests == [{
        "grant_type": "authorization_code",
        "client_id": "uid-test",
        "client_secret": "secret-test",
        "redirect_uri": "https://app.example/callback",
        "code": "the-code",
    }]


@pytest.mark.asyncio
async def test_exchange_prefers_explicit_redirect_uri(make_store, fake_api):
    store = make_store(redirect_uri="https://app.example/callback")

    await store.exchange_authorization_code("the-code", "https://other.example/cb")

    assert fake_api.token_requests[0]["redirect_uri"] == "https://other.example/cb"


@pytest.mark.asyncio
async def test_token_endpoint_error_propagates(make_store, fake_api):
    fake_api.token_responses = [httpx.Response(401, json={"error": "invalid_client"})]
    store = make_store()

    with pytest.raises(httpx.HTTPStatusError):
        await store.get_token()
    assert store.cached_token is None


@pytest.mark.asyncio
async def test_concurrent_unauthorized_responses_trigger_one_refresh(make_client, fake_api):
    fake_api.token_delay = 0.01
    client = make_client()

    def reject_first_token(request):
        if request.headers["Authorization"] == "Bearer token-1":
            return httpx.Response(401, json={"message": "The access token expired"})
        return httpx.Response(200, json=[])

    fake_api.route("/v2/users", reject_first_token)

    results = await asyncio.gather(*(client.get("users") for _ in range(3)))

    assert results == [[], [], []]
    assert len(fake_api.token_requests) == 2


@pytest.mark.asyncio
async def test_concurrent_unauthorized_responses_without_single_flight(make_client, fake_api):
    fake_api.token_delay = 0.01
    client = make_client(token_single_flight=False)

    def reject_first_token(request):
        if request.headers["Authorization"] == "Bearer token-1":
            return httpx.Response(401, json={"message": "The access token expired"})
        return httpx.Response(200, json=[])

    fake_api.route("/v2/users", reject_first_token)

    results = await asyncio.gather(*(client.get("users") for _ in range(3)))

    assert results == [[], [], []]
    assert len(fake_api.token_requests) > 2


@pytest.mark.asyncio
@pytest.mark.parametrize("bad_response", [
    httpx.Response(200, json={"error": "weird"}),
    httpx.Response(200, text="<html>maintenance</html>"),
    httpx.Response(200, json=["token-1"]),
])
async def test_malformed_token_payload_raises_decoding_error(make_store, fake_api, bad_response):
    fake_api.token_responses = [bad_response]
    store = make_store()

    with pytest.raises(httpx.DecodingError) as exc_info:
        await store.get_token()

    assert exc_info.value.request.url == TOKEN_URL
    assert store.cached_token is None
