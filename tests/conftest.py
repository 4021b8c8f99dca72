import asyncio
import json
from typing import Any, Callable, Dict, List, Optional

import httpx
import pytest

from intraclient.core.client import IntraClient
from intraclient.domain.events.api_events import DomainEvent
from intraclient.infrastructure.config.settings import ClientConfig, clear_test_config

TOKEN_PATH = "/oauth/token"

class FakeIntraApi:
    """In-memory stand-in for the Intra API, served through httpx.MockTransport.

    Token requests are answered with sequential tokens ("token-1", "token-2"...)
    unless `token_responses` holds scripted responses. Resource paths answer
    from queued responses (the last one repeats) or from a route function.
    """

    def __init__(self):
        self.token_requests: List[Dict[str, Any]] = []
        self.token_responses: List[httpx.Response] = []
        self.token_delay = 0.0
        self.api_requests: List[httpx.Request] = []
        self._queues: Dict[str, List[Any]] = {}
        self._routes: Dict[str, Callable[[httpx.Request], Any]] = {}

    def queue(self, path: str, *responses: Any) -> None:
        """Queues responses for `path`: httpx.Response, int status, or exception."""
        self._queues[path] = list(responses)

    def route(self, path: str, handler: Callable[[httpx.Request], Any]) -> None:
        self._routes[path] = handler

    def requests_to(self, path: str) -> List[httpx.Request]:
        return [r for r in self.api_requests if r.url.path == path]

    async def __call__(self, request: httpx.Request) -> httpx.Response:
        if request.url.path == TOKEN_PATH:
            return await self._token(request)
        self.api_requests.append(request)

        path = request.url.path
        if path in self._routes:
            result = self._routes[path](request)
            if asyncio.iscoroutine(result):
                result = await result
            return result

        queued = self._queues.get(path)
        if not queued:
            return httpx.Response(404, json={"message": "Not Found"})
        item = queued.pop(0) if len(queued) > 1 else queued[0]
        if isinstance(item, BaseException):
            raise item
        if isinstance(item, int):
            return httpx.Response(item, json={"status": item})
        return item

    async def _token(self, request: httpx.Request) -> httpx.Response:
        payload = json.loads(request.content)
        self.token_requests.append(payload)
        token_number = len(self.token_requests)
        if self.token_delay:
            await asyncio.sleep(self.token_delay)
        if self.token_responses:
            return self.token_responses.pop(0)
        return httpx.Response(200, json={"access_token": f"token-{token_number}", "token_type": "bearer"})


def fast_config(**overrides: Any) -> ClientConfig:
    """Defaults with a rate gate that never waits and log lines off."""
    base = ClientConfig(
        rate_limit_max_requests=1000,
        rate_limit_per_milliseconds=60000,
        log_line=False,
    )
    return base.with_overrides(**overrides)


@pytest.fixture
def fake_api() -> FakeIntraApi:
    return FakeIntraApi()


@pytest.fixture
def events() -> List[DomainEvent]:
    return []


@pytest.fixture
def make_client(fake_api: FakeIntraApi, events: List[DomainEvent]):
    """Factory building an IntraClient wired to the fake API."""
    def _make(**overrides: Any) -> IntraClient:
        return IntraClient(
            "uid-test",
            "secret-test",
            fast_config(**overrides),
            transport=httpx.MockTransport(fake_api),
            event_listener=events.append,
        )
    return _make


@pytest.fixture
def client(make_client) -> IntraClient:
    return make_client()


@pytest.fixture(autouse=True)
def reset_test_config():
    """Keep configuration overrides from leaking between tests."""
    yield
    clear_test_config()


@pytest.fixture
def link_header():
    """Builds a Link header advertising `last` as the final page (None: no last relation)."""
    def _build(last: Optional[int], base: str = "https://api.intra.42.fr/v2/users", per_page: int = 100) -> Dict[str, str]:
        links = [f'<{base}?page=2&per_page={per_page}>; rel="next"']
        if last is not None:
            links.append(f'<{base}?page={last}&per_page={per_page}>; rel="last"')
        return {"Link": ", ".join(links)}
    return _build
