# File: tests/conftest.py
# Purpose: Shared pytest fixtures: fake HTTP transports, in-memory cache and SDK factories
import httpx
import pytest

from wpstudio.infrastructure.cache.cache_manager import CacheManager
from wpstudio.infrastructure.http.retry_policy import RetryPolicy
from wpstudio.infrastructure.lmstudio.sdk import LmStudioSdk
from wpstudio.infrastructure.logging.action_logger import ActionLogger
from wpstudio.infrastructure.wordpress.sdk import WordPressSdk


class FakeUpstream:
    """
    Scripted upstream for httpx.MockTransport.

    Routes are matched on (method, path); each route holds a list of
    responses served in order, the last one repeating. Every request is
    recorded for later assertions.
    """

    def __init__(self):
        self.routes: dict[tuple[str, str], list] = {}
        self.requests: list[httpx.Request] = []

    def add(self, method: str, path: str, *responses) -> "FakeUpstream":
        self.routes.setdefault((method.upper(), path), []).extend(responses)
        return self

    def calls(self, method: str, path: str) -> list[httpx.Request]:
        return [r for r in self.requests if r.method == method.upper() and r.url.path == path]

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        responses = self.routes.get((request.method, request.url.path))
        if not responses:
            return httpx.Response(404, json={"code": "rest_no_route"})
        outcome = responses.pop(0) if len(responses) > 1 else responses[0]
        if isinstance(outcome, Exception):
            raise outcome
        if callable(outcome):
            return outcome(request)
        return outcome

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)


@pytest.fixture()
def upstream():
    return FakeUpstream()


@pytest.fixture()
def memory_cache():
    return CacheManager(None, default_ttl=60)


@pytest.fixture()
def action_logger():
    return ActionLogger()


@pytest.fixture()
def make_lmstudio_sdk(upstream, action_logger):
    def factory(**kwargs) -> LmStudioSdk:
        options = {
            "max_retries": 2,
            "retry_delay": 0.0,
            "allowed_hosts": ["127.0.0.1", "localhost"],
            "action_logger": action_logger,
            "transport": upstream.transport,
        }
        options.update(kwargs)
        return LmStudioSdk("http://127.0.0.1:1234", **options)

    return factory


@pytest.fixture()
def make_wordpress_sdk(upstream, memory_cache):
    def factory(**kwargs) -> WordPressSdk:
        options = {
            "namespace": "wp/v2",
            "retry_policy": RetryPolicy(max_retries=0),
            "transport": upstream.transport,
        }
        options.update(kwargs)
        return WordPressSdk("https://blog.example.com/wp-json/", memory_cache, **options)

    return factory
