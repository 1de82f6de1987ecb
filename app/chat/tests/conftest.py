"""
Test configuration and fixtures for chat tests.

This module provides:
- User fixtures (with preferred languages) and authenticated API clients
- Conversation fixtures built through ConversationService
- Realtime core fixtures wired to in-memory fakes (see fakes.py)
- A scripted translation service behind httpx.MockTransport

Usage:
    @pytest.mark.asyncio
    async def test_example(dispatcher, registry, transport):
        registry.register("2", "handle-b")
        ...
"""

import json

import httpx
import pytest
import pytest_asyncio
from channels.layers import channel_layers
from rest_framework.test import APIClient
from rest_framework_simplejwt.tokens import AccessToken

from authentication.tests.factories import UserFactory
from chat.broadcast import PresenceBroadcast
from chat.dispatch import MessageDispatchEngine
from chat.presence import PresenceRegistry
from chat.realtime import get_presence_registry
from chat.services import ConversationService
from chat.sessions import RealtimeSessionManager
from chat.tests.fakes import FakeTransport, FakeUserDirectory, InMemoryMessageStore
from chat.translation import TranslationGateway


@pytest.fixture(autouse=True)
def isolated_realtime_state():
    """Fresh channel layer and empty process registry for every test."""
    channel_layers.backends = {}
    get_presence_registry().clear()
    yield
    get_presence_registry().clear()
    channel_layers.backends = {}


# =============================================================================
# User Fixtures
# =============================================================================


@pytest.fixture
def english_user(db):
    """User reading English."""
    return UserFactory(display_name="Ann", preferred_language="en")


@pytest.fixture
def hindi_user(db):
    """User reading Hindi."""
    return UserFactory(display_name="Bala", preferred_language="hi")


@pytest.fixture
def outsider(db):
    """User that takes part in no test conversation."""
    return UserFactory(display_name="Zed")


@pytest.fixture
def conversation(english_user, hindi_user):
    """Conversation between english_user and hindi_user."""
    return ConversationService.find_or_create_direct(english_user, hindi_user).data


def _client_for(user) -> APIClient:
    client = APIClient()
    client.credentials(HTTP_AUTHORIZATION=f"Bearer {AccessToken.for_user(user)}")
    return client


@pytest.fixture
def english_client(english_user):
    return _client_for(english_user)


@pytest.fixture
def hindi_client(hindi_user):
    return _client_for(hindi_user)


@pytest.fixture
def outsider_client(outsider):
    return _client_for(outsider)


# =============================================================================
# Translation Service
# =============================================================================


class ScriptedTranslator:
    """
    Handler for httpx.MockTransport imitating LibreTranslate.

    mode:
        "ok": returns "[<target>] <q>"
        "error": HTTP 500
        "timeout": raises httpx.ReadTimeout
        "garbage": 200 with a non-JSON body
    """

    def __init__(self):
        self.mode = "ok"
        self.requests: list[dict] = []
        self.languages = [{"code": "en"}, {"code": "hi"}]

    def __call__(self, request: httpx.Request) -> httpx.Response:
        if request.url.path == "/languages":
            if self.mode == "error":
                return httpx.Response(503)
            return httpx.Response(200, json=self.languages)

        payload = json.loads(request.content)
        self.requests.append(payload)

        if self.mode == "timeout":
            raise httpx.ReadTimeout("timed out", request=request)
        if self.mode == "error":
            return httpx.Response(500, json={"error": "boom"})
        if self.mode == "garbage":
            return httpx.Response(200, content=b"<html>nope</html>")
        return httpx.Response(
            200, json={"translatedText": f"[{payload['target']}] {payload['q']}"}
        )


@pytest.fixture
def translator():
    return ScriptedTranslator()


@pytest.fixture
def gateway(translator):
    client = httpx.AsyncClient(
        base_url="http://translate.test", transport=httpx.MockTransport(translator)
    )
    return TranslationGateway(base_url="http://translate.test", timeout=2, client=client)


# =============================================================================
# Realtime Core (in-memory)
# =============================================================================


@pytest.fixture
def registry():
    return PresenceRegistry()


@pytest.fixture
def transport():
    return FakeTransport()


@pytest.fixture
def store():
    return InMemoryMessageStore()


@pytest.fixture
def directory():
    return FakeUserDirectory({"1": "en", "2": "hi", "3": "en"})


@pytest.fixture
def dispatcher(registry, gateway, store, directory, transport):
    return MessageDispatchEngine(
        registry=registry,
        gateway=gateway,
        store=store,
        directory=directory,
        transport=transport,
        default_source_language="en",
    )


@pytest.fixture
def broadcast(registry, transport):
    return PresenceBroadcast(registry, transport)


@pytest_asyncio.fixture
async def sessions(registry, broadcast, transport):
    manager = RealtimeSessionManager(
        registry,
        broadcast,
        transport,
        grace_seconds=0.05,
        sweep_interval=60,
        stale_after=300,
    )
    yield manager
    await manager.stop()
