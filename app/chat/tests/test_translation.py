"""
Tests for the translation gateway.

The LibreTranslate API is replaced by httpx.MockTransport (see the
``translator`` fixture in conftest.py); every failure mode must surface as
TranslationUnavailable so the dispatch engine can fall back.
"""

import httpx
import pytest

from chat.exceptions import TranslationUnavailable
from chat.translation import TranslationGateway


@pytest.mark.asyncio
class TestTranslate:
    async def test_returns_translated_text(self, gateway, translator):
        result = await gateway.translate("hello", "en", "hi")

        assert result == "[hi] hello"
        assert translator.requests == [
            {"q": "hello", "source": "en", "target": "hi", "format": "text"}
        ]

    async def test_sends_api_key_when_configured(self, translator):
        client = httpx.AsyncClient(transport=httpx.MockTransport(translator))
        gateway = TranslationGateway(
            "http://translate.test", timeout=1, api_key="secret", client=client
        )

        await gateway.translate("hello", "en", "hi")

        assert translator.requests[0]["api_key"] == "secret"

    @pytest.mark.parametrize("mode", ["error", "timeout", "garbage"])
    async def test_service_failures_raise_unavailable(self, gateway, translator, mode):
        translator.mode = mode

        with pytest.raises(TranslationUnavailable):
            await gateway.translate("hello", "en", "hi")

    async def test_missing_translated_text_raises_unavailable(self, translator):
        client = httpx.AsyncClient(
            transport=httpx.MockTransport(lambda request: httpx.Response(200, json={}))
        )
        gateway = TranslationGateway("http://translate.test", timeout=1, client=client)

        with pytest.raises(TranslationUnavailable, match="translatedText"):
            await gateway.translate("hello", "en", "hi")

    async def test_unsupported_target_is_not_sent(self, translator):
        client = httpx.AsyncClient(transport=httpx.MockTransport(translator))
        gateway = TranslationGateway(
            "http://translate.test",
            timeout=1,
            supported_languages=("en", "es"),
            client=client,
        )

        with pytest.raises(TranslationUnavailable, match="Unsupported"):
            await gateway.translate("hello", "en", "hi")
        assert translator.requests == []

    async def test_empty_text_is_a_caller_error(self, gateway):
        with pytest.raises(ValueError):
            await gateway.translate("", "en", "hi")

    async def test_error_code(self, gateway, translator):
        translator.mode = "error"

        with pytest.raises(TranslationUnavailable) as exc_info:
            await gateway.translate("hello", "en", "hi")

        assert exc_info.value.error_code == "TRANSLATION_UNAVAILABLE"
        assert exc_info.value.details["status_code"] == 500


@pytest.mark.asyncio
class TestCheckConnection:
    async def test_reachable_service(self, gateway):
        assert await gateway.check_connection() is True

    async def test_unhealthy_service_returns_false(self, gateway, translator):
        translator.mode = "error"

        assert await gateway.check_connection() is False

    async def test_connection_error_returns_false(self):
        def refuse(request):
            raise httpx.ConnectError("refused", request=request)

        client = httpx.AsyncClient(transport=httpx.MockTransport(refuse))
        gateway = TranslationGateway("http://translate.test", timeout=1, client=client)

        assert await gateway.check_connection() is False


class TestConstruction:
    @pytest.mark.parametrize("timeout", [0, -1, None])
    def test_timeout_must_be_positive(self, timeout):
        with pytest.raises(ValueError):
            TranslationGateway("http://translate.test", timeout=timeout)

    def test_from_settings_uses_translation_settings(self, settings):
        settings.TRANSLATION_SERVICE_URL = "http://lt.internal:5000/"
        settings.TRANSLATION_TIMEOUT_SECONDS = 3

        gateway = TranslationGateway.from_settings()

        assert gateway.base_url == "http://lt.internal:5000"
        assert gateway.timeout == 3.0
