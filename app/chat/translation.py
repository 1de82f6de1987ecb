"""
Translation gateway for the LibreTranslate HTTP API.

Sends a single bounded-time request per message. Any failure (timeout,
transport error, non-2xx status, unexpected body, unsupported language) is
raised as TranslationUnavailable; the dispatch engine recovers by
delivering the original text.

Related files:
    - dispatch.py: Calls translate() and owns the fallback policy
    - lifespan.py: Probes check_connection() at startup and closes the client

Usage:
    gateway = TranslationGateway(base_url="http://localhost:5001", timeout=5)
    try:
        text = await gateway.translate("hello", "en", "hi")
    except TranslationUnavailable:
        text = "hello"
"""

from __future__ import annotations

import logging

import httpx

from chat.constants import TRANSLATION_CONFIG, translation_setting
from chat.exceptions import TranslationUnavailable

logger = logging.getLogger(__name__)


class TranslationGateway:
    """
    Async client for a LibreTranslate-compatible translation service.

    Args:
        base_url: Service root, e.g. "http://localhost:5001"
        timeout: Overall per-request timeout in seconds (always bounded)
        api_key: Optional key sent as ``api_key`` in the request body
        supported_languages: Accepted target codes; empty means any
        client: Pre-built httpx.AsyncClient (tests pass one backed by
            httpx.MockTransport). Created lazily when omitted.
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = TRANSLATION_CONFIG.TIMEOUT_SECONDS,
        api_key: str = "",
        supported_languages=(),
        client: httpx.AsyncClient | None = None,
    ):
        if not timeout or timeout <= 0:
            raise ValueError("Translation timeout must be a positive number of seconds")
        self.base_url = base_url.rstrip("/")
        self.timeout = float(timeout)
        self.api_key = api_key
        self.supported_languages = frozenset(supported_languages or ())
        self._client = client

    @classmethod
    def from_settings(cls) -> TranslationGateway:
        """Build a gateway from TRANSLATION_* settings."""
        return cls(
            base_url=translation_setting("SERVICE_URL"),
            timeout=translation_setting("TIMEOUT_SECONDS"),
            api_key=translation_setting("API_KEY"),
            supported_languages=translation_setting("SUPPORTED_LANGUAGES"),
        )

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=httpx.Timeout(self.timeout),
                headers={"Accept": "application/json"},
            )
        return self._client

    def _url(self, path: str) -> str:
        return f"{self.base_url}{path}"

    def supports(self, language: str) -> bool:
        return not self.supported_languages or language in self.supported_languages

    async def translate(self, text: str, source: str, target: str) -> str:
        """
        Translate text from source into target language.

        Raises:
            TranslationUnavailable: Service failed or the target is not supported
            ValueError: text or target is empty (caller bug, not a service failure)
        """
        if not text:
            raise ValueError("Cannot translate empty text")
        if not target:
            raise ValueError("Target language is required")

        if not self.supports(target):
            raise TranslationUnavailable(
                f"Unsupported target language: {target}",
                details={"target": target},
            )

        body = {"q": text, "source": source or "auto", "target": target, "format": "text"}
        if self.api_key:
            body["api_key"] = self.api_key

        try:
            response = await self.client.post(
                self._url(TRANSLATION_CONFIG.TRANSLATE_PATH),
                json=body,
                timeout=self.timeout,
            )
        except httpx.TimeoutException as exc:
            raise TranslationUnavailable(
                f"Translation timed out after {self.timeout}s",
                details={"target": target},
            ) from exc
        except httpx.HTTPError as exc:
            raise TranslationUnavailable(
                f"Translation request failed: {exc.__class__.__name__}",
                details={"target": target},
            ) from exc

        if response.status_code >= 400:
            raise TranslationUnavailable(
                f"Translation service returned HTTP {response.status_code}",
                details={"target": target, "status_code": response.status_code},
            )

        try:
            payload = response.json()
        except ValueError as exc:
            raise TranslationUnavailable(
                "Translation service returned a non-JSON body"
            ) from exc

        translated = payload.get("translatedText") if isinstance(payload, dict) else None
        if not isinstance(translated, str) or not translated:
            raise TranslationUnavailable(
                "Translation service response has no translatedText"
            )

        return translated

    async def check_connection(self) -> bool:
        """
        Probe GET /languages and log whether the service is reachable.

        Never raises; returns True when the service answered with a list.
        """
        try:
            response = await self.client.get(
                self._url(TRANSLATION_CONFIG.LANGUAGES_PATH), timeout=self.timeout
            )
        except httpx.HTTPError as exc:
            logger.error(f"Cannot connect to translation service at {self.base_url}: {exc}")
            return False

        try:
            data = response.json()
        except ValueError:
            data = None

        if response.status_code < 400 and isinstance(data, list):
            logger.info(f"Translation service at {self.base_url} is up and reachable")
            return True

        logger.warning(
            f"Translation service at {self.base_url} responded unexpectedly "
            f"(HTTP {response.status_code})"
        )
        return False

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None
