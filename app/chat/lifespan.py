"""
ASGI lifespan handler for the realtime core.

Mounted under the "lifespan" key of the ProtocolTypeRouter in config/asgi.py.
On startup it starts the presence sweep and probes the translation service
in the background (startup never waits on it). On shutdown it cancels the
sweep and pending grace timers and closes the HTTP client.

Servers without lifespan support still work: the consumer starts the sweep
lazily on the first connection.
"""

from __future__ import annotations

import asyncio
import logging

from chat.realtime import get_realtime

logger = logging.getLogger(__name__)


class RealtimeLifespan:
    """ASGI application handling the ``lifespan`` scope."""

    def __init__(self):
        self._probe: asyncio.Task | None = None

    async def __call__(self, scope, receive, send):
        if scope["type"] != "lifespan":
            raise ValueError(f"RealtimeLifespan cannot handle scope type {scope['type']}")

        while True:
            message = await receive()

            if message["type"] == "lifespan.startup":
                try:
                    await self.startup()
                except Exception as exc:
                    logger.exception("Realtime startup failed")
                    await send({"type": "lifespan.startup.failed", "message": str(exc)})
                    return
                await send({"type": "lifespan.startup.complete"})

            elif message["type"] == "lifespan.shutdown":
                try:
                    await self.shutdown()
                except Exception as exc:
                    logger.exception("Realtime shutdown failed")
                    await send({"type": "lifespan.shutdown.failed", "message": str(exc)})
                    return
                await send({"type": "lifespan.shutdown.complete"})
                return

    async def startup(self) -> None:
        services = get_realtime()
        await services.start()
        self._probe = asyncio.create_task(services.gateway.check_connection())

    async def shutdown(self) -> None:
        if self._probe is not None and not self._probe.done():
            self._probe.cancel()
        await get_realtime().shutdown()
