"""
Websocket client used by the admin panel and kiosk sessions.

``send`` never awaits: messages go into an outbox drained by a writer task,
so a session's ``emit`` can be called from plain synchronous code.
"""
import asyncio
import json
import logging
from typing import Callable, Optional, Tuple

import websockets
from websockets.exceptions import ConnectionClosed

from config import KIOSK_SHARES_ATTENDANCE, RELAY_URL
from local_store import LocalStore
from protocol import ProtocolError, StateUpdate, parse_message
from publisher import PublisherSession
from subscriber import SubscriberMirror

logger = logging.getLogger("relay_logger")


class RelayClient:
    def __init__(self, url: str = RELAY_URL):
        self.url = url
        self.websocket = None
        self.outbox: asyncio.Queue = asyncio.Queue()
        self._writer: Optional[asyncio.Task] = None

    async def connect(self) -> None:
        try:
            self.websocket = await websockets.connect(self.url)
        except OSError as e:
            logger.error(f"Relay unreachable at {self.url}: {e}")
            raise
        self.attach(self.websocket)
        logger.info(f"Connected to relay at {self.url}")

    def attach(self, websocket) -> None:
        """Use an already open connection and start the writer task."""
        self.websocket = websocket
        self._writer = asyncio.create_task(self._pump())

    def send(self, message: dict) -> None:
        self.outbox.put_nowait(message)

    async def _pump(self) -> None:
        while True:
            message = await self.outbox.get()
            try:
                await self.websocket.send(json.dumps(message))
            except ConnectionClosed as e:
                logger.warning(f"Relay connection closed while sending: {e}")
                return

    async def listen(self, handler: Callable[[StateUpdate], object]) -> None:
        """Dispatch each inbound state update to ``handler`` until the socket closes."""
        try:
            async for raw in self.websocket:
                try:
                    message = parse_message(raw)
                except ProtocolError as e:
                    logger.warning(f"Dropped malformed frame from relay: {e}")
                    continue
                if not isinstance(message, StateUpdate):
                    continue
                try:
                    handler(message)
                except Exception as e:
                    logger.exception(f"Update handler failed for {message.type.value}: {e}")
        except ConnectionClosed as e:
            logger.warning(f"Relay connection lost: {e}")

    async def close(self) -> None:
        if self._writer is not None:
            self._writer.cancel()
            self._writer = None
        if self.websocket is not None:
            await self.websocket.close()


async def start_publisher(client: RelayClient) -> Tuple[PublisherSession, asyncio.Task]:
    """
    Start an admin session on a connected client.

    The session is returned while the connection is open so callers can
    enroll, edit and delete through it; the task applies relayed updates
    until the socket closes.
    """
    session = PublisherSession(client.send)
    session.start()
    listener = asyncio.create_task(client.listen(session.apply_update))
    return session, listener


async def start_subscriber(client: RelayClient, store: LocalStore,
                           share_attendance: bool = KIOSK_SHARES_ATTENDANCE) -> Tuple[SubscriberMirror, asyncio.Task]:
    """Boot a kiosk mirror on a connected client and keep applying relayed updates in a task."""
    mirror = SubscriberMirror(client.send, store, share_attendance=share_attendance)
    mirror.boot()
    listener = asyncio.create_task(client.listen(mirror.apply_update))
    return mirror, listener
