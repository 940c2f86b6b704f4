"""
Relay server core: last-known copy per collection and fan-out.

The relay is transport agnostic. Anything with an ``id`` and a non-blocking
``deliver(message)`` can be registered as a channel; ``WebSocketChannel``
adapts a FastAPI websocket.

Handlers never await. A state update is stored and enqueued to every other
channel before the next inbound frame is looked at, so fan-out is atomic
with respect to a single message on the event loop.
"""
import asyncio
import logging
import uuid
from typing import Callable, Dict, List, Optional, Union

from fastapi import WebSocket

from protocol import (
    CollectionKind,
    ProtocolError,
    Role,
    SnapshotRequest,
    StateUpdate,
    parse_message,
)

logger = logging.getLogger("relay_logger")


class Channel:
    """A connected party. Subclasses implement ``deliver``."""

    def __init__(self, channel_id: Optional[str] = None):
        self.id = channel_id or uuid.uuid4().hex[:12]
        self.role: Optional[Role] = None

    def deliver(self, message: dict) -> None:
        raise NotImplementedError


class WebSocketChannel(Channel):
    """
    Channel backed by a FastAPI websocket.

    ``deliver`` only enqueues; ``pump`` drains the outbox in FIFO order and
    is run as one task per connection. When a send fails the writer stops
    and ``on_close`` is called so the relay forgets the channel at once.
    """

    def __init__(self, websocket: WebSocket, channel_id: Optional[str] = None,
                 on_close: Optional[Callable[["WebSocketChannel"], None]] = None):
        super().__init__(channel_id)
        self.websocket = websocket
        self.on_close = on_close
        self.outbox: asyncio.Queue = asyncio.Queue()

    def deliver(self, message: dict) -> None:
        self.outbox.put_nowait(message)

    async def pump(self) -> None:
        while True:
            message = await self.outbox.get()
            try:
                await self.websocket.send_json(message)
            except Exception as e:
                logger.warning(f"Send to {self.id} failed, stopping writer: {e}")
                if self.on_close is not None:
                    self.on_close(self)
                return


class RelayServer:
    """
    Holds the last-known copy of each collection and rebroadcasts updates.

    There is no durable log. Whatever the relay holds is lost on restart
    until a publisher sends again.
    """

    def __init__(self):
        self.channels: Dict[str, Channel] = {}
        self.last_known: Dict[CollectionKind, List] = {kind: [] for kind in CollectionKind}

    def connect(self, channel: Channel) -> None:
        self.channels[channel.id] = channel
        logger.info(f"Client connected: {channel.id} ({len(self.channels)} connected)")

    def disconnect(self, channel: Channel) -> None:
        if self.channels.pop(channel.id, None) is not None:
            logger.info(f"Client disconnected: {channel.id} ({len(self.channels)} connected)")

    def handle_raw(self, channel: Channel, raw: Union[str, bytes, dict]) -> None:
        """Parse and dispatch one inbound frame. Malformed frames are dropped."""
        try:
            message = parse_message(raw)
        except ProtocolError as e:
            logger.warning(f"Dropped malformed frame from {channel.id}: {e}")
            return
        self.handle_message(channel, message)

    def handle_message(self, channel: Channel, message: Union[SnapshotRequest, StateUpdate]) -> None:
        if isinstance(message, SnapshotRequest):
            self.on_snapshot_request(channel, message.role)
        else:
            self.on_state_update(channel, message)

    def on_snapshot_request(self, channel: Channel, role: Role) -> None:
        channel.role = role
        logger.info(f"Client {channel.id} announced role {role.value}")
        if role != Role.SUBSCRIBER:
            return
        for kind in CollectionKind:
            update = StateUpdate(type=kind, payload=self.last_known[kind])
            self._send(channel, update.to_wire())

    def on_state_update(self, sender: Channel, update: StateUpdate) -> None:
        self.last_known[update.type] = update.payload
        wire = update.to_wire()
        recipients = [c for c in list(self.channels.values()) if c.id != sender.id]
        logger.info(
            f"Update {update.type.value} from {sender.id}: "
            f"{len(update.payload)} entries -> {len(recipients)} recipients"
        )
        for channel in recipients:
            self._send(channel, wire)

    def _send(self, channel: Channel, message: dict) -> None:
        try:
            channel.deliver(message)
        except Exception as e:
            # One broken channel must not stop the fan-out
            logger.error(f"Delivery to {channel.id} failed, dropping channel: {e}")
            self.disconnect(channel)

    def snapshot(self) -> Dict[str, List]:
        return {kind.value: self.last_known[kind] for kind in CollectionKind}

    def stats(self) -> Dict:
        roles = {role.value: 0 for role in Role}
        unannounced = 0
        for channel in self.channels.values():
            if channel.role is None:
                unannounced += 1
            else:
                roles[channel.role.value] += 1
        return {
            "connected": len(self.channels),
            "by_role": roles,
            "unannounced": unannounced,
            "collections": {kind.value: len(self.last_known[kind]) for kind in CollectionKind},
        }
