import asyncio
import json

from client import RelayClient, start_publisher, start_subscriber
from kiosk import KioskScanner
from publisher import PendingEnrollment
from test_kiosk import StubRecognizer


class FakeSocket:
    """Async-iterable stand-in for a websockets connection."""

    def __init__(self, frames):
        self.frames = list(frames)
        self.sent = []
        self.closed = False

    def __aiter__(self):
        return self

    async def __anext__(self):
        if not self.frames:
            raise StopAsyncIteration
        return self.frames.pop(0)

    async def send(self, data):
        self.sent.append(json.loads(data))

    async def close(self):
        self.closed = True


def test_listen_dispatches_updates_and_survives_bad_frames():
    frames = [
        '{"role": "subscriber"}',
        "garbage",
        json.dumps({"type": "roster", "payload": [{"id": "EMP001"}]}),
        json.dumps({"type": "attendance-log", "payload": []}),
    ]
    handled = []

    def handler(update):
        handled.append(update.type.value)
        if len(handled) == 1:
            raise RuntimeError("handler blew up")

    client = RelayClient("ws://relay.invalid/ws")
    client.websocket = FakeSocket(frames)
    asyncio.run(client.listen(handler))

    assert handled == ["roster", "attendance-log"]


def test_send_is_drained_in_order_by_writer():
    async def scenario():
        client = RelayClient("ws://relay.invalid/ws")
        client.attach(FakeSocket([]))
        client.send({"role": "publisher"})
        client.send({"type": "roster", "payload": []})
        await asyncio.sleep(0.01)
        await client.close()
        return client.websocket

    socket = asyncio.run(scenario())
    assert socket.sent == [{"role": "publisher"}, {"type": "roster", "payload": []}]
    assert socket.closed


def roster_frame(*ids):
    return json.dumps({
        "type": "roster",
        "payload": [{"id": i, "name": i, "joinDate": "2024-01-29"} for i in ids],
    })


def test_publisher_session_is_usable_while_connected():
    incoming = json.dumps({"type": "attendance-log", "payload": [
        {"id": "ATT1", "employeeId": "EMP001", "employeeName": "John Doe", "date": "2024-01-29"},
    ]})

    async def scenario():
        client = RelayClient("ws://relay.invalid/ws")
        client.attach(FakeSocket([incoming]))
        session, listener = await start_publisher(client)

        session.begin_enrollment(PendingEnrollment(name="John Doe"))
        session.complete_enrollment('{"images": ["a"]}')
        await listener
        await asyncio.sleep(0.01)
        await client.close()
        return session, client.websocket

    session, socket = asyncio.run(scenario())

    assert socket.sent[0] == {"role": "publisher"}
    assert socket.sent[1:3] == [{"type": "roster", "payload": []}, {"type": "attendance-log", "payload": []}]
    assert socket.sent[3]["type"] == "roster"
    assert socket.sent[3]["payload"][0]["id"] == "EMP001"
    assert [r.id for r in session.attendance_records] == ["ATT1"]


def test_subscriber_mirror_applies_updates_and_shares_scans(store, frame):
    async def scenario():
        client = RelayClient("ws://relay.invalid/ws")
        client.attach(FakeSocket([roster_frame("EMP001")]))
        mirror, listener = await start_subscriber(client, store, share_attendance=True)
        await listener

        KioskScanner(mirror, StubRecognizer(match_id="EMP001")).scan(frame)
        await asyncio.sleep(0.01)
        await client.close()
        return mirror, client.websocket

    mirror, socket = asyncio.run(scenario())

    assert [e.id for e in mirror.employees] == ["EMP001"]
    assert socket.sent[0] == {"role": "subscriber"}
    assert socket.sent[-1]["type"] == "attendance-log"
    assert socket.sent[-1]["payload"][0]["employeeId"] == "EMP001"
