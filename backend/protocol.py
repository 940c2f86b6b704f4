"""
Wire protocol shared by the relay, the admin panel and the kiosk.

Two message kinds travel over the socket as JSON text frames:
  - snapshot request: {"role": "publisher" | "subscriber"}
  - state update:     {"type": "roster" | "attendance-log", "payload": [...]}

A state update always carries the complete collection. A newer update of
the same kind supersedes every older one; recipients replace, never merge.
"""
import json
from enum import Enum
from typing import Any, Iterable, List, Union

from pydantic import BaseModel


class Role(str, Enum):
    PUBLISHER = "publisher"
    SUBSCRIBER = "subscriber"


class CollectionKind(str, Enum):
    ROSTER = "roster"
    ATTENDANCE_LOG = "attendance-log"


class ProtocolError(ValueError):
    """Raised when an inbound frame is not a valid protocol message."""


class SnapshotRequest(BaseModel):
    role: Role

    def to_wire(self) -> dict:
        return {"role": self.role.value}


class StateUpdate(BaseModel):
    type: CollectionKind
    payload: List[Any]

    def to_wire(self) -> dict:
        return {"type": self.type.value, "payload": self.payload}


Message = Union[SnapshotRequest, StateUpdate]


def snapshot_request(role: Role) -> dict:
    return SnapshotRequest(role=role).to_wire()


def state_update(kind: CollectionKind, entries: Iterable[Any]) -> dict:
    """Build a full-collection update. Pydantic entries are dumped by alias."""
    payload = [
        entry.model_dump(by_alias=True) if isinstance(entry, BaseModel) else entry
        for entry in entries
    ]
    return StateUpdate(type=kind, payload=payload).to_wire()


def parse_message(raw: Union[str, bytes, dict]) -> Message:
    """
    Decode one inbound frame.

    Only the envelope is checked: known role or collection kind, and a list
    payload. Entries themselves are opaque at this layer.

    Raises:
        ProtocolError: if the frame is not JSON or not one of the two kinds.
    """
    if isinstance(raw, (str, bytes)):
        try:
            data = json.loads(raw)
        except ValueError as e:
            raise ProtocolError(f"Invalid JSON frame: {e}") from e
    else:
        data = raw

    if not isinstance(data, dict):
        raise ProtocolError("Frame must be a JSON object")

    if "role" in data:
        try:
            role = Role(data["role"])
        except ValueError:
            raise ProtocolError(f"Unknown role: {data['role']!r}")
        return SnapshotRequest(role=role)

    if "type" in data:
        try:
            kind = CollectionKind(data["type"])
        except ValueError:
            raise ProtocolError(f"Unknown collection kind: {data['type']!r}")
        payload = data.get("payload")
        if not isinstance(payload, list):
            raise ProtocolError(f"Payload for {kind.value} must be a list")
        return StateUpdate(type=kind, payload=payload)

    raise ProtocolError("Frame is neither a snapshot request nor a state update")
