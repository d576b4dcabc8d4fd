"""
Wire encoding for the push feed.

Events and dashboard snapshots are encoded as JSON and framed as
``text/event-stream`` messages: one ``event:`` line, one ``data:`` line per
line of payload, and a terminating blank line.
"""

import json
import re
from typing import Union

from ..models import ChallengeEvent, DashboardSnapshot
from .exceptions import SerializationError

EVENT_DASHBOARD = "dashboard"
EVENT_CHALLENGE = "challenge"

# Event-stream line terminators. Other Unicode line breaks stay inside a data line.
_LINE_BREAK = re.compile(r"\r\n|\r|\n")


def encode_event(event: ChallengeEvent) -> bytes:
    """Serialize an event to a JSON payload."""
    try:
        return json.dumps(event.to_dict(), ensure_ascii=False).encode("utf-8")
    except (TypeError, ValueError) as e:
        raise SerializationError(f"event {event.challenge_id!r}", e) from e


def encode_dashboard(snapshot: DashboardSnapshot) -> bytes:
    """Serialize a dashboard snapshot to a JSON payload."""
    try:
        return snapshot.model_dump_json().encode("utf-8")
    except (TypeError, ValueError) as e:
        raise SerializationError(f"dashboard {snapshot.run_id!r}", e) from e


def format_sse(event: str, data: Union[bytes, str]) -> bytes:
    """Frame one payload as a single event-stream message."""
    if isinstance(data, bytes):
        data = data.decode("utf-8")
    lines = _LINE_BREAK.split(data)
    if lines[-1] == "" and len(lines) > 1:
        lines.pop()
    frame = [f"event: {event}"]
    frame.extend(f"data: {line}" for line in lines)
    return ("\n".join(frame) + "\n\n").encode("utf-8")
