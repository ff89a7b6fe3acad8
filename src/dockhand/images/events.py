"""Decoding of the engine's streamed progress output.

The engine reports pull and build progress as JSON messages, one per line,
and reports failures in-band in the same stream. A message is an error only
if it carries an ``errorDetail`` field. Plain text lines are interleaved with
the JSON ones and are passed through as progress.
"""

import json
from dataclasses import dataclass
from enum import Enum
from typing import Any, List

ERROR_DETAIL_FIELD = "errorDetail"


class StreamEventKind(str, Enum):
    PROGRESS = "progress"
    ERROR = "error"


@dataclass(frozen=True)
class StreamEvent:
    """One decoded unit of engine output.

    Attributes:
        kind (StreamEventKind): Whether the event reports progress or an error.
        payload (Any): The decoded JSON value or raw text for progress events,
            the engine's error message for error events.
    """

    kind: StreamEventKind
    payload: Any

    @property
    def is_error(self) -> bool:
        return self.kind == StreamEventKind.ERROR


def error_message(message: Any) -> str | None:
    """Returns the error text carried by a decoded message, or None.

    Pure function over decoded data; ``message`` is whatever ``json.loads``
    produced for one line of engine output.
    """
    if not isinstance(message, dict) or ERROR_DETAIL_FIELD not in message:
        return None

    detail = message[ERROR_DETAIL_FIELD]
    if isinstance(detail, dict) and detail.get("message"):
        return str(detail["message"])
    if isinstance(detail, str) and detail:
        return detail
    if message.get("error"):
        return str(message["error"])
    return json.dumps(detail)


def parse_chunk(chunk: Any) -> List[StreamEvent]:
    """Decodes one chunk of engine output into stream events.

    A chunk usually holds one JSON message but may hold several, one per
    line. Never raises: anything that doesn't decode is reported as a
    progress event carrying the raw text.
    """
    if isinstance(chunk, dict):
        return [_classify(chunk)]

    if isinstance(chunk, (bytes, bytearray)):
        text = bytes(chunk).decode("utf-8", errors="replace")
    else:
        text = str(chunk)

    text = text.strip()
    if not text:
        return []

    decoded = _decode(text)
    if decoded is not None:
        return [_classify(decoded[0])]

    events = []
    for line in text.splitlines():
        line = line.strip()
        if not line:
            continue
        decoded = _decode(line)
        if decoded is None:
            events.append(StreamEvent(StreamEventKind.PROGRESS, line))
        else:
            events.append(_classify(decoded[0]))
    return events


def describe_progress(payload: Any) -> str:
    """Renders a progress payload as a single human readable line."""
    if not isinstance(payload, dict):
        return str(payload).rstrip()

    if "stream" in payload:
        return str(payload["stream"]).rstrip()

    parts = []
    if payload.get("id"):
        parts.append(f"{payload['id']}:")
    if payload.get("status"):
        parts.append(str(payload["status"]))
    if payload.get("progress"):
        parts.append(str(payload["progress"]))
    if parts:
        return " ".join(parts)

    return json.dumps(payload)


def _classify(message: Any) -> StreamEvent:
    text = error_message(message)
    if text is not None:
        return StreamEvent(StreamEventKind.ERROR, text)
    return StreamEvent(StreamEventKind.PROGRESS, message)


def _decode(text: str) -> tuple[Any] | None:
    # Wrapped in a tuple so that a JSON "null" is distinguishable from failure.
    try:
        return (json.loads(text),)
    except (ValueError, RecursionError):
        return None
