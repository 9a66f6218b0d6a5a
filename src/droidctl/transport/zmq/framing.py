"""ZMQ multipart framing for protocol events.

Controller <-> remote engine (DEALER<->ROUTER)
    (optional routing prefix...), version, type, body

The body encoding depends on the frame type:

    HELLO, CONNECTED, READY, RUNNING      empty
    RESULT                                JSON object {"code": int, "info": str|null}
    RESULTPROPS, DISPATCH                 JSON object of string values
    EXCEPTION, MESSAGE, DEBUG             UTF-8 text
    DISPATCHFILE                          UTF-8 file path
    SHUTDOWN, REMOTESHUTDOWN              ASCII integer cause (may be empty)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Sequence, Tuple

from ... import fields
from ... import json
from ...message import Message


logger = logging.getLogger(__name__)

_VERSION_BYTES = fields.PROTOCOL_VERSION.encode()

_EMPTY = (fields.HELLO, fields.CONNECTED, fields.READY, fields.RUNNING)
_TEXT = (fields.EXCEPTION, fields.MESSAGE, fields.DEBUG, fields.DISPATCHFILE)
_PROPERTIES = (fields.RESULTPROPS, fields.DISPATCH)
_CAUSE = (fields.SHUTDOWN, fields.REMOTESHUTDOWN)


class FramingError(ValueError):
    """A frame could not be encoded or decoded."""


class VersionMismatch(FramingError):
    """The remote side speaks a different protocol version."""


@dataclass
class Frame:
    """One decoded protocol event.

    ``value`` holds the decoded body: None, a string, a :class:`Message`, an
    integer cause, or a ``(code, info)`` tuple for RESULT frames. ``raw`` is
    the undecoded body, retained for error reporting.
    """

    frame_type: str
    value: Any = None
    raw: bytes = b""
    prefix: Tuple[bytes, ...] = ()


def encode_body(frame_type: str, value: Any) -> bytes:
    """Encode *value* as the body of a *frame_type* frame."""

    if frame_type in _EMPTY:
        return b""

    if frame_type in _TEXT:
        return ("" if value is None else str(value)).encode()

    if frame_type in _PROPERTIES:
        return json.dumps(Message(value).to_dict())

    if frame_type in _CAUSE:
        if value is None:
            return b""
        return str(int(value)).encode()

    if frame_type == fields.RESULT:
        code, info = value
        return json.dumps({"code": int(code), "info": info})

    raise FramingError(f"unknown frame type: {frame_type!r}")


def to_frames(frame_type: str, value: Any = None, prefix: Tuple[bytes, ...] = ()) -> Tuple[bytes, ...]:
    """Encode one protocol event as ZMQ multipart frames."""

    body = encode_body(frame_type, value)
    return prefix + (_VERSION_BYTES, frame_type.encode(), body)


def _decode_body(frame_type: str, body: bytes) -> Any:

    if frame_type in _EMPTY:
        return None

    if frame_type in _TEXT:
        return body.decode()

    if frame_type in _PROPERTIES:
        try:
            return Message(json.loads_object(body, f"{frame_type} body"))
        except (TypeError, ValueError) as exc:
            raise FramingError(f"{frame_type}: {exc}") from exc

    if frame_type in _CAUSE:
        text = body.decode().strip()
        if text == "":
            return fields.CAUSE_UNKNOWN
        try:
            return int(text)
        except ValueError as exc:
            raise FramingError(f"{frame_type}: invalid shutdown cause {text!r}") from exc

    if frame_type == fields.RESULT:
        try:
            decoded = json.loads(body)
            code = int(decoded["code"])
            info = decoded.get("info")
        except (json.DecodeError, ValueError, TypeError, KeyError, AttributeError) as exc:
            raise FramingError(f"{frame_type}: invalid result body") from exc
        if info is not None:
            info = str(info)
        return (code, info)

    return body.decode(errors="replace")


def from_frames(parts: Sequence[bytes], routed: bool = False) -> Frame:
    """Decode multipart *parts* into a :class:`Frame`.

    If *routed* is True the first part is a ROUTER identity prefix, which is
    kept as ``Frame.prefix``. A version mismatch raises :class:`FramingError`;
    so does a body that cannot be decoded for a known frame type. An unknown
    frame type is not an error: its body is returned as text.
    """

    if routed:
        if len(parts) < 1:
            raise FramingError("empty message")
        prefix: Tuple[bytes, ...] = (parts[0],)
        parts = parts[1:]
    else:
        prefix = ()

    if len(parts) < 2:
        raise FramingError("truncated message")

    their_version = parts[0]
    if their_version != _VERSION_BYTES:
        raise VersionMismatch(
            f"message is protocol {their_version!r}, recipient expects {_VERSION_BYTES!r}"
        )

    frame_type = parts[1].decode(errors="replace")
    body = parts[2] if len(parts) > 2 else b""

    value = _decode_body(frame_type, body)
    return Frame(frame_type=frame_type, value=value, raw=body, prefix=prefix)


def describe(parts: Sequence[bytes]) -> str:
    """Best-effort text rendering of undecodable frames, for reporting."""

    return " ".join(part.decode(errors="replace") for part in parts)
