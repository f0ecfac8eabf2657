"""Text helpers for displaying received data and framing outgoing messages."""

from __future__ import annotations

import datetime
import struct
from typing import Callable, Union

ENCODING = "utf-8"
TIME_FORMAT = "%H:%M:%S"

Clock = Callable[[], Union[datetime.time, datetime.datetime]]


def to_hex(text: str) -> str:
    """Render each Latin-1 byte of ``text`` as two lowercase hex digits and a space.

    Characters outside Latin-1 become ``?`` first, as they would in a Latin-1 view.
    """
    raw = text.encode("latin-1", errors="replace")
    return "".join(f"{byte:02x} " for byte in raw)


def _peer_label(ip: str, port: int, show_ip: bool, show_port: bool) -> str:
    if show_ip and show_port:
        return f"({ip}:{port})"
    if show_port:
        return f"({port})"
    if show_ip:
        return f"({ip})"
    return ""


def format_received(
    data: str,
    ip: str,
    port: int,
    show_time: bool = False,
    show_ip: bool = False,
    show_port: bool = False,
    as_hex: bool = False,
    clock: Clock | None = None,
) -> str:
    """Build the display line for a received chunk.

    The line is ``<time><(peer)>:<data>`` where the prefix parts are optional;
    without any prefix the data stands alone.
    """
    if show_time:
        now = (clock or datetime.datetime.now)()
        stamp = now.strftime(TIME_FORMAT)
    else:
        stamp = ""
    if as_hex:
        data = to_hex(data)
    prefix = stamp + _peer_label(ip, port, show_ip, show_port)
    return f"{prefix}:{data}" if prefix else data


def frame_message(data: str | bytes, length_prefix: bool = False) -> bytes:
    """Encode ``data`` for sending, optionally behind a big-endian 32-bit length."""
    payload = bytes(data) if isinstance(data, (bytes, bytearray)) else data.encode(ENCODING)
    if length_prefix:
        return struct.pack(">I", len(payload)) + payload
    return payload