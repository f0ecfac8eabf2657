import datetime
import struct

import pytest

from baanetkit.codec import format_received, frame_message, to_hex


def test_to_hex_pinned_value():
    assert to_hex("hi") == "68 69 "


@pytest.mark.parametrize("text", ["", "abc", "Hello, World!", "\x00\xff\x7f"])
def test_to_hex_round_trips_latin1(text):
    assert bytes.fromhex(to_hex(text)) == text.encode("latin-1")


def test_to_hex_three_chars_per_byte():
    text = "network"
    assert len(to_hex(text)) == 3 * len(text)


def test_to_hex_replaces_non_latin1():
    assert to_hex("\u4e2d") == to_hex("?")


def test_format_received_plain_data():
    assert format_received("payload", "10.0.0.1", 80) == "payload"


def test_format_received_ip_and_port():
    line = format_received("x", "10.0.0.1", 8080, show_ip=True, show_port=True)
    assert line == "(10.0.0.1:8080):x"


def test_format_received_ip_only():
    line = format_received("x", "10.0.0.1", 8080, show_ip=True)
    assert line == "(10.0.0.1):x"


def test_format_received_port_only():
    line = format_received("x", "10.0.0.1", 8080, show_port=True)
    assert line == "(8080):x"


def test_format_received_time_uses_clock():
    line = format_received(
        "x", "10.0.0.1", 1, show_time=True, clock=lambda: datetime.time(9, 5, 7)
    )
    assert line == "09:05:07:x"


def test_format_received_time_then_peer():
    clock = lambda: datetime.datetime(2020, 1, 1, 23, 59, 1)  # noqa: E731
    line = format_received(
        "x", "1.2.3.4", 9, show_time=True, show_ip=True, show_port=True, clock=clock
    )
    assert line.startswith("23:59:01(1.2.3.4:9)")
    assert line.endswith(":x")


def test_format_received_hex():
    line = format_received("hi", "1.2.3.4", 9, as_hex=True)
    assert line == to_hex("hi")


def test_frame_message_without_prefix():
    assert frame_message("abc") == "abc".encode()


def test_frame_message_length_prefix():
    text = "h\u00e9llo"
    framed = frame_message(text, length_prefix=True)
    payload = text.encode("utf-8")
    assert struct.unpack(">I", framed[:4])[0] == len(payload)
    assert framed[4:] == payload


def test_frame_message_empty_prefix_is_zero():
    assert frame_message("", length_prefix=True) == b"\x00\x00\x00\x00"


def test_frame_message_accepts_bytes():
    assert frame_message(b"\x01\x02", length_prefix=True)[4:] == b"\x01\x02"