"""Decoding of packed player and realm names.

The feed stores names as Cairo short strings: up to 31 ASCII characters
packed big-endian into a single field element, served either as a
``0x``-prefixed hex string or as a decimal string.

Only printable ASCII is accepted: a value carrying control or non-ASCII
bytes decodes to ``UNKNOWN_NAME`` here, whereas starknet.js' ``shortString``
helpers would return those bytes as-is.
"""

from __future__ import annotations

import logging
from typing import Any

LOGGER = logging.getLogger(__name__)

UNKNOWN_NAME = "Unknown"

SHORT_STRING_MAX_BYTES = 31


def _to_int(packed: Any) -> int:
    if isinstance(packed, bool):
        raise ValueError("boolean is not a packed name")
    if isinstance(packed, int):
        return packed
    if not isinstance(packed, str):
        raise ValueError(f"unsupported packed name type {type(packed).__name__}")
    text = packed.strip()
    if not text:
        raise ValueError("empty packed name")
    if text.lower().startswith("0x"):
        return int(text[2:] or "0", 16)
    if text.isdecimal():
        return int(text)
    raise ValueError("packed name is neither hex nor decimal")


def decode_short_string(packed: Any) -> str:
    """Decode a Cairo short string, raising ValueError on malformed input."""
    value = _to_int(packed)
    if value < 0:
        raise ValueError("packed name is negative")
    if value == 0:
        return ""
    length = (value.bit_length() + 7) // 8
    if length > SHORT_STRING_MAX_BYTES:
        raise ValueError(f"packed name exceeds {SHORT_STRING_MAX_BYTES} bytes")
    raw = value.to_bytes(length, "big")
    if any(byte < 0x20 or byte > 0x7E for byte in raw):
        raise ValueError("packed name contains non-printable bytes")
    return raw.decode("ascii")


def decode_name(packed: Any) -> str:
    """Return the display form of a packed name, or ``UNKNOWN_NAME`` if it is malformed."""
    try:
        return decode_short_string(packed)
    except (ValueError, OverflowError) as exc:
        LOGGER.debug("Unable to decode packed name %r: %s", packed, exc)
        return UNKNOWN_NAME


def encode_short_string(text: str) -> str:
    """Pack ``text`` into the hex form used by the feed."""
    raw = text.encode("ascii")
    if len(raw) > SHORT_STRING_MAX_BYTES:
        raise ValueError(f"short string exceeds {SHORT_STRING_MAX_BYTES} bytes")
    return hex(int.from_bytes(raw, "big")) if raw else "0x0"


__all__ = ["UNKNOWN_NAME", "decode_name", "decode_short_string", "encode_short_string"]
