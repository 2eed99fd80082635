from __future__ import annotations

import logging

import pytest

from battlewatch.identity import (
    UNKNOWN_NAME,
    decode_name,
    decode_short_string,
    encode_short_string,
)


class TestDecodeName:
    def test_decodes_hex_short_string(self) -> None:
        assert decode_name("0x416c696365") == "Alice"

    def test_decodes_decimal_short_string(self) -> None:
        assert decode_name(str(int("416c696365", 16))) == "Alice"

    def test_decodes_int_value(self) -> None:
        assert decode_name(0x53746F6E65686F6C64) == "Stonehold"

    def test_uppercase_prefix_and_whitespace(self) -> None:
        assert decode_name("  0X426F62 ") == "Bob"

    def test_zero_is_empty_name(self) -> None:
        assert decode_name("0x0") == ""

    def test_max_length_name(self) -> None:
        name = "A" * 31
        assert decode_name(encode_short_string(name)) == name

    @pytest.mark.parametrize(
        "packed",
        [
            None,
            "",
            "   ",
            "not-a-name",
            "0xzz",
            "-5",
            -5,
            True,
            1.5,
            ["0x41"],
            "0x" + "41" * 32,  # 32 bytes is one too many
            "0x00ff41",  # non-ASCII byte
            "0x410a42",  # newline is not printable
        ],
    )
    def test_malformed_input_returns_sentinel(self, packed) -> None:
        assert decode_name(packed) == UNKNOWN_NAME

    def test_failure_is_logged(self, caplog) -> None:
        with caplog.at_level(logging.DEBUG, logger="battlewatch.identity"):
            decode_name("garbage")
        assert "Unable to decode packed name" in caplog.text


class TestDecodeShortString:
    def test_raises_on_malformed(self) -> None:
        with pytest.raises(ValueError):
            decode_short_string("0xzz")

    def test_encode_rejects_long_text(self) -> None:
        with pytest.raises(ValueError):
            encode_short_string("x" * 32)

    def test_encode_empty(self) -> None:
        assert encode_short_string("") == "0x0"
