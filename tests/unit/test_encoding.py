"""Tests for dap_registry.encoding."""
from __future__ import annotations

import pytest

from dap_registry.encoding import (
    b64url_decode,
    b64url_encode,
    base58btc_decode,
    base58btc_encode,
)


class TestBase64Url:
    def test_encode_strips_padding(self) -> None:
        assert b64url_encode(b"a") == "YQ"
        assert b64url_encode(b"\xfb\xff") == "-_8"

    def test_decode(self) -> None:
        assert b64url_decode("YQ") == b"a"
        assert b64url_decode("-_8") == b"\xfb\xff"
        assert b64url_decode("") == b""

    @pytest.mark.parametrize("value", ["YQ==", "+/8", "a"])
    def test_decode_rejects_invalid_input(self, value: str) -> None:
        with pytest.raises(ValueError):
            b64url_decode(value)


class TestBase58Btc:
    def test_known_value(self) -> None:
        assert base58btc_encode(b"hello world") == "StV1DL6CwTryKyV"
        assert base58btc_decode("StV1DL6CwTryKyV") == b"hello world"

    def test_leading_zero_bytes_preserved(self) -> None:
        encoded = base58btc_encode(b"\x00\x00\x01")
        assert encoded == "112"
        assert base58btc_decode(encoded) == b"\x00\x00\x01"

    def test_empty(self) -> None:
        assert base58btc_encode(b"") == ""
        assert base58btc_decode("") == b""

    @pytest.mark.parametrize("value", ["0", "O", "I", "l"])
    def test_decode_rejects_characters_outside_alphabet(self, value: str) -> None:
        with pytest.raises(ValueError):
            base58btc_decode(value)
