"""Byte-to-text codecs shared by the DID and signature modules.

base64url
    RFC 4648 §5 alphabet without padding, as used by JWS and JWK.
base58btc
    The Bitcoin alphabet, as used by multibase ``z`` strings in ``did:key``.
"""
from __future__ import annotations

import base64
import binascii

_BASE58_ALPHABET: str = "123456789ABCDEFGHJKLMNPQRSTUVWXYZabcdefghijkmnopqrstuvwxyz"
_BASE58_INDEX: dict[str, int] = {char: i for i, char in enumerate(_BASE58_ALPHABET)}


def b64url_encode(data: bytes) -> str:
    """Encode *data* as unpadded base64url."""
    return base64.urlsafe_b64encode(data).rstrip(b"=").decode("ascii")


def b64url_decode(encoded: str) -> bytes:
    """Decode an unpadded base64url string.

    Raises
    ------
    ValueError
        If *encoded* contains characters outside the base64url alphabet or
        has an impossible length.
    """
    if "=" in encoded or "+" in encoded or "/" in encoded:
        raise ValueError("base64url input must be unpadded and use the URL-safe alphabet")
    padding = "=" * (-len(encoded) % 4)
    try:
        return base64.urlsafe_b64decode((encoded + padding).encode("ascii"))
    except (binascii.Error, UnicodeEncodeError) as exc:
        raise ValueError(f"Invalid base64url input: {exc}") from exc


def base58btc_encode(data: bytes) -> str:
    """Encode *data* with the base58btc alphabet, keeping leading zero bytes."""
    n = int.from_bytes(data, "big")
    out: list[str] = []
    while n:
        n, remainder = divmod(n, 58)
        out.append(_BASE58_ALPHABET[remainder])
    leading_zeros = len(data) - len(data.lstrip(b"\x00"))
    return "1" * leading_zeros + "".join(reversed(out))


def base58btc_decode(encoded: str) -> bytes:
    """Decode a base58btc string.

    Raises
    ------
    ValueError
        If *encoded* contains a character outside the alphabet.
    """
    n = 0
    for char in encoded:
        digit = _BASE58_INDEX.get(char)
        if digit is None:
            raise ValueError(f"Invalid base58btc character {char!r}")
        n = n * 58 + digit
    body = n.to_bytes((n.bit_length() + 7) // 8, "big") if n else b""
    leading_ones = len(encoded) - len(encoded.lstrip("1"))
    return b"\x00" * leading_ones + body


__all__ = [
    "b64url_decode",
    "b64url_encode",
    "base58btc_decode",
    "base58btc_encode",
]
