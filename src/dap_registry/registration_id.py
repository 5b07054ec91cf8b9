"""RegistrationId — time-embedding identifiers for DAP registrations.

Identifiers follow the TypeID format::

    reg_01h455vb4pex5vsknk084sn02q
    └┬┘ └────────────┬───────────┘
    tag   26 chars, Crockford base32 of a 128-bit UUIDv7

UUIDv7 layout
-------------
- bits 0-47:   Unix timestamp in milliseconds (big-endian)
- bits 48-51:  version (``0b0111``)
- bits 52-63:  random
- bits 64-65:  variant (``0b10``)
- bits 66-127: random

The random bits provide uniqueness between identifiers created within the
same millisecond; they are not a secret.

Base32 encoding
---------------
The 128-bit value is encoded as 26 characters of the lowercase Crockford
alphabet. 26 characters carry 130 bits, so the first character is always in
``0``–``7``; anything higher would overflow and is rejected when parsing.
"""
from __future__ import annotations

import datetime
import secrets
import time
import uuid
from dataclasses import dataclass

from dap_registry.errors import InvalidRegistrationId

TYPE_TAG: str = "reg"

_ALPHABET: str = "0123456789abcdefghjkmnpqrstvwxyz"
_DECODE: dict[str, int] = {char: index for index, char in enumerate(_ALPHABET)}
_SUFFIX_LENGTH: int = 26
_TIMESTAMP_BITS: int = 48
_MAX_TIMESTAMP_MS: int = (1 << _TIMESTAMP_BITS) - 1


def _now_ms() -> int:
    """Current wall-clock time in milliseconds since the Unix epoch."""
    return time.time_ns() // 1_000_000


def _encode_base32(value: int) -> str:
    chars: list[str] = []
    for _ in range(_SUFFIX_LENGTH):
        value, remainder = divmod(value, 32)
        chars.append(_ALPHABET[remainder])
    return "".join(reversed(chars))


def _decode_base32(encoded: str) -> int:
    if len(encoded) != _SUFFIX_LENGTH:
        raise InvalidRegistrationId(
            f"Invalid length: suffix must be {_SUFFIX_LENGTH} characters, "
            f"got {len(encoded)}"
        )
    value = 0
    for char in encoded:
        digit = _DECODE.get(char)
        if digit is None:
            raise InvalidRegistrationId(f"Invalid suffix character {char!r}")
        value = (value << 5) | digit
    if value >> 128:
        raise InvalidRegistrationId("Invalid suffix: value exceeds 128 bits")
    return value


@dataclass(frozen=True)
class RegistrationId:
    """A globally unique, time-embedding registration identifier.

    Use :meth:`create` for new identifiers and :meth:`parse` for strings
    received from a client. Two identifiers compare equal when their
    underlying UUIDs are equal.
    """

    uuid: uuid.UUID

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------

    @classmethod
    def create(cls, timestamp_ms: int | None = None) -> "RegistrationId":
        """Create a new identifier stamped with the current time.

        Parameters
        ----------
        timestamp_ms:
            Override for the embedded timestamp. Defaults to the wall clock.
        """
        if timestamp_ms is None:
            timestamp_ms = _now_ms()
        if not 0 <= timestamp_ms <= _MAX_TIMESTAMP_MS:
            raise ValueError(f"timestamp_ms {timestamp_ms} does not fit in 48 bits")

        rand_a = secrets.randbits(12)
        rand_b = secrets.randbits(62)
        value = (
            (timestamp_ms << 80)
            | (0x7 << 76)
            | (rand_a << 64)
            | (0b10 << 62)
            | rand_b
        )
        return cls(uuid=uuid.UUID(int=value))

    @classmethod
    def parse(cls, registration_id: str) -> "RegistrationId":
        """Parse a ``reg_...`` string.

        Raises
        ------
        InvalidRegistrationId
            If the tag is not ``reg``, the suffix has the wrong length, or
            the suffix is not valid lowercase base32.
        """
        if not isinstance(registration_id, str):
            raise InvalidRegistrationId("Registration ID must be a string")

        tag, separator, suffix = registration_id.rpartition("_")
        if not separator or tag != TYPE_TAG:
            raise InvalidRegistrationId(f'Registration ID prefix must be "{TYPE_TAG}"')

        return cls(uuid=uuid.UUID(int=_decode_base32(suffix)))

    # ------------------------------------------------------------------
    # Timestamp
    # ------------------------------------------------------------------

    def extract_timestamp(self) -> int:
        """Return the embedded timestamp in milliseconds since the epoch."""
        return self.uuid.int >> (128 - _TIMESTAMP_BITS)

    def extract_date(self) -> datetime.datetime:
        """Return the embedded timestamp as a timezone-aware UTC datetime."""
        return datetime.datetime(1970, 1, 1, tzinfo=datetime.timezone.utc) + datetime.timedelta(
            milliseconds=self.extract_timestamp()
        )

    # ------------------------------------------------------------------
    # Serialization
    # ------------------------------------------------------------------

    def __str__(self) -> str:
        return f"{TYPE_TAG}_{_encode_base32(self.uuid.int)}"


__all__ = ["RegistrationId", "TYPE_TAG"]
