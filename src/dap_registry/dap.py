"""Dap — the public ``@handle/domain`` identifier.

A DAP (Decentralized Agnostic Paytag) names a registration. The string form
is::

    @<handle>/<domain>

Both segments must be non-empty and must not contain either delimiter.
Invalid strings are rejected, never repaired: no case folding or Unicode
normalization is applied.
"""
from __future__ import annotations

import re
from dataclasses import dataclass

from dap_registry.errors import MalformedIdentifier

PREFIX: str = "@"
SEPARATOR: str = "/"

_SEGMENT = f"[^{re.escape(PREFIX)}{re.escape(SEPARATOR)}]+"
_DAP_PATTERN = re.compile(
    rf"{re.escape(PREFIX)}(?P<handle>{_SEGMENT}){re.escape(SEPARATOR)}(?P<domain>{_SEGMENT})"
)


@dataclass(frozen=True)
class Dap:
    """An immutable handle/domain pair.

    Parameters
    ----------
    handle:
        The local handle, e.g. ``"alice"``.
    domain:
        The domain the handle is scoped to, e.g. ``"example.com"``.
    """

    handle: str
    domain: str

    def __str__(self) -> str:
        return f"{PREFIX}{self.handle}{SEPARATOR}{self.domain}"

    @classmethod
    def parse(cls, dap: str) -> "Dap":
        """Parse a ``@handle/domain`` string.

        Raises
        ------
        MalformedIdentifier
            If *dap* does not match the grammar exactly.
        """
        match = _DAP_PATTERN.fullmatch(dap) if isinstance(dap, str) else None
        if match is None:
            raise MalformedIdentifier()
        return cls(handle=match.group("handle"), domain=match.group("domain"))

    @staticmethod
    def is_valid_segment(segment: str) -> bool:
        """Return True if *segment* can be used as a handle or domain."""
        return bool(segment) and PREFIX not in segment and SEPARATOR not in segment


__all__ = ["Dap", "PREFIX", "SEPARATOR"]
