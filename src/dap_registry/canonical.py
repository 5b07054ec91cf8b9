"""Canonical JSON encoding and digests.

:func:`canonicalize` produces the JSON Canonicalization Scheme encoding
(RFC 8785, https://www.rfc-editor.org/rfc/rfc8785) via the ``rfc8785``
package: no insignificant whitespace, object members sorted by the UTF-16
code units of their names, and numbers laid out as ECMAScript would.

:func:`digest` is SHA-256 over the canonical bytes. Both functions are pure.
"""
from __future__ import annotations

import hashlib

import rfc8785

from dap_registry.errors import CanonicalizationError


def canonicalize(value: object) -> bytes:
    """Return the RFC 8785 canonical UTF-8 encoding of *value*.

    Parameters
    ----------
    value:
        A JSON-compatible value: ``dict`` (string keys), ``list``/``tuple``,
        ``str``, ``int``, ``float``, ``bool`` or ``None``.

    Raises
    ------
    CanonicalizationError
        If *value* contains a non-finite float, an integer outside the
        IEEE-754 safe range, a non-string key, an unencodable string, or a
        type that has no JSON representation.
    """
    try:
        return rfc8785.dumps(value)
    except rfc8785.CanonicalizationError as exc:
        raise CanonicalizationError(f"Cannot canonicalize value: {exc}") from exc
    except UnicodeEncodeError as exc:
        raise CanonicalizationError(f"Invalid string: {exc.reason}") from exc


def digest(value: object) -> bytes:
    """Return the 32-byte SHA-256 digest of ``canonicalize(value)``."""
    return hashlib.sha256(canonicalize(value)).digest()


__all__ = ["canonicalize", "digest"]
