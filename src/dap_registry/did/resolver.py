"""Resolution of self-certifying DIDs.

Only methods whose public key is recoverable from the DID string itself are
supported, so no network access or external registry is involved:

``did:jwk``
    ``did:jwk:<base64url(JSON public JWK)>``; the single verification
    method is ``#0``. See https://github.com/quartzjer/did-jwk.
``did:key``
    ``did:key:z<base58btc(0xed01 || public key)>``; the verification method
    fragment is the multibase value. See https://w3c-ccg.github.io/did-method-key/.

Both methods are restricted to Ed25519 keys.
"""
from __future__ import annotations

import json
import re

from dap_registry.did.key_manager import KEY_SIZE, Ed25519KeyManager
from dap_registry.encoding import (
    b64url_decode,
    b64url_encode,
    base58btc_decode,
    base58btc_encode,
)

SUPPORTED_METHODS: tuple[str, ...] = ("jwk", "key")

_ED25519_MULTICODEC_PREFIX: bytes = b"\xed\x01"
_DID_PATTERN = re.compile(r"did:(?P<method>[a-z0-9]+):(?P<identifier>[^#?/]+)")

_DOCUMENT_CONTEXT: list[str] = [
    "https://www.w3.org/ns/did/v1",
    "https://w3id.org/security/suites/jws-2020/v1",
]
_VERIFICATION_RELATIONSHIPS: tuple[str, ...] = (
    "authentication",
    "assertionMethod",
    "capabilityInvocation",
    "capabilityDelegation",
)

_key_manager = Ed25519KeyManager()


class DidResolutionError(ValueError):
    """Raised when a DID cannot be resolved to an Ed25519 public key."""


# ------------------------------------------------------------------
# DID URL handling
# ------------------------------------------------------------------


def split_did_url(did_url: str) -> tuple[str, str | None]:
    """Split ``did:...#fragment`` into ``(did, fragment)``.

    Raises
    ------
    DidResolutionError
        If the part before ``#`` is not a syntactically valid DID.
    """
    did, _, fragment = did_url.partition("#")
    if not _DID_PATTERN.fullmatch(did):
        raise DidResolutionError(f"Malformed DID {did!r}")
    return did, fragment or None


def did_method(did: str) -> str:
    """Return the method name of *did*, e.g. ``"jwk"``."""
    did, _ = split_did_url(did)
    return did.split(":", 2)[1]


# ------------------------------------------------------------------
# Creation
# ------------------------------------------------------------------


def did_for_public_key(method: str, public_key: bytes) -> str:
    """Encode an Ed25519 public key as a DID of the given *method*.

    Raises
    ------
    DidResolutionError
        If *method* is not one of :data:`SUPPORTED_METHODS`.
    """
    if method == "jwk":
        jwk = _key_manager.to_jwk(public_key)
        encoded = json.dumps(jwk, sort_keys=True, separators=(",", ":")).encode("utf-8")
        return f"did:jwk:{b64url_encode(encoded)}"
    if method == "key":
        return f"did:key:z{base58btc_encode(_ED25519_MULTICODEC_PREFIX + public_key)}"
    raise DidResolutionError(
        f"Unsupported DID method {method!r}. Supported: {', '.join(SUPPORTED_METHODS)}"
    )


def verification_method_id(did: str) -> str:
    """Return the fully qualified id of *did*'s only verification method."""
    did, _ = split_did_url(did)
    method = did_method(did)
    if method == "jwk":
        return f"{did}#0"
    if method == "key":
        return f"{did}#{did[len('did:key:'):]}"
    raise DidResolutionError(f"Unsupported DID method {method!r}")


# ------------------------------------------------------------------
# Resolution
# ------------------------------------------------------------------


def resolve_public_key(did_url: str) -> bytes:
    """Recover the raw Ed25519 public key named by *did_url*.

    A fragment, when present, must name the DID's verification method.

    Raises
    ------
    DidResolutionError
        If the DID is malformed, uses an unsupported method or key type, or
        the fragment does not identify its verification method.
    """
    did, fragment = split_did_url(did_url)
    method = did_method(did)
    identifier = did.split(":", 2)[2]

    if method == "jwk":
        public_key = _decode_did_jwk(identifier)
    elif method == "key":
        public_key = _decode_did_key(identifier)
    else:
        raise DidResolutionError(
            f"Unsupported DID method {method!r}. Supported: {', '.join(SUPPORTED_METHODS)}"
        )

    if fragment is not None and f"{did}#{fragment}" != verification_method_id(did):
        raise DidResolutionError(f"Unknown verification method {did_url!r}")
    return public_key


def resolve(did: str) -> dict[str, object]:
    """Build the W3C DID document for a ``did:jwk`` or ``did:key`` DID."""
    did, _ = split_did_url(did)
    public_key = resolve_public_key(did)
    vm_id = verification_method_id(did)
    document: dict[str, object] = {
        "@context": list(_DOCUMENT_CONTEXT),
        "id": did,
        "verificationMethod": [
            {
                "id": vm_id,
                "type": "JsonWebKey2020",
                "controller": did,
                "publicKeyJwk": _key_manager.to_jwk(public_key),
            }
        ],
    }
    for relationship in _VERIFICATION_RELATIONSHIPS:
        document[relationship] = [vm_id]
    return document


def _decode_did_jwk(identifier: str) -> bytes:
    try:
        jwk = json.loads(b64url_decode(identifier))
    except ValueError as exc:
        raise DidResolutionError(f"did:jwk identifier is not a base64url JWK: {exc}") from exc
    if not isinstance(jwk, dict):
        raise DidResolutionError("did:jwk identifier must encode a JSON object")
    if "d" in jwk:
        raise DidResolutionError("did:jwk must not embed private key material")
    try:
        return _key_manager.public_key_from_jwk(jwk)
    except ValueError as exc:
        raise DidResolutionError(str(exc)) from exc


def _decode_did_key(identifier: str) -> bytes:
    if not identifier.startswith("z") or len(identifier) == 1:
        raise DidResolutionError("did:key identifier must be a base58btc multibase value")
    try:
        decoded = base58btc_decode(identifier[1:])
    except ValueError as exc:
        raise DidResolutionError(str(exc)) from exc
    if not decoded.startswith(_ED25519_MULTICODEC_PREFIX):
        raise DidResolutionError(
            f"Unsupported multicodec prefix 0x{decoded[:2].hex()}; only Ed25519 (0xed01) keys are supported"
        )
    public_key = decoded[len(_ED25519_MULTICODEC_PREFIX):]
    if len(public_key) != KEY_SIZE:
        raise DidResolutionError(f"Ed25519 public key must be {KEY_SIZE} bytes")
    return public_key


__all__ = [
    "DidResolutionError",
    "SUPPORTED_METHODS",
    "did_for_public_key",
    "did_method",
    "resolve",
    "resolve_public_key",
    "split_did_url",
    "verification_method_id",
]
