"""Detached compact JWS envelopes signed by DIDs.

Envelope format (RFC 7515 compact serialization)::

    base64url(header) "." base64url(payload) "." base64url(signature)

The header is ``{"alg": "EdDSA", "kid": "<did>#<fragment>", "typ": "JWT"}``.
For a *detached* envelope the middle segment is empty and the verifier must
supply the payload bytes again.

Verification never trusts a DID claimed elsewhere: the verification key is
recovered from the ``kid`` of a self-certifying DID, and the DID returned by
:func:`verify` is the one that actually produced the signature. Callers
compare it with whatever identity they expected.
"""
from __future__ import annotations

import json
from typing import Protocol

from dap_registry.did.key_manager import Ed25519KeyManager
from dap_registry.did.resolver import DidResolutionError, resolve_public_key, split_did_url
from dap_registry.encoding import b64url_decode, b64url_encode
from dap_registry.errors import SignatureVerificationFailed

ALGORITHM: str = "EdDSA"

_key_manager = Ed25519KeyManager()


class Signer(Protocol):
    """Anything that can sign on behalf of a DID verification method."""

    @property
    def key_id(self) -> str: ...

    def sign(self, data: bytes) -> bytes: ...


def sign(signer: Signer, payload: bytes, detached: bool = True) -> str:
    """Produce a compact JWS over *payload*.

    Parameters
    ----------
    signer:
        The identity whose key signs; its ``key_id`` becomes the ``kid``.
    payload:
        The bytes to sign (for registrations, the canonical digest).
    detached:
        When True (the default) the payload segment is left empty.
    """
    header = {"alg": ALGORITHM, "kid": signer.key_id, "typ": "JWT"}
    header_b64 = b64url_encode(json.dumps(header, separators=(",", ":")).encode("utf-8"))
    payload_b64 = b64url_encode(payload)
    signature = signer.sign(f"{header_b64}.{payload_b64}".encode("ascii"))
    return ".".join([header_b64, "" if detached else payload_b64, b64url_encode(signature)])


def decode_header(jws: str) -> dict[str, object]:
    """Return the decoded protected header of *jws* without verifying it.

    Raises
    ------
    SignatureVerificationFailed
        If the envelope or its header is malformed.
    """
    parts = jws.split(".") if isinstance(jws, str) else []
    if len(parts) != 3:
        raise SignatureVerificationFailed("Malformed JWS: expected three segments")
    try:
        header = json.loads(b64url_decode(parts[0]))
    except ValueError as exc:
        raise SignatureVerificationFailed(f"Malformed JWS header: {exc}") from exc
    if not isinstance(header, dict):
        raise SignatureVerificationFailed("Malformed JWS header: expected a JSON object")
    return header


def verify(jws: str, detached_payload: bytes | None = None) -> str:
    """Verify *jws* and return the DID that signed it.

    Parameters
    ----------
    jws:
        A compact JWS as produced by :func:`sign`.
    detached_payload:
        The signed bytes, required when the payload segment is empty.

    Raises
    ------
    SignatureVerificationFailed
        If the envelope is malformed, uses an unsupported algorithm, names a
        key that cannot be resolved, lacks a required detached payload, or
        carries an invalid signature.
    """
    header = decode_header(jws)
    header_b64, payload_b64, signature_b64 = jws.split(".")

    if header.get("alg") != ALGORITHM:
        raise SignatureVerificationFailed(f"Unsupported JWS algorithm {header.get('alg')!r}")
    if "crit" in header:
        raise SignatureVerificationFailed("Unsupported critical JWS header parameters")
    kid = header.get("kid")
    if not isinstance(kid, str) or not kid:
        raise SignatureVerificationFailed("JWS header is missing 'kid'")

    if payload_b64:
        if detached_payload is not None and b64url_encode(detached_payload) != payload_b64:
            raise SignatureVerificationFailed("Detached payload does not match embedded payload")
    elif detached_payload is None:
        raise SignatureVerificationFailed("JWS has a detached payload but none was supplied")
    else:
        payload_b64 = b64url_encode(detached_payload)

    try:
        public_key = resolve_public_key(kid)
        signature = b64url_decode(signature_b64)
    except (DidResolutionError, ValueError) as exc:
        raise SignatureVerificationFailed(f"Signature verification failed: {exc}") from exc

    signing_input = f"{header_b64}.{payload_b64}".encode("utf-8")
    if not _key_manager.verify(public_key, signature, signing_input):
        raise SignatureVerificationFailed()

    did, _ = split_did_url(kid)
    return did


__all__ = ["ALGORITHM", "Signer", "decode_header", "sign", "verify"]
