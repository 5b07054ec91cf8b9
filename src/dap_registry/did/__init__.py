"""dap_registry.did — DIDs that can sign and be verified without a network.

Submodules
----------
key_manager
    Ed25519KeyManager: key generation, signing, verification, JWK conversion.
resolver
    did:jwk and did:key encoding and resolution.
bearer
    BearerDid and the portable DID import/export format.

Quick start
-----------
::

    from dap_registry.did import BearerDid, resolve_public_key

    alice = BearerDid.create("jwk")
    signature = alice.sign(b"hello")
    public_key = resolve_public_key(alice.key_id)
"""
from __future__ import annotations

from dap_registry.did.bearer import BearerDid, InvalidPortableDid, is_portable_did
from dap_registry.did.key_manager import Ed25519KeyManager
from dap_registry.did.resolver import (
    SUPPORTED_METHODS,
    DidResolutionError,
    did_method,
    resolve,
    resolve_public_key,
)

__all__ = [
    "BearerDid",
    "DidResolutionError",
    "Ed25519KeyManager",
    "InvalidPortableDid",
    "SUPPORTED_METHODS",
    "did_method",
    "is_portable_did",
    "resolve",
    "resolve_public_key",
]
