"""BearerDid — a DID together with the private key that controls it.

A bearer DID is what signs registrations: the registrant's DID on the client
side, and the registry's own DID when counter-signing.

Portable format
---------------
Bearer DIDs are exported to and imported from a JSON "portable DID"::

    {
        "uri": "did:jwk:eyJ...",
        "document": { ...W3C DID document... },
        "metadata": {},
        "privateKeys": [{"kty": "OKP", "crv": "Ed25519", "x": "...", "d": "..."}]
    }

The portable form contains private key material and must be stored with
the same care as any other secret.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, TypeGuard

from dap_registry.did import resolver
from dap_registry.did.key_manager import Ed25519KeyManager

_key_manager = Ed25519KeyManager()


class InvalidPortableDid(ValueError):
    """Raised when a portable DID cannot be imported."""


def is_portable_did(obj: object) -> TypeGuard[dict[str, Any]]:
    """Return True if *obj* has the shape of a portable DID.

    Only the shape is checked; :meth:`BearerDid.import_portable` validates
    the key material.
    """
    return (
        isinstance(obj, dict)
        and isinstance(obj.get("uri"), str)
        and isinstance(obj.get("document"), dict)
        and isinstance(obj.get("metadata"), dict)
        and obj.get("keyManager") is None
    )


@dataclass(repr=False)
class BearerDid:
    """A DID whose Ed25519 private key is held in memory.

    Parameters
    ----------
    uri:
        The DID, e.g. ``did:jwk:eyJ...``.
    document:
        The DID document.
    private_key:
        The 32-byte raw Ed25519 private key.
    metadata:
        Free-form method metadata carried through export/import.
    """

    uri: str
    document: dict[str, object]
    private_key: bytes
    metadata: dict[str, object] = field(default_factory=dict)

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------

    @classmethod
    def create(cls, method: str = "jwk") -> "BearerDid":
        """Generate a fresh keypair and wrap it as a ``did:jwk`` or ``did:key``."""
        private_key, public_key = _key_manager.generate_keypair()
        uri = resolver.did_for_public_key(method, public_key)
        return cls(uri=uri, document=resolver.resolve(uri), private_key=private_key)

    @classmethod
    def import_portable(cls, portable_did: object) -> "BearerDid":
        """Import a bearer DID from its portable JSON form.

        Raises
        ------
        InvalidPortableDid
            If the object is not a portable DID, carries no usable Ed25519
            private key, or the key does not belong to the DID.
        """
        if not is_portable_did(portable_did):
            raise InvalidPortableDid("Object is not a portable DID")

        private_keys = portable_did.get("privateKeys")
        if not isinstance(private_keys, list) or not private_keys:
            raise InvalidPortableDid("Portable DID has no private keys")
        jwk = private_keys[0]
        if not isinstance(jwk, dict):
            raise InvalidPortableDid("Private key must be a JWK object")

        uri = portable_did["uri"]
        try:
            private_key = _key_manager.private_key_from_jwk(jwk)
            did_public_key = resolver.resolve_public_key(uri)
        except ValueError as exc:
            raise InvalidPortableDid(f"Failed to import Bearer DID: {exc}") from exc

        if _key_manager.public_key_for(private_key) != did_public_key:
            raise InvalidPortableDid("Private key does not belong to the portable DID")

        return cls(
            uri=uri,
            document=dict(portable_did["document"]),
            private_key=private_key,
            metadata=dict(portable_did["metadata"]),
        )

    # ------------------------------------------------------------------
    # Keys
    # ------------------------------------------------------------------

    @property
    def public_key(self) -> bytes:
        return _key_manager.public_key_for(self.private_key)

    @property
    def key_id(self) -> str:
        """The verification method used in signature headers."""
        return resolver.verification_method_id(self.uri)

    def sign(self, data: bytes) -> bytes:
        """Sign *data* with this DID's private key."""
        return _key_manager.sign(self.private_key, data)

    # ------------------------------------------------------------------
    # Serialization
    # ------------------------------------------------------------------

    def export(self) -> dict[str, object]:
        """Export to the portable DID form, including the private key."""
        return {
            "uri": self.uri,
            "document": self.document,
            "metadata": dict(self.metadata),
            "privateKeys": [_key_manager.to_jwk(self.public_key, self.private_key)],
        }

    def __repr__(self) -> str:
        return f"BearerDid(uri={self.uri!r})"


__all__ = ["BearerDid", "InvalidPortableDid", "is_portable_did"]
