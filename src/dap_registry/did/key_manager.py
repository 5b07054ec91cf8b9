"""Ed25519KeyManager — Ed25519 key generation, signing, and verification.

A thin wrapper around the ``cryptography`` package's Ed25519 primitives. Key
material crosses this module's boundary as raw 32-byte strings or as OKP
JSON Web Keys (RFC 8037), never as ``cryptography`` objects, so DID and JWS
code can store and transmit keys without depending on its types.
"""
from __future__ import annotations

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives.asymmetric.ed25519 import (
    Ed25519PrivateKey,
    Ed25519PublicKey,
)
from cryptography.hazmat.primitives.serialization import (
    Encoding,
    NoEncryption,
    PrivateFormat,
    PublicFormat,
)

from dap_registry.encoding import b64url_decode, b64url_encode

KEY_SIZE: int = 32
SIGNATURE_SIZE: int = 64


class Ed25519KeyManager:
    """Ed25519 key management: generate, sign, verify, and JWK conversion.

    Example
    -------
    ::

        manager = Ed25519KeyManager()
        private_bytes, public_bytes = manager.generate_keypair()
        signature = manager.sign(private_bytes, b"hello world")
        assert manager.verify(public_bytes, signature, b"hello world")
    """

    algorithm: str = "EdDSA"
    curve: str = "Ed25519"

    def generate_keypair(self) -> tuple[bytes, bytes]:
        """Generate a new keypair as ``(private_key_bytes, public_key_bytes)``."""
        private_key = Ed25519PrivateKey.generate()
        private_bytes = private_key.private_bytes(
            Encoding.Raw, PrivateFormat.Raw, NoEncryption()
        )
        return private_bytes, self._public_bytes(private_key)

    def public_key_for(self, private_key_bytes: bytes) -> bytes:
        """Derive the raw public key from a raw private key."""
        return self._public_bytes(Ed25519PrivateKey.from_private_bytes(private_key_bytes))

    def sign(self, private_key_bytes: bytes, data: bytes) -> bytes:
        """Sign *data* and return the 64-byte signature."""
        return Ed25519PrivateKey.from_private_bytes(private_key_bytes).sign(data)

    def verify(self, public_key_bytes: bytes, signature: bytes, data: bytes) -> bool:
        """Return ``True`` if *signature* is valid for *data* under the key.

        Malformed keys and signatures of the wrong length verify as ``False``.
        """
        if len(public_key_bytes) != KEY_SIZE or len(signature) != SIGNATURE_SIZE:
            return False
        try:
            Ed25519PublicKey.from_public_bytes(public_key_bytes).verify(signature, data)
        except (InvalidSignature, ValueError):
            return False
        return True

    # ------------------------------------------------------------------
    # JWK conversion
    # ------------------------------------------------------------------

    def to_jwk(
        self, public_key_bytes: bytes, private_key_bytes: bytes | None = None
    ) -> dict[str, str]:
        """Return an OKP JWK for the key; ``d`` is included only for private keys."""
        jwk = {"kty": "OKP", "crv": self.curve, "x": b64url_encode(public_key_bytes)}
        if private_key_bytes is not None:
            jwk["d"] = b64url_encode(private_key_bytes)
        return jwk

    def public_key_from_jwk(self, jwk: dict[str, object]) -> bytes:
        """Extract the raw public key from an OKP Ed25519 JWK.

        Raises
        ------
        ValueError
            If the JWK is not an Ed25519 OKP key or ``x`` is malformed.
        """
        if jwk.get("kty") != "OKP" or jwk.get("crv") != self.curve:
            raise ValueError(
                f"Unsupported JWK: expected kty=OKP crv={self.curve}, "
                f"got kty={jwk.get('kty')!r} crv={jwk.get('crv')!r}"
            )
        x = jwk.get("x")
        if not isinstance(x, str):
            raise ValueError("JWK is missing the 'x' member")
        public_bytes = b64url_decode(x)
        if len(public_bytes) != KEY_SIZE:
            raise ValueError(f"Ed25519 public key must be {KEY_SIZE} bytes")
        return public_bytes

    def private_key_from_jwk(self, jwk: dict[str, object]) -> bytes:
        """Extract the raw private key from an OKP Ed25519 JWK.

        The ``x`` member, when present, must match the key derived from ``d``.
        """
        d = jwk.get("d")
        if not isinstance(d, str):
            raise ValueError("JWK is missing the private 'd' member")
        private_bytes = b64url_decode(d)
        if len(private_bytes) != KEY_SIZE:
            raise ValueError(f"Ed25519 private key must be {KEY_SIZE} bytes")
        if "x" in jwk and self.public_key_from_jwk(jwk) != self.public_key_for(private_bytes):
            raise ValueError("JWK 'x' does not match the public key derived from 'd'")
        return private_bytes

    @staticmethod
    def _public_bytes(private_key: Ed25519PrivateKey) -> bytes:
        return private_key.public_key().public_bytes(Encoding.Raw, PublicFormat.Raw)


__all__ = ["Ed25519KeyManager", "KEY_SIZE", "SIGNATURE_SIZE"]
