"""DapRegistration — a signed claim binding a handle to a DID.

Lifecycle
---------
::

    create() ──► CONSTRUCTED ──sign(registrant)──► SELF_SIGNED
                                                      │  (sent to the registry)
    parse() ──────────────── verify() ───────────► VERIFIED
                                                      │  (persisted)
                                   sign(registry) ──► COUNTER_SIGNED

Digest
------
The signed payload is the SHA-256 digest of the RFC 8785 canonical form of::

    {"id": ..., "handle": ..., "did": ..., "domain": ...}

The signature itself is a detached JWS over that digest (see
:mod:`dap_registry.envelope`). Changing any of the four fields after
signing invalidates the signature.
"""
from __future__ import annotations

import json
from dataclasses import dataclass, field
from enum import Enum

from pydantic import BaseModel, ConfigDict, ValidationError

from dap_registry import canonical, envelope
from dap_registry.dap import Dap
from dap_registry.errors import (
    InvalidDapRegistration,
    InvalidRegistrationId,
    MalformedRegistration,
    SignatureVerificationFailed,
)
from dap_registry.registration_id import RegistrationId


class RegistrationState(Enum):
    """Where a registration is in its lifecycle."""

    CONSTRUCTED = "constructed"
    SELF_SIGNED = "self_signed"
    VERIFIED = "verified"
    COUNTER_SIGNED = "counter_signed"


class RegistrationModel(BaseModel):
    """Wire shape of a signed registration (request body and proof)."""

    model_config = ConfigDict(strict=True)

    id: str
    handle: str
    did: str
    domain: str
    signature: str


@dataclass
class DapRegistration:
    """A DAP registration and, once signed, its detached signature.

    Prefer :meth:`create` and :meth:`parse` over the constructor.

    Parameters
    ----------
    id:
        Identifier allocated when the registration was created.
    handle:
        The handle being claimed.
    did:
        The DID claiming the handle; only it may produce the registrant
        signature.
    domain:
        The domain the handle belongs to.
    signature:
        Detached JWS over :meth:`compute_digest`, or ``None`` when unsigned.
    """

    id: RegistrationId
    handle: str
    did: str
    domain: str
    signature: str | None = None
    state: RegistrationState = field(default=RegistrationState.CONSTRUCTED, compare=False)

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------

    @classmethod
    def create(cls, handle: str, did: str, domain: str) -> "DapRegistration":
        """Create an unsigned registration with a fresh :class:`RegistrationId`.

        Raises
        ------
        MalformedRegistration
            If any field is empty.
        """
        registration = cls(id=RegistrationId.create(), handle=handle, did=did, domain=domain)
        registration.validate()
        return registration

    @classmethod
    def parse(cls, raw: str | bytes | dict[str, object]) -> "DapRegistration":
        """Parse a signed registration and verify its signature.

        Parameters
        ----------
        raw:
            A JSON document (``str`` or ``bytes``) or an already decoded
            ``dict`` with ``id``, ``handle``, ``did``, ``domain`` and
            ``signature``.

        Raises
        ------
        MalformedRegistration
            If the payload is not JSON, a field is missing or not a string,
            or ``id`` is not a valid registration ID.
        InvalidDapRegistration
            If the signature does not verify or was not produced by ``did``.
        """
        registration = cls.load(raw)
        registration.verify()
        return registration

    @classmethod
    def load(cls, raw: str | bytes | dict[str, object]) -> "DapRegistration":
        """Parse a signed registration without checking its signature.

        Raises
        ------
        MalformedRegistration
            Under the same conditions as :meth:`parse`.
        """
        try:
            if isinstance(raw, (str, bytes)):
                model = RegistrationModel.model_validate_json(raw)
            else:
                model = RegistrationModel.model_validate(raw)
        except ValidationError as exc:
            raise MalformedRegistration(
                f"Failed to parse DAP registration: {_summarize(exc)}"
            ) from exc

        try:
            registration_id = RegistrationId.parse(model.id)
        except InvalidRegistrationId as exc:
            raise MalformedRegistration(f"Invalid registration ID: {exc.message}") from exc

        registration = cls(
            id=registration_id,
            handle=model.handle,
            did=model.did,
            domain=model.domain,
            signature=model.signature,
        )
        registration.validate()
        return registration

    # ------------------------------------------------------------------
    # Digest and signatures
    # ------------------------------------------------------------------

    def signable_payload(self) -> dict[str, str]:
        """The fields covered by the signature."""
        return {
            "id": str(self.id),
            "handle": self.handle,
            "did": self.did,
            "domain": self.domain,
        }

    def compute_digest(self) -> bytes:
        """SHA-256 over the canonical form of :meth:`signable_payload`."""
        return canonical.digest(self.signable_payload())

    def sign(self, signer: envelope.Signer) -> None:
        """Replace :attr:`signature` with a detached JWS by *signer*.

        Signing a verified registration is the registry's counter-signature
        and is terminal; any earlier signature is discarded.

        Raises
        ------
        InvalidDapRegistration
            If the registration has already been counter-signed.
        """
        if self.state is RegistrationState.COUNTER_SIGNED:
            raise InvalidDapRegistration("Invalid DAP Registration: already counter-signed")

        self.signature = envelope.sign(signer, self.compute_digest(), detached=True)
        if self.state is RegistrationState.VERIFIED:
            self.state = RegistrationState.COUNTER_SIGNED
        else:
            self.state = RegistrationState.SELF_SIGNED

    def verify(self, expected_signer: str | None = None) -> str:
        """Verify the signature and return the signer's DID.

        Parameters
        ----------
        expected_signer:
            DID that must have produced the signature. Defaults to
            :attr:`did`; pass the registry's DID to check a counter-signed
            proof.

        Raises
        ------
        InvalidDapRegistration
            If the signature is missing or invalid, or the signer is not the
            expected DID.
        """
        if self.signature is None:
            raise InvalidDapRegistration("Invalid DAP Registration: Signature is missing")

        try:
            signer_did = envelope.verify(self.signature, detached_payload=self.compute_digest())
        except SignatureVerificationFailed as exc:
            raise InvalidDapRegistration(f"Invalid DAP Registration: {exc.message}") from exc

        expected = self.did if expected_signer is None else expected_signer
        if signer_did != expected:
            raise InvalidDapRegistration(
                "Invalid DAP Registration: Expected registration to be signed by the specified DID"
            )

        if expected_signer is None and self.state is not RegistrationState.COUNTER_SIGNED:
            self.state = RegistrationState.VERIFIED
        return signer_did

    def validate(self) -> None:
        """Check that every field is a non-empty string.

        Raises
        ------
        MalformedRegistration
            On the first empty field.
        """
        for name, value in self.signable_payload().items():
            if not isinstance(value, str) or not value:
                raise MalformedRegistration(f"Invalid DAP Registration: '{name}' must not be empty")

    # ------------------------------------------------------------------
    # Views
    # ------------------------------------------------------------------

    @property
    def dap(self) -> Dap:
        """The ``@handle/domain`` identifier this registration claims.

        Raises
        ------
        MalformedIdentifier
            If ``handle`` or ``domain`` violates the DAP grammar.
        """
        return Dap.parse(str(Dap(self.handle, self.domain)))

    def to_dict(self) -> dict[str, str]:
        """Serialize to the wire shape; ``signature`` is omitted when unsigned."""
        data = self.signable_payload()
        if self.signature is not None:
            data["signature"] = self.signature
        return data

    def to_json(self) -> str:
        return json.dumps(self.to_dict())


def _summarize(exc: ValidationError) -> str:
    return "; ".join(
        f"{'.'.join(str(part) for part in error['loc']) or 'body'}: {error['msg']}"
        for error in exc.errors()
    )


__all__ = ["DapRegistration", "RegistrationModel", "RegistrationState"]
