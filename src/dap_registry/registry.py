"""DapRegistry — the registration workflow and the handle lookup.

Registration
------------
1. Parse the request and verify the registrant's signature
   (:meth:`DapRegistration.parse`).
2. Check that ``handle``/``domain`` form a valid DAP and that the DID method
   is accepted.
3. Load the registry's own signing identity.
4. Insert ``{id, did, handle, proof}``; the store enforces uniqueness.
5. Counter-sign with the registry identity and return the result.

Nothing is counter-signed unless the insert succeeded, and nothing is
retried: a conflict or failure ends the attempt.
"""
from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field

from dap_registry.did.bearer import BearerDid, InvalidPortableDid, is_portable_did
from dap_registry.did.resolver import SUPPORTED_METHODS, did_method
from dap_registry.errors import (
    ConflictError,
    HandleNotFound,
    MalformedIdentifier,
    MalformedRegistration,
    UnavailableError,
)
from dap_registry.registration import DapRegistration, RegistrationState
from dap_registry.store import DapRow, DapStore

logger = logging.getLogger(__name__)

IdentityProvider = Callable[[], BearerDid]


@dataclass(frozen=True)
class RegistrationMetadata:
    """Capabilities advertised by ``GET /metadata``."""

    enabled: bool = True
    supported_did_methods: tuple[str, ...] = field(default=SUPPORTED_METHODS)

    def to_dict(self) -> dict[str, object]:
        return {
            "enabled": self.enabled,
            "supportedDidMethods": list(self.supported_did_methods),
        }


class PortableDidIdentity:
    """Identity provider backed by a portable DID from configuration.

    The DID is imported on first use and cached. Until an import succeeds,
    every call retries and raises :class:`UnavailableError` on failure.
    """

    def __init__(self, portable_did: object) -> None:
        self._portable_did = portable_did
        self._bearer_did: BearerDid | None = None

    def __call__(self) -> BearerDid:
        if self._bearer_did is None:
            if not is_portable_did(self._portable_did):
                raise UnavailableError("Failed to access portable DID from runtime configuration")
            try:
                self._bearer_did = BearerDid.import_portable(self._portable_did)
            except InvalidPortableDid as exc:
                raise UnavailableError(f"Failed to import Bearer DID: {exc}") from exc
        return self._bearer_did


class DapRegistry:
    """Registers DAPs and resolves handles.

    Parameters
    ----------
    store:
        An opened :class:`DapStore`. The registry does not open or close it.
    identity_provider:
        Returns the registry's signing identity; raises
        :class:`UnavailableError` when it cannot.
    metadata:
        Advertised capabilities. DIDs whose method is not listed in
        ``supported_did_methods`` are rejected.
    """

    def __init__(
        self,
        store: DapStore,
        identity_provider: IdentityProvider,
        metadata: RegistrationMetadata | None = None,
    ) -> None:
        self._store = store
        self._identity_provider = identity_provider
        self.metadata = metadata or RegistrationMetadata()

    @property
    def store(self) -> DapStore:
        return self._store

    def registry_did(self) -> BearerDid:
        """Return the registry's signing identity.

        Raises
        ------
        UnavailableError
            If the identity cannot be loaded.
        """
        try:
            return self._identity_provider()
        except UnavailableError:
            logger.exception("Registry DID is unavailable")
            raise

    def register(self, raw: str | bytes | dict[str, object]) -> DapRegistration:
        """Verify, persist, and counter-sign a registration.

        Returns
        -------
        DapRegistration
            The registration counter-signed by the registry: the proof of
            registration.

        Raises
        ------
        MalformedRegistration
            If the payload is structurally invalid.
        InvalidDapRegistration
            If the registrant signature is missing, invalid, or not by ``did``.
        ConflictError
            If the ID, DID, or handle is already registered.
        UnavailableError
            If the registry identity or the store is unavailable.
        """
        registration = DapRegistration.parse(raw)
        self._check_acceptable(registration)

        registry_did = self.registry_did()

        try:
            self._store.insert(
                id=str(registration.id),
                did=registration.did,
                handle=registration.handle,
                proof=registration.to_dict(),
            )
        except ConflictError as exc:
            logger.warning(
                "Rejected registration %s for handle %r: %s",
                registration.id,
                registration.handle,
                exc.message,
            )
            raise
        except UnavailableError as exc:
            logger.exception("Failed to persist registration %s", registration.id)
            raise UnavailableError() from exc

        registration.sign(registry_did)
        logger.info(
            "Registered %s to %s (registration %s)",
            registration.dap,
            registration.did,
            registration.id,
        )
        return registration

    def lookup(self, handle: str) -> DapRow:
        """Return the stored registration for *handle*.

        Raises
        ------
        HandleNotFound
            If the handle is not registered.
        UnavailableError
            If the store fails.
        """
        try:
            row = self._store.find_by_handle(handle)
        except UnavailableError as exc:
            logger.exception("Failed to look up handle %r", handle)
            raise UnavailableError("Failed to process request") from exc
        if row is None:
            logger.debug("Handle %r not found", handle)
            raise HandleNotFound(handle)
        return row

    def _check_acceptable(self, registration: DapRegistration) -> None:
        try:
            registration.dap
        except MalformedIdentifier as exc:
            raise MalformedRegistration(
                "Invalid DAP Registration: handle and domain must not contain '@' or '/'"
            ) from exc

        method = did_method(registration.did)
        if method not in self.metadata.supported_did_methods:
            raise MalformedRegistration(
                f"Invalid DAP Registration: DID method {method!r} is not supported"
            )


def verify_proof(proof: str | bytes | dict[str, object], registry_did: str) -> DapRegistration:
    """Check that *proof* was counter-signed by *registry_did*.

    Raises
    ------
    MalformedRegistration
        If the proof is structurally invalid.
    InvalidDapRegistration
        If the signature is invalid or by another DID.
    """
    registration = DapRegistration.load(proof)
    registration.verify(expected_signer=registry_did)
    registration.state = RegistrationState.COUNTER_SIGNED
    return registration


__all__ = [
    "DapRegistry",
    "IdentityProvider",
    "PortableDidIdentity",
    "RegistrationMetadata",
    "verify_proof",
]
