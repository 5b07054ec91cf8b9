"""dap-registry — Decentralized Agnostic Paytag (DAP) registration and resolution.

A DAP is a human-friendly payment handle of the form ``@handle/domain``
bound to a DID. Registrants sign a registration with their DID; the
registry verifies it, stores it under unique ID, DID and handle, and
returns it counter-signed as proof of registration.

Public API
----------
The stable public surface is everything exported from this module.
Anything inside submodules not re-exported here is considered private
and may change without notice.

Example
-------
>>> import dap_registry
>>> dap_registry.__version__
'0.1.0'

Quick start
-----------
::

    from dap_registry import (
        BearerDid, DapRegistration, DapRegistry, InMemoryDapStore,
        PortableDidIdentity, verify_proof,
    )

    registry_did = BearerDid.create()
    store = InMemoryDapStore()
    store.open()
    registry = DapRegistry(store, PortableDidIdentity(registry_did.export()))

    alice = BearerDid.create()
    registration = DapRegistration.create("alice", alice.uri, "example.com")
    registration.sign(alice)

    proof = registry.register(registration.to_dict())
    verify_proof(proof.to_dict(), registry_did.uri)
"""
from __future__ import annotations

__version__: str = "0.1.0"

# ------------------------------------------------------------------
# Identifiers and digests
# ------------------------------------------------------------------
from dap_registry.canonical import canonicalize, digest
from dap_registry.dap import Dap
from dap_registry.registration_id import RegistrationId

# ------------------------------------------------------------------
# Errors
# ------------------------------------------------------------------
from dap_registry.errors import (
    CanonicalizationError,
    ConflictError,
    DapError,
    HandleNotFound,
    InvalidDapRegistration,
    InvalidRegistrationId,
    MalformedIdentifier,
    MalformedRegistration,
    SignatureVerificationFailed,
    UnavailableError,
)

# ------------------------------------------------------------------
# DIDs
# ------------------------------------------------------------------
from dap_registry.did import (
    BearerDid,
    DidResolutionError,
    Ed25519KeyManager,
    InvalidPortableDid,
    is_portable_did,
    resolve,
)

# ------------------------------------------------------------------
# Registrations and the registry
# ------------------------------------------------------------------
from dap_registry.registration import DapRegistration, RegistrationState
from dap_registry.registry import (
    DapRegistry,
    PortableDidIdentity,
    RegistrationMetadata,
    verify_proof,
)
from dap_registry.store import DapRow, DapStore, InMemoryDapStore, SqliteDapStore

# ------------------------------------------------------------------
# Configuration and client
# ------------------------------------------------------------------
from dap_registry.client import DapRegistryClient, RegistryClientError
from dap_registry.config import RegistrySettings

__all__ = [
    # version
    "__version__",
    # identifiers and digests
    "Dap",
    "RegistrationId",
    "canonicalize",
    "digest",
    # errors
    "CanonicalizationError",
    "ConflictError",
    "DapError",
    "HandleNotFound",
    "InvalidDapRegistration",
    "InvalidRegistrationId",
    "MalformedIdentifier",
    "MalformedRegistration",
    "SignatureVerificationFailed",
    "UnavailableError",
    # dids
    "BearerDid",
    "DidResolutionError",
    "Ed25519KeyManager",
    "InvalidPortableDid",
    "is_portable_did",
    "resolve",
    # registrations and registry
    "DapRegistration",
    "DapRegistry",
    "DapRow",
    "DapStore",
    "InMemoryDapStore",
    "PortableDidIdentity",
    "RegistrationMetadata",
    "RegistrationState",
    "SqliteDapStore",
    "verify_proof",
    # configuration and client
    "DapRegistryClient",
    "RegistrySettings",
    "RegistryClientError",
]
