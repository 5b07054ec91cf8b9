"""Shared fixtures: DID identities, stores, and a wired registry."""
from __future__ import annotations

import os
from collections.abc import Callable, Iterator

import pytest

from dap_registry.did.bearer import BearerDid
from dap_registry.registration import DapRegistration
from dap_registry.registry import DapRegistry, PortableDidIdentity
from dap_registry.store import InMemoryDapStore


@pytest.fixture(autouse=True)
def _clean_registry_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep REGISTRY_* variables from the host out of settings."""
    for name in list(os.environ):
        if name.upper().startswith("REGISTRY_"):
            monkeypatch.delenv(name)


@pytest.fixture(scope="session")
def registry_did() -> BearerDid:
    return BearerDid.create()


@pytest.fixture()
def alice() -> BearerDid:
    return BearerDid.create()


@pytest.fixture()
def bob() -> BearerDid:
    return BearerDid.create(method="key")


@pytest.fixture()
def memory_store() -> Iterator[InMemoryDapStore]:
    store = InMemoryDapStore()
    store.open()
    yield store
    store.close()


@pytest.fixture()
def registry(memory_store: InMemoryDapStore, registry_did: BearerDid) -> DapRegistry:
    return DapRegistry(memory_store, PortableDidIdentity(registry_did.export()))


@pytest.fixture()
def make_registration() -> Callable[..., DapRegistration]:
    """Return a factory for registrations signed by their own DID."""

    def _make(bearer: BearerDid, handle: str = "moegrammer", domain: str = "didpay.me") -> DapRegistration:
        registration = DapRegistration.create(handle=handle, did=bearer.uri, domain=domain)
        registration.sign(bearer)
        return registration

    return _make
