"""Test that the quickstart API works from the package root."""
from __future__ import annotations


def test_quickstart_import() -> None:
    import dap_registry

    assert dap_registry.__version__ == "0.1.0"


def test_quickstart_register_and_verify() -> None:
    from dap_registry import (
        BearerDid,
        DapRegistration,
        DapRegistry,
        InMemoryDapStore,
        PortableDidIdentity,
        verify_proof,
    )

    registry_did = BearerDid.create()
    with InMemoryDapStore() as store:
        registry = DapRegistry(store, PortableDidIdentity(registry_did.export()))

        registrant = BearerDid.create()
        registration = DapRegistration.create("alice", registrant.uri, "example.com")
        registration.sign(registrant)

        proof = registry.register(registration.to_dict())
        assert verify_proof(proof.to_dict(), registry_did.uri).did == registrant.uri
        assert registry.lookup("alice").did == registrant.uri


def test_quickstart_public_exports() -> None:
    import dap_registry

    for name in dap_registry.__all__:
        assert hasattr(dap_registry, name), name
