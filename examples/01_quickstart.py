#!/usr/bin/env python3
"""Example: Quickstart

Registers a DAP with an in-process registry and verifies the registry's
proof of registration.

Usage:
    python examples/01_quickstart.py

Requirements:
    pip install dap-registry
"""
from __future__ import annotations

import dap_registry
from dap_registry import (
    BearerDid,
    DapRegistration,
    DapRegistry,
    InMemoryDapStore,
    PortableDidIdentity,
    verify_proof,
)


def main() -> None:
    print(f"dap-registry version: {dap_registry.__version__}")

    # Step 1: The registry's own identity and storage
    registry_did = BearerDid.create()
    store = InMemoryDapStore()
    store.open()
    registry = DapRegistry(store, PortableDidIdentity(registry_did.export()))
    print(f"Registry DID: {registry_did.uri[:40]}...")

    # Step 2: A registrant signs a registration for @moegrammer/didpay.me
    registrant = BearerDid.create(method="key")
    registration = DapRegistration.create("moegrammer", registrant.uri, "didpay.me")
    registration.sign(registrant)
    print(f"Signed registration {registration.id} for {registration.dap}")

    # Step 3: The registry verifies, stores, and counter-signs it
    proof = registry.register(registration.to_json())
    print(f"Proof state: {proof.state.value}")

    # Step 4: Anyone can check the proof against the registry's DID
    verify_proof(proof.to_dict(), registry_did.uri)
    print("Proof verified against the registry DID.")

    # Step 5: Resolve the handle
    row = registry.lookup("moegrammer")
    print(f"@moegrammer resolves to {row.did[:40]}...")

    store.close()
    print("\nQuickstart complete.")


if __name__ == "__main__":
    main()
