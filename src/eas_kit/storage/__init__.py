"""Local persistence for signed off-chain attestations."""
