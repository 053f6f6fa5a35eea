"""Thin client over the EAS contracts: schemas, attestations, private data."""
