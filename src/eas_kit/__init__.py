"""eas-kit - Ethereum Attestation Service examples and workflows from the terminal."""

__version__ = "0.1.0"
