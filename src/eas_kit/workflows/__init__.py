"""End-to-end attestation workflows built on the ``eas_kit.eas`` layer."""
