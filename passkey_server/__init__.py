# (c) Copyright Datacraft, 2026
"""Passkey (WebAuthn) authentication for an administrative surface."""

__version__ = "0.1.0"
