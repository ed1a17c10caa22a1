# (c) Copyright Datacraft, 2026
"""Database module for passkey-server."""
from .orm import PasskeyCredential, WebAuthnChallenge, utc_now
from .base import Base

__all__ = [
	'Base',
	'PasskeyCredential',
	'WebAuthnChallenge',
	'utc_now',
]
