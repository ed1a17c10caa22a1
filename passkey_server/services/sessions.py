# (c) Copyright Datacraft, 2026
"""Session artifacts handed out after a successful passkey login."""
import logging
from datetime import datetime, timezone, timedelta
from typing import Protocol

import jwt

logger = logging.getLogger(__name__)


class SessionIssuer(Protocol):
	def issue(self, account: str) -> str:
		...


class JWTSessionIssuer:
	"""Signed, expiring admin session tokens."""

	def __init__(self, secret_key: str, algorithm: str = "HS256", expire_minutes: int = 60):
		self.secret_key = secret_key
		self.algorithm = algorithm
		self.expire_minutes = expire_minutes

	def issue(self, account: str) -> str:
		now = datetime.now(timezone.utc)
		payload = {
			"sub": account,
			"iat": now,
			"exp": now + timedelta(minutes=self.expire_minutes),
			"scope": "admin",
		}
		logger.info(f"Admin session issued for {account}")
		return jwt.encode(payload, self.secret_key, algorithm=self.algorithm)

	def decode(self, token: str) -> str:
		"""Return the account a token was issued to.

		Raises:
			jwt.InvalidTokenError: expired, tampered or malformed token
		"""
		payload = jwt.decode(token, self.secret_key, algorithms=[self.algorithm])
		account = payload.get("sub")
		if not account:
			raise jwt.InvalidTokenError("token has no subject")
		return account
