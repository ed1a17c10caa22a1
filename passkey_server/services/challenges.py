# (c) Copyright Datacraft, 2026
"""Database-backed one-time WebAuthn challenges."""
import logging
import secrets
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Callable

from sqlalchemy import select, delete
from sqlalchemy.orm import Session

from passkey_server.db.orm import WebAuthnChallenge, utc_now
from passkey_server.encoding import canonicalize, to_bytes, to_canonical_string
from passkey_server.errors import EncodingInvalid

logger = logging.getLogger(__name__)

PURPOSE_REGISTER = "register"
PURPOSE_LOGIN = "login"
PURPOSES = (PURPOSE_REGISTER, PURPOSE_LOGIN)


@dataclass(frozen=True)
class IssuedChallenge:
	"""What begin-* hands to the client."""
	id: str
	value: bytes

	@property
	def encoded(self) -> str:
		return to_canonical_string(self.value)


@dataclass(frozen=True)
class Challenge:
	"""A consumed challenge."""
	id: str
	purpose: str
	value: bytes
	account: str | None
	created_at: datetime

	@classmethod
	def from_row(cls, row: WebAuthnChallenge) -> "Challenge":
		return cls(
			id=row.id,
			purpose=row.purpose,
			value=to_bytes(row.challenge),
			account=row.account,
			created_at=row.created_at,
		)


class ChallengeStore:
	"""Issues challenges and consumes them exactly once.

	Consumption is a conditional DELETE: of two requests racing on the same
	row only the one whose DELETE reports a row wins. Not-found, already used
	and expired all look the same to the caller.
	"""

	CHALLENGE_BYTES = 32

	def __init__(
		self,
		db: Session,
		ttl_minutes: int = 5,
		clock: Callable[[], datetime] = utc_now,
	):
		self.db = db
		self.ttl = timedelta(minutes=ttl_minutes)
		self.clock = clock

	def issue(self, purpose: str, account: str | None = None) -> IssuedChallenge:
		if purpose not in PURPOSES:
			raise ValueError(f"Unknown challenge purpose: {purpose}")

		self.sweep_expired(commit=False)

		now = self.clock()
		value = secrets.token_bytes(self.CHALLENGE_BYTES)
		row = WebAuthnChallenge(
			id=str(uuid.uuid4()),
			purpose=purpose,
			challenge=to_canonical_string(value),
			account=account,
			created_at=now,
			expires_at=now + self.ttl,
		)
		self.db.add(row)
		self.db.commit()

		logger.debug(f"Issued {purpose} challenge {row.id}")
		return IssuedChallenge(id=row.id, value=value)

	def consume_by_id(self, challenge_id: str | None) -> Challenge | None:
		if not challenge_id or not isinstance(challenge_id, str):
			return None

		row = self.db.scalar(
			select(WebAuthnChallenge).where(
				WebAuthnChallenge.id == challenge_id,
				WebAuthnChallenge.expires_at > self.clock(),
			)
		)
		return self._take(row)

	def consume_by_value(self, purpose: str, value: Any) -> Challenge | None:
		"""Fallback for clients that lost the challenge id.

		Only unexpired challenges of the given purpose are candidates, newest
		first.
		"""
		try:
			encoded = canonicalize(value)
		except EncodingInvalid:
			return None
		if not encoded:
			return None

		row = self.db.scalar(
			select(WebAuthnChallenge)
			.where(
				WebAuthnChallenge.purpose == purpose,
				WebAuthnChallenge.challenge == encoded,
				WebAuthnChallenge.expires_at > self.clock(),
			)
			.order_by(WebAuthnChallenge.created_at.desc())
			.limit(1)
		)
		return self._take(row)

	def sweep_expired(self, commit: bool = True) -> int:
		"""Remove expired challenges from database."""
		result = self.db.execute(
			delete(WebAuthnChallenge)
			.where(WebAuthnChallenge.expires_at <= self.clock())
			.execution_options(synchronize_session=False)
		)
		if commit:
			self.db.commit()
		return result.rowcount or 0

	def _take(self, row: WebAuthnChallenge | None) -> Challenge | None:
		if row is None:
			return None

		challenge = Challenge.from_row(row)
		result = self.db.execute(
			delete(WebAuthnChallenge)
			.where(WebAuthnChallenge.id == challenge.id)
			.execution_options(synchronize_session=False)
		)
		self.db.commit()
		self.db.expunge(row)

		if result.rowcount != 1:
			# someone else consumed it between our SELECT and DELETE
			return None
		return challenge
