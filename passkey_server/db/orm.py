# (c) Copyright Datacraft, 2026
"""Passkey tables: one-time challenges and registered credentials."""
import uuid
from datetime import datetime, timezone

from sqlalchemy import (
	String, Integer, LargeBinary, DateTime, Index, UniqueConstraint, CheckConstraint
)
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base


def utc_now() -> datetime:
	return datetime.now(timezone.utc)


class WebAuthnChallenge(Base):
	"""A challenge handed out by begin-registration or begin-authentication.

	Rows are deleted when consumed; whatever is left behind expires.
	"""

	__tablename__ = "passkey_challenges"

	id: Mapped[str] = mapped_column(
		String(36), primary_key=True, default=lambda: str(uuid.uuid4())
	)
	purpose: Mapped[str] = mapped_column(String(16), nullable=False)
	# canonical base64url of the raw challenge bytes
	challenge: Mapped[str] = mapped_column(String(128), nullable=False)
	account: Mapped[str | None] = mapped_column(String(255), nullable=True)
	created_at: Mapped[datetime] = mapped_column(
		DateTime(timezone=True), nullable=False, default=utc_now
	)
	expires_at: Mapped[datetime] = mapped_column(
		DateTime(timezone=True), nullable=False
	)

	__table_args__ = (
		Index("idx_passkey_challenge_lookup", "purpose", "challenge"),
		Index("idx_passkey_challenge_expiry", "expires_at"),
		CheckConstraint(
			"purpose IN ('register', 'login')",
			name="ck_passkey_challenge_purpose",
		),
	)

	def __repr__(self):
		return f"WebAuthnChallenge({self.id}: {self.purpose})"


class PasskeyCredential(Base):
	"""Public half of a passkey owned by an account."""

	__tablename__ = "passkey_credentials"

	id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
	account: Mapped[str] = mapped_column(String(255), nullable=False)
	# canonical base64url
	credential_id: Mapped[str] = mapped_column(String(1400), nullable=False)
	public_key: Mapped[bytes] = mapped_column(LargeBinary, nullable=False)
	sign_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
	created_at: Mapped[datetime] = mapped_column(
		DateTime(timezone=True), nullable=False, default=utc_now
	)
	last_used_at: Mapped[datetime | None] = mapped_column(
		DateTime(timezone=True), nullable=True
	)

	__table_args__ = (
		UniqueConstraint("account", "credential_id", name="uq_passkey_account_credential"),
		Index("idx_passkey_credential_account", "account"),
		CheckConstraint("sign_count >= 0", name="ck_passkey_sign_count_unsigned"),
	)

	def __repr__(self):
		return f"PasskeyCredential({self.account}: {self.credential_id[:12]})"
