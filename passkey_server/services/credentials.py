# (c) Copyright Datacraft, 2026
"""Persistence for registered passkey credentials."""
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Callable

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from passkey_server.db.orm import PasskeyCredential, utc_now
from passkey_server.encoding import to_bytes
from passkey_server.errors import VerificationFailed

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Credential:
	"""Stored credential, detached from the ORM session."""
	credential_id: str
	account: str
	public_key: bytes
	sign_count: int
	created_at: datetime | None = None
	last_used_at: datetime | None = None

	@classmethod
	def from_row(cls, row: PasskeyCredential) -> "Credential":
		return cls(
			credential_id=row.credential_id,
			account=row.account,
			# some drivers hand bytea back as "\x..." text
			public_key=to_bytes(row.public_key),
			sign_count=row.sign_count,
			created_at=row.created_at,
			last_used_at=row.last_used_at,
		)


class CredentialStore:
	"""Credentials keyed by (account, credential_id).

	``credential_id`` is always the canonical base64url string.
	"""

	def __init__(self, db: Session, clock: Callable[[], datetime] = utc_now):
		self.db = db
		self.clock = clock

	def upsert(
		self,
		account: str,
		credential_id: str,
		public_key: bytes,
		counter: int,
	) -> Credential:
		"""Insert a credential, or refresh it when the pair already exists.

		An existing credential keeps its public key and never has its counter
		lowered.

		Raises:
			VerificationFailed: the pair is registered with a different key
		"""
		row = self._get_row(account, credential_id)
		if row is None:
			row = PasskeyCredential(
				account=account,
				credential_id=credential_id,
				public_key=public_key,
				sign_count=counter,
				created_at=self.clock(),
			)
			self.db.add(row)
			try:
				self.db.commit()
			except IntegrityError:
				# a concurrent registration inserted the same pair first
				self.db.rollback()
				row = self._get_row(account, credential_id)
				if row is None:
					raise
				self._refresh(row, public_key, counter)
		else:
			self._refresh(row, public_key, counter)

		logger.info(f"Passkey stored for account {account}")
		return Credential.from_row(row)

	def find(self, account: str, credential_id: str) -> Credential | None:
		row = self._get_row(account, credential_id)
		return Credential.from_row(row) if row else None

	def list_credential_ids(self, account: str) -> list[str]:
		stmt = (
			select(PasskeyCredential.credential_id)
			.where(PasskeyCredential.account == account)
			.order_by(PasskeyCredential.id)
		)
		return list(self.db.scalars(stmt))

	def list_credentials(self, account: str) -> list[dict]:
		"""List an account's passkeys without key material."""
		stmt = (
			select(PasskeyCredential)
			.where(PasskeyCredential.account == account)
			.order_by(PasskeyCredential.id)
		)
		return [
			{
				"credential_id": row.credential_id,
				"sign_count": row.sign_count,
				"created_at": row.created_at.isoformat() if row.created_at else None,
				"last_used_at": row.last_used_at.isoformat() if row.last_used_at else None,
			}
			for row in self.db.scalars(stmt)
		]

	def update_counter(self, account: str, credential_id: str, new_counter: int) -> bool:
		"""Write a new signature counter in one conditional UPDATE.

		The row is only touched while its stored counter is not above
		``new_counter``, so the regression check happens against the value
		visible at write time. Returns False when nothing was written.
		"""
		result = self.db.execute(
			update(PasskeyCredential)
			.where(
				PasskeyCredential.account == account,
				PasskeyCredential.credential_id == credential_id,
				PasskeyCredential.sign_count <= new_counter,
			)
			.values(sign_count=new_counter, last_used_at=self.clock())
			.execution_options(synchronize_session=False)
		)
		self.db.commit()
		# the identity map may hold the pre-update row
		self.db.expire_all()
		return result.rowcount == 1

	def _get_row(self, account: str, credential_id: str) -> PasskeyCredential | None:
		return self.db.scalar(
			select(PasskeyCredential).where(
				PasskeyCredential.account == account,
				PasskeyCredential.credential_id == credential_id,
			)
		)

	def _refresh(self, row: PasskeyCredential, public_key: bytes, counter: int) -> None:
		if to_bytes(row.public_key) != public_key:
			logger.warning(f"Refusing to replace the key of credential {row.credential_id}")
			raise VerificationFailed("credential is registered with a different public key")
		row.sign_count = max(row.sign_count, counter)
		self.db.commit()
