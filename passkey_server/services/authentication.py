# (c) Copyright Datacraft, 2026
"""Passkey authentication ceremony."""
import json
import logging
from typing import Any

from pydantic import BaseModel
from sqlalchemy.exc import SQLAlchemyError
from webauthn import generate_authentication_options, options_to_json
from webauthn.helpers.structs import UserVerificationRequirement

from passkey_server.accounts import Account, AccountRegistry
from passkey_server.encoding import normalize_credential_response
from passkey_server.errors import (
	ChallengeNotFound,
	ChallengePurposeMismatch,
	ConfigurationMissing,
	CounterRegression,
	CredentialNotFound,
	ErrorKind,
	PasskeyError,
)
from .ceremony import CeremonyResult, CeremonyState, RelyingParty, credential_descriptors
from .challenges import ChallengeStore, PURPOSE_LOGIN
from .credentials import CredentialStore
from .verification import VerificationPrimitive

logger = logging.getLogger(__name__)


class AuthenticationOptions(BaseModel):
	"""Options for navigator.credentials.get()."""
	challenge_id: str
	challenge: str
	rp_id: str
	timeout: int
	user_verification: str
	allow_credentials: list[str] = []
	public_key: dict[str, Any]


class AuthenticationCeremony:
	"""Verifies a passkey login against a stored credential."""

	def __init__(
		self,
		rp: RelyingParty,
		accounts: AccountRegistry,
		challenges: ChallengeStore,
		credentials: CredentialStore,
		verifier: VerificationPrimitive,
	):
		self.rp = rp
		self.accounts = accounts
		self.challenges = challenges
		self.credentials = credentials
		self.verifier = verifier

	def begin(self, account: Account) -> AuthenticationOptions:
		"""Issue a ``login`` challenge.

		An empty allow-list is passed through as is: no authenticator will be
		able to answer it, which is the correct outcome for an account without
		passkeys.
		"""
		allowed = self.credentials.list_credential_ids(account.email)
		issued = self.challenges.issue(PURPOSE_LOGIN, account.email)

		options = generate_authentication_options(
			rp_id=self.rp.id,
			challenge=issued.value,
			timeout=self.rp.timeout,
			allow_credentials=credential_descriptors(allowed),
			user_verification=UserVerificationRequirement.PREFERRED,
		)

		return AuthenticationOptions(
			challenge_id=issued.id,
			challenge=issued.encoded,
			rp_id=self.rp.id,
			timeout=self.rp.timeout,
			user_verification=UserVerificationRequirement.PREFERRED.value,
			allow_credentials=allowed,
			public_key=json.loads(options_to_json(options)),
		)

	def finish(self, assertion_response: Any, challenge_id: str | None) -> CeremonyResult:
		"""Consume the challenge, verify the assertion and advance the counter.

		Nothing but the challenge is touched unless every step succeeds.
		"""
		reached = CeremonyState.CHALLENGE_ISSUED
		try:
			challenge = self.challenges.consume_by_id(challenge_id)
			if challenge is None:
				raise ChallengeNotFound()
			if challenge.purpose != PURPOSE_LOGIN:
				raise ChallengePurposeMismatch()

			account = self.accounts.get(challenge.account) if challenge.account else None
			if account is None:
				raise ConfigurationMissing("challenge account is no longer configured")

			response = normalize_credential_response(assertion_response)
			credential_id = response["id"]
			stored = self.credentials.find(account.email, credential_id)
			if stored is None:
				raise CredentialNotFound()

			verification = self.verifier.verify_authentication(
				response,
				expected_challenge=challenge.value,
				expected_origin=self.rp.origin,
				expected_rp_id=self.rp.id,
				stored_public_key=stored.public_key,
				stored_counter=stored.sign_count,
			)
			reached = CeremonyState.VERIFIED

			new_counter = verification.new_counter
			if new_counter < stored.sign_count:
				raise CounterRegression(
					f"counter went from {stored.sign_count} to {new_counter}"
				)
			reached = CeremonyState.COUNTER_CHECKED

			# re-checked by the conditional write against the current row
			if not self.credentials.update_counter(account.email, credential_id, new_counter):
				raise CounterRegression("counter advanced concurrently")
			reached = CeremonyState.STORED
		except PasskeyError as e:
			logger.warning(f"Passkey login rejected: {e.kind.value} after {reached.value}")
			return CeremonyResult.failure(e.kind, reached)
		except SQLAlchemyError as e:
			logger.error(f"Passkey login failed on storage: {e}")
			self.credentials.db.rollback()
			return CeremonyResult.failure(ErrorKind.STORAGE_UNAVAILABLE, reached)

		logger.info(f"Passkey login succeeded for account {account.email}")
		return CeremonyResult.success(account.email, credential_id)
