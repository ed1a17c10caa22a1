# (c) Copyright Datacraft, 2026
"""Passkey registration ceremony."""
import json
import logging
from typing import Any

from pydantic import BaseModel
from sqlalchemy.exc import SQLAlchemyError
from webauthn import generate_registration_options, options_to_json
from webauthn.helpers.structs import (
	AttestationConveyancePreference,
	AuthenticatorSelectionCriteria,
	COSEAlgorithmIdentifier,
	ResidentKeyRequirement,
	UserVerificationRequirement,
)

from passkey_server.accounts import Account, AccountRegistry
from passkey_server.encoding import (
	canonicalize,
	extract_client_challenge,
	normalize_credential_response,
	to_bytes,
)
from passkey_server.errors import (
	ChallengeNotFound,
	ChallengePurposeMismatch,
	ConfigurationMissing,
	EncodingInvalid,
	ErrorKind,
	PasskeyError,
)
from .ceremony import CeremonyResult, CeremonyState, RelyingParty, credential_descriptors
from .challenges import Challenge, ChallengeStore, PURPOSE_REGISTER
from .credentials import CredentialStore
from .verification import VerificationPrimitive

logger = logging.getLogger(__name__)

SUPPORTED_ALGORITHMS = [
	COSEAlgorithmIdentifier.ECDSA_SHA_256,
	COSEAlgorithmIdentifier.RSASSA_PKCS1_v1_5_SHA_256,
]


class RegistrationOptions(BaseModel):
	"""Options for navigator.credentials.create()."""
	challenge_id: str
	challenge: str
	rp_id: str
	rp_name: str
	user_name: str
	timeout: int
	attestation: str
	exclude_credentials: list[str] = []
	public_key: dict[str, Any]


class RegistrationCeremony:
	"""Adds a new passkey to an account.

	begin() issues a ``register`` challenge and the creation options;
	finish() consumes the challenge, verifies the attestation and stores the
	credential. A failed finish() never stores anything and never gives the
	challenge back.
	"""

	def __init__(
		self,
		rp: RelyingParty,
		accounts: AccountRegistry,
		challenges: ChallengeStore,
		credentials: CredentialStore,
		verifier: VerificationPrimitive,
		allow_value_fallback: bool = True,
	):
		self.rp = rp
		self.accounts = accounts
		self.challenges = challenges
		self.credentials = credentials
		self.verifier = verifier
		self.allow_value_fallback = allow_value_fallback

	def begin(self, account: Account) -> RegistrationOptions:
		existing = self.credentials.list_credential_ids(account.email)
		issued = self.challenges.issue(PURPOSE_REGISTER, account.email)

		options = generate_registration_options(
			rp_id=self.rp.id,
			rp_name=self.rp.name,
			user_id=account.email.encode(),
			user_name=account.email,
			user_display_name=account.display_name,
			challenge=issued.value,
			timeout=self.rp.timeout,
			attestation=AttestationConveyancePreference.NONE,
			authenticator_selection=AuthenticatorSelectionCriteria(
				resident_key=ResidentKeyRequirement.PREFERRED,
				user_verification=UserVerificationRequirement.PREFERRED,
			),
			supported_pub_key_algs=SUPPORTED_ALGORITHMS,
			exclude_credentials=credential_descriptors(existing) or None,
		)

		return RegistrationOptions(
			challenge_id=issued.id,
			challenge=issued.encoded,
			rp_id=self.rp.id,
			rp_name=self.rp.name,
			user_name=account.email,
			timeout=self.rp.timeout,
			attestation=AttestationConveyancePreference.NONE.value,
			exclude_credentials=existing,
			public_key=json.loads(options_to_json(options)),
		)

	def finish(
		self,
		attestation_response: Any,
		challenge_id: str | None = None,
	) -> CeremonyResult:
		reached = CeremonyState.CHALLENGE_ISSUED
		try:
			challenge = self._resolve_challenge(attestation_response, challenge_id)
			account = self._owner(challenge)
			response = normalize_credential_response(attestation_response)

			verification = self.verifier.verify_registration(
				response,
				expected_challenge=challenge.value,
				expected_origin=self.rp.origin,
				expected_rp_id=self.rp.id,
			)
			reached = CeremonyState.VERIFIED

			credential_id = canonicalize(verification.credential_id)
			if not credential_id:
				raise EncodingInvalid("credential id is empty")
			public_key = to_bytes(verification.public_key)
			counter = verification.counter
			if isinstance(counter, bool) or not isinstance(counter, int) or counter < 0:
				raise EncodingInvalid("signature counter is not an unsigned integer")

			self.credentials.upsert(account, credential_id, public_key, counter)
			reached = CeremonyState.STORED
		except PasskeyError as e:
			logger.warning(f"Passkey registration rejected: {e.kind.value} after {reached.value}")
			return CeremonyResult.failure(e.kind, reached)
		except SQLAlchemyError as e:
			logger.error(f"Passkey registration failed on storage: {e}")
			self.credentials.db.rollback()
			return CeremonyResult.failure(ErrorKind.STORAGE_UNAVAILABLE, reached)

		logger.info(f"Passkey registered for account {account}")
		return CeremonyResult.success(account, credential_id)

	def _resolve_challenge(self, response: Any, challenge_id: str | None) -> Challenge:
		"""Find the challenge this response answers.

		The id handed out by begin() is the only strategy when the client sends
		one. Clients that lost it may fall back to the value signed into
		clientDataJSON, restricted to unexpired ``register`` challenges.
		"""
		if challenge_id:
			challenge = self.challenges.consume_by_id(challenge_id)
		elif self.allow_value_fallback:
			embedded = extract_client_challenge(response)
			challenge = (
				self.challenges.consume_by_value(PURPOSE_REGISTER, embedded)
				if embedded else None
			)
		else:
			challenge = None

		if challenge is None:
			raise ChallengeNotFound()
		if challenge.purpose != PURPOSE_REGISTER:
			raise ChallengePurposeMismatch()
		return challenge

	def _owner(self, challenge: Challenge) -> str:
		account = self.accounts.get(challenge.account) if challenge.account else None
		if account is None:
			raise ConfigurationMissing("challenge account is no longer configured")
		return account.email
