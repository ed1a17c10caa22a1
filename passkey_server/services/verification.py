# (c) Copyright Datacraft, 2026
"""Signature and attestation checks, delegated to py_webauthn."""
import logging
from dataclasses import dataclass
from typing import Any, Protocol

from webauthn import (
	verify_authentication_response,
	verify_registration_response,
)
from webauthn.helpers.exceptions import WebAuthnException

from passkey_server.errors import VerificationFailed

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RegistrationVerification:
	credential_id: bytes
	public_key: bytes
	counter: int


@dataclass(frozen=True)
class AuthenticationVerification:
	new_counter: int


class VerificationPrimitive(Protocol):
	"""Cryptographic checks a ceremony relies on.

	Implementations raise VerificationFailed instead of returning a falsy
	result.
	"""

	def verify_registration(
		self,
		response: dict[str, Any],
		expected_challenge: bytes,
		expected_origin: str,
		expected_rp_id: str,
	) -> RegistrationVerification:
		...

	def verify_authentication(
		self,
		response: dict[str, Any],
		expected_challenge: bytes,
		expected_origin: str,
		expected_rp_id: str,
		stored_public_key: bytes,
		stored_counter: int,
	) -> AuthenticationVerification:
		...


class WebAuthnVerifier:
	"""VerificationPrimitive backed by py_webauthn.

	Attestation statements are parsed but not chained to a trust root, which
	matches the "none" attestation preference sent in registration options.
	"""

	def __init__(self, require_user_verification: bool = False):
		self.require_user_verification = require_user_verification

	def verify_registration(
		self,
		response: dict[str, Any],
		expected_challenge: bytes,
		expected_origin: str,
		expected_rp_id: str,
	) -> RegistrationVerification:
		try:
			verification = verify_registration_response(
				credential=response,
				expected_challenge=expected_challenge,
				expected_rp_id=expected_rp_id,
				expected_origin=expected_origin,
				require_user_verification=self.require_user_verification,
			)
		except (WebAuthnException, ValueError, KeyError, TypeError) as e:
			logger.warning(f"Registration verification failed: {e}")
			raise VerificationFailed(str(e)) from e

		return RegistrationVerification(
			credential_id=verification.credential_id,
			public_key=verification.credential_public_key,
			counter=verification.sign_count,
		)

	def verify_authentication(
		self,
		response: dict[str, Any],
		expected_challenge: bytes,
		expected_origin: str,
		expected_rp_id: str,
		stored_public_key: bytes,
		stored_counter: int,
	) -> AuthenticationVerification:
		# py_webauthn rejects a counter that is not strictly greater than the
		# stored one. The ceremony owns the counter policy (equal is allowed,
		# lower is CounterRegression) and re-checks it at write time, so the
		# library only sees a zero baseline here.
		try:
			verification = verify_authentication_response(
				credential=response,
				expected_challenge=expected_challenge,
				expected_rp_id=expected_rp_id,
				expected_origin=expected_origin,
				credential_public_key=stored_public_key,
				credential_current_sign_count=0,
				require_user_verification=self.require_user_verification,
			)
		except (WebAuthnException, ValueError, KeyError, TypeError) as e:
			logger.warning(f"Authentication verification failed: {e}")
			raise VerificationFailed(str(e)) from e

		logger.debug(f"Assertion signature valid, counter {stored_counter} -> {verification.new_sign_count}")
		return AuthenticationVerification(new_counter=verification.new_sign_count)
