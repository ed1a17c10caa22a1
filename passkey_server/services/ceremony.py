# (c) Copyright Datacraft, 2026
"""Types shared by the registration and authentication ceremonies."""
from dataclasses import dataclass
from enum import Enum

from webauthn.helpers.structs import (
	AuthenticatorTransport,
	PublicKeyCredentialDescriptor,
	PublicKeyCredentialType,
)

from passkey_server.encoding import to_bytes
from passkey_server.errors import ErrorKind

# Offered for every stored credential; browsers ignore the ones they lack
TRANSPORTS = [
	AuthenticatorTransport.INTERNAL,
	AuthenticatorTransport.HYBRID,
	AuthenticatorTransport.USB,
	AuthenticatorTransport.BLE,
	AuthenticatorTransport.NFC,
]


class CeremonyState(str, Enum):
	IDLE = "idle"
	CHALLENGE_ISSUED = "challenge_issued"
	VERIFIED = "verified"
	COUNTER_CHECKED = "counter_checked"
	STORED = "stored"
	SUCCESS = "success"
	FAILED = "failed"


@dataclass(frozen=True)
class RelyingParty:
	"""Who we are, as the authenticator and browser will check it."""
	id: str
	name: str
	origin: str
	timeout: int = 60000


@dataclass(frozen=True)
class CeremonyResult:
	"""Outcome of a finish-* step.

	``kind`` and ``reached`` are for logs and tests; callers outside the
	service only branch on ``ok``.
	"""
	ok: bool
	kind: ErrorKind | None = None
	account: str | None = None
	credential_id: str | None = None
	reached: CeremonyState = CeremonyState.IDLE

	@property
	def state(self) -> CeremonyState:
		return CeremonyState.SUCCESS if self.ok else CeremonyState.FAILED

	@classmethod
	def success(cls, account: str, credential_id: str) -> "CeremonyResult":
		return cls(
			ok=True,
			account=account,
			credential_id=credential_id,
			reached=CeremonyState.SUCCESS,
		)

	@classmethod
	def failure(cls, kind: ErrorKind, reached: CeremonyState) -> "CeremonyResult":
		return cls(ok=False, kind=kind, reached=reached)


def credential_descriptors(credential_ids: list[str]) -> list[PublicKeyCredentialDescriptor]:
	return [
		PublicKeyCredentialDescriptor(
			id=to_bytes(credential_id),
			type=PublicKeyCredentialType.PUBLIC_KEY,
			transports=TRANSPORTS,
		)
		for credential_id in credential_ids
	]
