# (c) Copyright Datacraft, 2026
"""Passkey services."""
from .authentication import AuthenticationCeremony, AuthenticationOptions
from .ceremony import CeremonyResult, CeremonyState, RelyingParty
from .challenges import Challenge, ChallengeStore, IssuedChallenge
from .credentials import Credential, CredentialStore
from .registration import RegistrationCeremony, RegistrationOptions
from .sessions import JWTSessionIssuer, SessionIssuer
from .verification import (
	AuthenticationVerification,
	RegistrationVerification,
	VerificationPrimitive,
	WebAuthnVerifier,
)

__all__ = [
	"AuthenticationCeremony",
	"AuthenticationOptions",
	"AuthenticationVerification",
	"CeremonyResult",
	"CeremonyState",
	"Challenge",
	"ChallengeStore",
	"Credential",
	"CredentialStore",
	"IssuedChallenge",
	"JWTSessionIssuer",
	"RegistrationCeremony",
	"RegistrationOptions",
	"RegistrationVerification",
	"RelyingParty",
	"SessionIssuer",
	"VerificationPrimitive",
	"WebAuthnVerifier",
]
