# (c) Copyright Datacraft, 2026
"""Failure taxonomy for passkey ceremonies."""

from enum import Enum


class ErrorKind(str, Enum):
	"""Why a ceremony failed. For diagnostics only, never shown to the caller."""
	CHALLENGE_NOT_FOUND = "ChallengeNotFound"
	CHALLENGE_PURPOSE_MISMATCH = "ChallengePurposeMismatch"
	CREDENTIAL_NOT_FOUND = "CredentialNotFound"
	VERIFICATION_FAILED = "VerificationFailed"
	COUNTER_REGRESSION = "CounterRegression"
	ENCODING_INVALID = "EncodingInvalid"
	CONFIGURATION_MISSING = "ConfigurationMissing"
	STORAGE_UNAVAILABLE = "StorageUnavailable"


class PasskeyError(Exception):
	"""Base class for every failure raised inside a ceremony."""

	kind: ErrorKind

	def __init__(self, message: str | None = None):
		super().__init__(message or self.kind.value)


class ChallengeNotFound(PasskeyError):
	kind = ErrorKind.CHALLENGE_NOT_FOUND


class ChallengePurposeMismatch(PasskeyError):
	kind = ErrorKind.CHALLENGE_PURPOSE_MISMATCH


class CredentialNotFound(PasskeyError):
	kind = ErrorKind.CREDENTIAL_NOT_FOUND


class VerificationFailed(PasskeyError):
	kind = ErrorKind.VERIFICATION_FAILED


class CounterRegression(PasskeyError):
	kind = ErrorKind.COUNTER_REGRESSION


class EncodingInvalid(PasskeyError, ValueError):
	kind = ErrorKind.ENCODING_INVALID


class ConfigurationMissing(PasskeyError):
	kind = ErrorKind.CONFIGURATION_MISSING


class StorageUnavailable(PasskeyError):
	kind = ErrorKind.STORAGE_UNAVAILABLE
