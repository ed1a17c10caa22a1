# (c) Copyright Datacraft, 2026
# Passkey API schemas
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class RegistrationOptionsRequest(BaseModel):
    """Request to start passkey registration."""
    email: str | None = None


class RegistrationVerifyRequest(BaseModel):
    """Request to complete passkey registration."""
    attestation: dict[str, Any]
    challenge_id: str | None = Field(default=None, alias="challengeId")

    model_config = ConfigDict(populate_by_name=True)


class AuthenticationOptionsRequest(BaseModel):
    """Request to start passkey login."""
    email: str | None = None
    next: str | None = None


class AuthenticationOptionsResponse(BaseModel):
    """WebAuthn request options plus where to go after login."""
    challenge_id: str
    challenge: str
    rp_id: str
    timeout: int
    user_verification: str
    allow_credentials: list[str]
    public_key: dict[str, Any]
    next: str

    model_config = ConfigDict(from_attributes=True)


class AuthenticationVerifyRequest(BaseModel):
    """Request to complete passkey login."""
    assertion: dict[str, Any]
    challenge_id: str = Field(alias="challengeId")
    next: str | None = None

    model_config = ConfigDict(populate_by_name=True)


class PasskeyResponse(BaseModel):
    """Generic passkey operation response."""
    ok: bool
    account: str | None = None
    redirect_to: str | None = None

    model_config = ConfigDict(from_attributes=True)


class SessionResponse(BaseModel):
    """The account behind the current admin session."""
    account: str

    model_config = ConfigDict(from_attributes=True)


class CredentialInfo(BaseModel):
    """A registered passkey, without key material."""
    credential_id: str
    sign_count: int
    created_at: str | None = None
    last_used_at: str | None = None
