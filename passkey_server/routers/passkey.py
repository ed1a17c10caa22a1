# (c) Copyright Datacraft, 2026
"""Admin WebAuthn/Passkey API endpoints."""
import logging

from fastapi import APIRouter, HTTPException, Depends, Response, status
from sqlalchemy.orm import Session

from passkey_server import schema
from passkey_server.accounts import AccountRegistry, StaticAccountRegistry, resolve_account
from passkey_server.config import Settings, get_settings
from passkey_server.db.engine import get_db
from passkey_server.errors import ConfigurationMissing
from passkey_server.services import (
	AuthenticationCeremony,
	ChallengeStore,
	CredentialStore,
	JWTSessionIssuer,
	RegistrationCeremony,
	RegistrationOptions,
	RelyingParty,
	VerificationPrimitive,
	WebAuthnVerifier,
)
from passkey_server.utils import get_current_account, get_session_issuer, safe_next

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/admin/webauthn", tags=["Passkeys"])

# Details stay in the logs; unauthenticated callers learn nothing more
GENERIC_FAILURE = "verification failed"
NOT_CONFIGURED = "passkey login is not configured"


def get_accounts(settings: Settings = Depends(get_settings)) -> AccountRegistry:
	return StaticAccountRegistry(settings.admin_emails)


def get_verifier() -> VerificationPrimitive:
	return WebAuthnVerifier()


def get_relying_party(settings: Settings = Depends(get_settings)) -> RelyingParty:
	return RelyingParty(
		id=settings.webauthn_rp_id,
		name=settings.webauthn_rp_name,
		origin=settings.webauthn_origin,
		timeout=settings.webauthn_timeout,
	)


def get_registration_ceremony(
	db: Session = Depends(get_db),
	settings: Settings = Depends(get_settings),
	rp: RelyingParty = Depends(get_relying_party),
	accounts: AccountRegistry = Depends(get_accounts),
	verifier: VerificationPrimitive = Depends(get_verifier),
) -> RegistrationCeremony:
	return RegistrationCeremony(
		rp=rp,
		accounts=accounts,
		challenges=ChallengeStore(db, ttl_minutes=settings.challenge_ttl_minutes),
		credentials=CredentialStore(db),
		verifier=verifier,
		allow_value_fallback=settings.challenge_value_fallback,
	)


def get_authentication_ceremony(
	db: Session = Depends(get_db),
	settings: Settings = Depends(get_settings),
	rp: RelyingParty = Depends(get_relying_party),
	accounts: AccountRegistry = Depends(get_accounts),
	verifier: VerificationPrimitive = Depends(get_verifier),
) -> AuthenticationCeremony:
	return AuthenticationCeremony(
		rp=rp,
		accounts=accounts,
		challenges=ChallengeStore(db, ttl_minutes=settings.challenge_ttl_minutes),
		credentials=CredentialStore(db),
		verifier=verifier,
	)


def _require_configured(accounts: AccountRegistry) -> None:
	if accounts.default() is None:
		raise HTTPException(
			status_code=status.HTTP_400_BAD_REQUEST,
			detail=NOT_CONFIGURED,
		)


@router.post("/register/options", response_model=RegistrationOptions)
def registration_options(
	request: schema.RegistrationOptionsRequest | None = None,
	ceremony: RegistrationCeremony = Depends(get_registration_ceremony),
	accounts: AccountRegistry = Depends(get_accounts),
) -> RegistrationOptions:
	"""Start passkey registration."""
	try:
		account = resolve_account(accounts, request.email if request else None)
	except ConfigurationMissing:
		raise HTTPException(
			status_code=status.HTTP_400_BAD_REQUEST,
			detail=NOT_CONFIGURED,
		)
	return ceremony.begin(account)


@router.post("/register/verify", response_model=schema.PasskeyResponse)
def registration_verify(
	request: schema.RegistrationVerifyRequest,
	ceremony: RegistrationCeremony = Depends(get_registration_ceremony),
	accounts: AccountRegistry = Depends(get_accounts),
) -> schema.PasskeyResponse:
	"""Complete passkey registration."""
	_require_configured(accounts)

	result = ceremony.finish(request.attestation, request.challenge_id)
	if not result.ok:
		raise HTTPException(
			status_code=status.HTTP_400_BAD_REQUEST,
			detail=GENERIC_FAILURE,
		)

	return schema.PasskeyResponse(ok=True)


@router.post("/login/options", response_model=schema.AuthenticationOptionsResponse)
def authentication_options(
	request: schema.AuthenticationOptionsRequest | None = None,
	ceremony: AuthenticationCeremony = Depends(get_authentication_ceremony),
	accounts: AccountRegistry = Depends(get_accounts),
) -> schema.AuthenticationOptionsResponse:
	"""Start passkey login (no auth required)."""
	try:
		account = resolve_account(accounts, request.email if request else None)
	except ConfigurationMissing:
		raise HTTPException(
			status_code=status.HTTP_400_BAD_REQUEST,
			detail=NOT_CONFIGURED,
		)

	options = ceremony.begin(account)
	return schema.AuthenticationOptionsResponse(
		**options.model_dump(),
		next=safe_next(request.next if request else None),
	)


@router.post("/login/verify", response_model=schema.PasskeyResponse)
def authentication_verify(
	request: schema.AuthenticationVerifyRequest,
	response: Response,
	ceremony: AuthenticationCeremony = Depends(get_authentication_ceremony),
	accounts: AccountRegistry = Depends(get_accounts),
	issuer: JWTSessionIssuer = Depends(get_session_issuer),
	settings: Settings = Depends(get_settings),
) -> schema.PasskeyResponse:
	"""Complete passkey login and open an admin session."""
	_require_configured(accounts)

	result = ceremony.finish(request.assertion, request.challenge_id)
	if not result.ok:
		raise HTTPException(
			status_code=status.HTTP_401_UNAUTHORIZED,
			detail=GENERIC_FAILURE,
		)

	token = issuer.issue(result.account)
	response.set_cookie(
		key=settings.cookie_name,
		value=token,
		max_age=settings.token_expire_minutes * 60,
		httponly=True,
		secure=True,
		samesite="lax",
		path="/",
	)
	return schema.PasskeyResponse(
		ok=True,
		account=result.account,
		redirect_to=safe_next(request.next),
	)


@router.get("/session", response_model=schema.SessionResponse)
def current_session(
	account: str = Depends(get_current_account),
) -> schema.SessionResponse:
	"""Who is logged in."""
	return schema.SessionResponse(account=account)


@router.get("/credentials", response_model=list[schema.CredentialInfo])
def list_credentials(
	account: str = Depends(get_current_account),
	db: Session = Depends(get_db),
) -> list[schema.CredentialInfo]:
	"""Passkeys registered for the logged in account."""
	return [
		schema.CredentialInfo(**info)
		for info in CredentialStore(db).list_credentials(account)
	]
