# (c) Copyright Datacraft, 2026
from fastapi import Request, Depends, HTTPException, status
from fastapi.security.utils import get_authorization_scheme_param
import jwt

from .config import Settings, get_settings
from .services.sessions import JWTSessionIssuer

DEFAULT_NEXT = "/admin"


def safe_next(next_url: str | None) -> str:
    """Only same-site absolute paths are allowed as post-login targets."""
    if not isinstance(next_url, str) or not next_url.startswith("/"):
        return DEFAULT_NEXT
    if next_url.startswith("//") or next_url.startswith("/\\"):
        return DEFAULT_NEXT
    return next_url


def from_header(request: Request) -> str | None:
    authorization = request.headers.get("Authorization")
    scheme, token = get_authorization_scheme_param(authorization)

    if not authorization or scheme.lower() != "bearer":
        return None

    return token


def from_cookie(request: Request, settings: Settings) -> str | None:
    return request.cookies.get(settings.cookie_name, None)


def get_session_issuer(settings: Settings = Depends(get_settings)) -> JWTSessionIssuer:
    return JWTSessionIssuer(
        secret_key=settings.secret_key,
        algorithm=settings.token_algorithm.value,
        expire_minutes=settings.token_expire_minutes,
    )


async def get_current_account(
    request: Request,
    settings: Settings = Depends(get_settings),
    issuer: JWTSessionIssuer = Depends(get_session_issuer),
) -> str:
    """Extract the admin account from the session cookie or bearer token."""
    token = from_cookie(request, settings) or from_header(request)

    if not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )

    try:
        return issuer.decode(token)
    except jwt.ExpiredSignatureError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Session has expired",
        )
    except jwt.InvalidTokenError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid session",
        )
