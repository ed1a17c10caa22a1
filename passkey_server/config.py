import logging

from functools import lru_cache
from enum import Enum

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


logger = logging.getLogger(__name__)


class Algs(str, Enum):
    HS256 = "HS256"
    HS384 = "HS384"
    HS512 = "HS512"


class Settings(BaseSettings):
    secret_key: str
    db_url: str = "sqlite:///./passkeys.db"

    token_algorithm: Algs = Algs.HS256
    token_expire_minutes: int = Field(gt=0, default=1360)
    cookie_name: str = "admin_session"

    # WebAuthn/Passkey settings
    webauthn_rp_id: str = Field(default="localhost", description="Relying Party ID (domain)")
    webauthn_rp_name: str = Field(default="Admin", description="Relying Party display name")
    webauthn_origin: str = Field(default="https://localhost", description="Expected origin for WebAuthn")
    webauthn_timeout: int = Field(default=60000, description="WebAuthn timeout in ms")

    # Comma separated, e.g. "admin@example.com,ops@example.com"
    admin_email_allowlist: str = Field(default="", description="Accounts allowed to own passkeys")

    challenge_ttl_minutes: int = Field(gt=0, default=5)
    challenge_value_fallback: bool = Field(
        default=True,
        description="Resolve registration challenges by the value signed in clientDataJSON "
                    "when the client lost the challenge id",
    )

    model_config = SettingsConfigDict(env_prefix='passkey_')

    @property
    def admin_emails(self) -> list[str]:
        return [
            email.strip()
            for email in self.admin_email_allowlist.split(",")
            if email.strip()
        ]


@lru_cache()
def get_settings():
    return Settings()
