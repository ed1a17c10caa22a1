"""
Pytest fixtures for passkey-server tests.

Ceremonies run against an in-memory SQLite database. The cryptographic
verification primitive is replaced by SimulatedVerifier, which checks the
challenge, type and origin a SimulatedAuthenticator signed into clientDataJSON
and reports whatever counter the authenticator claims.
"""

import json
from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
from webauthn.helpers import bytes_to_base64url

from passkey_server.accounts import StaticAccountRegistry
from passkey_server.config import Settings, get_settings
from passkey_server.db.base import Base
from passkey_server.db.engine import get_db
from passkey_server.encoding import to_bytes, to_canonical_string
from passkey_server.errors import VerificationFailed
from passkey_server.main import create_app
from passkey_server.routers.passkey import get_verifier
from passkey_server.services import (
    AuthenticationCeremony,
    AuthenticationVerification,
    ChallengeStore,
    CredentialStore,
    RegistrationCeremony,
    RegistrationVerification,
    RelyingParty,
)

ADMIN_EMAIL = "admin@example.com"
RP_ID = "localhost"
ORIGIN = "http://localhost:8000"


def encode_client_data(challenge: str, ceremony_type: str, origin: str = ORIGIN) -> str:
    payload = {"type": ceremony_type, "challenge": challenge, "origin": origin}
    return bytes_to_base64url(json.dumps(payload).encode())


class SimulatedAuthenticator:
    """Produces browser-shaped payloads for one credential."""

    def __init__(self, credential_id: bytes = b"authenticator-0001"):
        self.credential_id = credential_id

    @property
    def encoded_id(self) -> str:
        return bytes_to_base64url(self.credential_id)

    @property
    def public_key(self) -> bytes:
        return b"cose-key:" + self.credential_id

    def attestation(self, challenge: str, counter: int = 0, origin: str = ORIGIN) -> dict:
        return {
            "id": self.encoded_id,
            "rawId": self.encoded_id,
            "type": "public-key",
            "response": {
                "clientDataJSON": encode_client_data(challenge, "webauthn.create", origin),
                "attestationObject": bytes_to_base64url(b"attestation-none"),
                "transports": ["internal"],
            },
            "simulatedCounter": counter,
        }

    def assertion(self, challenge: str, counter: int, origin: str = ORIGIN) -> dict:
        return {
            "id": self.encoded_id,
            "rawId": self.encoded_id,
            "type": "public-key",
            "response": {
                "clientDataJSON": encode_client_data(challenge, "webauthn.get", origin),
                "authenticatorData": bytes_to_base64url(b"authenticator-data"),
                "signature": bytes_to_base64url(b"signature"),
                "userHandle": None,
            },
            "simulatedCounter": counter,
        }


class SimulatedVerifier:
    """Stand-in for the cryptographic verification primitive."""

    def __init__(self):
        self.calls = []

    def _check_client_data(self, response, expected_challenge, expected_origin, ceremony_type):
        client_data = json.loads(to_bytes(response["response"]["clientDataJSON"]))
        if client_data.get("type") != ceremony_type:
            raise VerificationFailed("unexpected client data type")
        if client_data.get("challenge") != to_canonical_string(expected_challenge):
            raise VerificationFailed("challenge mismatch")
        if client_data.get("origin") != expected_origin:
            raise VerificationFailed("origin mismatch")

    def verify_registration(self, response, expected_challenge, expected_origin, expected_rp_id):
        self.calls.append(("registration", expected_rp_id))
        self._check_client_data(response, expected_challenge, expected_origin, "webauthn.create")
        credential_id = to_bytes(response["rawId"])
        return RegistrationVerification(
            credential_id=credential_id,
            public_key=b"cose-key:" + credential_id,
            counter=response["simulatedCounter"],
        )

    def verify_authentication(
        self,
        response,
        expected_challenge,
        expected_origin,
        expected_rp_id,
        stored_public_key,
        stored_counter,
    ):
        self.calls.append(("authentication", stored_counter))
        self._check_client_data(response, expected_challenge, expected_origin, "webauthn.get")
        if stored_public_key != b"cose-key:" + to_bytes(response["rawId"]):
            raise VerificationFailed("signature does not match stored key")
        return AuthenticationVerification(new_counter=response["simulatedCounter"])


class Clock:
    """Controllable replacement for utc_now."""

    def __init__(self):
        self.now = datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


@pytest.fixture
def settings():
    return Settings(
        secret_key="test-secret-key",
        db_url="sqlite://",
        webauthn_rp_id=RP_ID,
        webauthn_rp_name="Test Admin",
        webauthn_origin=ORIGIN,
        admin_email_allowlist=ADMIN_EMAIL,
        token_expire_minutes=30,
    )


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def db(engine):
    session = sessionmaker(engine, expire_on_commit=False)()
    yield session
    session.close()


@pytest.fixture
def clock():
    return Clock()


@pytest.fixture
def rp():
    return RelyingParty(id=RP_ID, name="Test Admin", origin=ORIGIN, timeout=60000)


@pytest.fixture
def accounts():
    return StaticAccountRegistry([ADMIN_EMAIL])


@pytest.fixture
def admin(accounts):
    return accounts.get(ADMIN_EMAIL)


@pytest.fixture
def challenge_store(db, clock):
    return ChallengeStore(db, ttl_minutes=5, clock=clock)


@pytest.fixture
def credential_store(db, clock):
    return CredentialStore(db, clock=clock)


@pytest.fixture
def verifier():
    return SimulatedVerifier()


@pytest.fixture
def authenticator():
    return SimulatedAuthenticator()


@pytest.fixture
def registration(rp, accounts, challenge_store, credential_store, verifier):
    return RegistrationCeremony(
        rp=rp,
        accounts=accounts,
        challenges=challenge_store,
        credentials=credential_store,
        verifier=verifier,
    )


@pytest.fixture
def authentication(rp, accounts, challenge_store, credential_store, verifier):
    return AuthenticationCeremony(
        rp=rp,
        accounts=accounts,
        challenges=challenge_store,
        credentials=credential_store,
        verifier=verifier,
    )


@pytest.fixture
def registered(registration, admin, authenticator, credential_store):
    """Factory: register ``authenticator`` for the admin with a given counter."""

    def _register(counter: int = 0, device: SimulatedAuthenticator | None = None):
        device = device or authenticator
        options = registration.begin(admin)
        result = registration.finish(device.attestation(options.challenge, counter), options.challenge_id)
        assert result.ok, result.kind
        return credential_store.find(ADMIN_EMAIL, device.encoded_id)

    return _register


@pytest.fixture
def app(settings, db, verifier):
    app = create_app(create_tables=False)

    def _get_db():
        yield db

    app.dependency_overrides[get_settings] = lambda: settings
    app.dependency_overrides[get_db] = _get_db
    app.dependency_overrides[get_verifier] = lambda: verifier
    yield app
    app.dependency_overrides.clear()


@pytest.fixture
def client(app):
    return TestClient(app)
