import jwt
import pytest

from passkey_server.errors import ErrorKind, VerificationFailed
from passkey_server.services import JWTSessionIssuer, WebAuthnVerifier

from .conftest import ORIGIN, RP_ID, SimulatedAuthenticator


@pytest.mark.unit
class TestJWTSessionIssuer:

    def test_round_trip(self):
        issuer = JWTSessionIssuer("secret", expire_minutes=5)

        token = issuer.issue("admin@example.com")

        assert issuer.decode(token) == "admin@example.com"
        claims = jwt.decode(token, "secret", algorithms=["HS256"])
        assert claims["scope"] == "admin"
        assert claims["exp"] - claims["iat"] == 300

    def test_tampered_token_is_rejected(self):
        issuer = JWTSessionIssuer("secret")
        header, payload, signature = issuer.issue("admin@example.com").split(".")

        with pytest.raises(jwt.InvalidTokenError):
            issuer.decode(".".join([header, payload, signature[::-1]]))

    def test_expired_token_is_rejected(self):
        issuer = JWTSessionIssuer("secret", expire_minutes=-1)

        with pytest.raises(jwt.ExpiredSignatureError):
            issuer.decode(issuer.issue("admin@example.com"))

    def test_token_without_subject_is_rejected(self):
        token = jwt.encode({"scope": "admin"}, "secret", algorithm="HS256")

        with pytest.raises(jwt.InvalidTokenError):
            JWTSessionIssuer("secret").decode(token)


@pytest.mark.unit
class TestWebAuthnVerifier:
    """Only the failure wrapping is checked here; py_webauthn has its own tests."""

    def test_garbage_attestation_is_verification_failed(self):
        response = SimulatedAuthenticator().attestation("Y2hhbGxlbmdl")

        with pytest.raises(VerificationFailed) as exc:
            WebAuthnVerifier().verify_registration(
                response,
                expected_challenge=b"challenge",
                expected_origin=ORIGIN,
                expected_rp_id=RP_ID,
            )

        assert exc.value.kind == ErrorKind.VERIFICATION_FAILED

    def test_garbage_assertion_is_verification_failed(self):
        response = SimulatedAuthenticator().assertion("Y2hhbGxlbmdl", counter=1)

        with pytest.raises(VerificationFailed):
            WebAuthnVerifier().verify_authentication(
                response,
                expected_challenge=b"challenge",
                expected_origin=ORIGIN,
                expected_rp_id=RP_ID,
                stored_public_key=b"not a cose key",
                stored_counter=0,
            )
