import jwt
import pytest

from justicebot.auth import IdentityVerifier, extract_bearer
from justicebot.config import AuthConfig
from justicebot.errors import ConfigurationError, Unauthorized

from conftest import SECRET, make_token


@pytest.fixture
def verifier(auth_config):
    return IdentityVerifier(auth_config)


def test_valid_token_yields_identity(verifier):
    identity = verifier.verify(f"Bearer {make_token()}")

    assert identity.subject_id == "user-123"
    assert identity.email == "tenant@example.com"


def test_email_is_optional(verifier):
    token = jwt.encode({"sub": "user-9", "exp": 9999999999}, SECRET, algorithm="HS256")

    assert verifier.verify_token(token).email == ""


@pytest.mark.parametrize("header", [None, "", "Bearer", "Bearer ", "Basic abc", "bearer abc"])
def test_missing_or_malformed_header(verifier, header):
    with pytest.raises(Unauthorized):
        verifier.verify(header)


def test_extract_bearer_strips_prefix():
    assert extract_bearer("Bearer abc.def.ghi") == "abc.def.ghi"


def test_expired_token(verifier):
    with pytest.raises(Unauthorized, match="expired"):
        verifier.verify(f"Bearer {make_token(expires_in=-60)}")


def test_wrong_algorithm(verifier):
    token = make_token(algorithm="HS512")

    with pytest.raises(Unauthorized):
        verifier.verify(f"Bearer {token}")


def test_unsigned_token(verifier):
    token = jwt.encode({"sub": "user-123", "exp": 9999999999}, None, algorithm="none")

    with pytest.raises(Unauthorized):
        verifier.verify(f"Bearer {token}")


def test_truncated_signature(verifier):
    token = make_token()

    with pytest.raises(Unauthorized):
        verifier.verify(f"Bearer {token[:-4]}")


def test_wrong_secret(verifier):
    token = make_token(secret="another-signing-key-0123456789-abcdefghijklmnopqrstuvwxyz")

    with pytest.raises(Unauthorized):
        verifier.verify(f"Bearer {token}")


def test_garbage_token(verifier):
    with pytest.raises(Unauthorized):
        verifier.verify("Bearer not-a-jwt")


def test_missing_subject(verifier):
    with pytest.raises(Unauthorized):
        verifier.verify(f"Bearer {make_token(sub=None)}")


def test_missing_expiry(verifier):
    token = jwt.encode({"sub": "user-123"}, SECRET, algorithm="HS256")

    with pytest.raises(Unauthorized):
        verifier.verify(f"Bearer {token}")


def test_audience_checked_when_configured():
    verifier = IdentityVerifier(AuthConfig(jwt_secret=SECRET, audience="authenticated"))

    assert verifier.verify(f"Bearer {make_token(aud='authenticated')}").subject_id == "user-123"
    with pytest.raises(Unauthorized):
        verifier.verify(f"Bearer {make_token(aud='anon')}")


def test_audience_ignored_when_not_configured(verifier):
    assert verifier.verify(f"Bearer {make_token(aud='anything')}").subject_id == "user-123"


def test_missing_secret_is_configuration_error():
    verifier = IdentityVerifier(AuthConfig(jwt_secret=""))

    with pytest.raises(ConfigurationError):
        verifier.verify(f"Bearer {make_token()}")
