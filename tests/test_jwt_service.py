import jwt
import pytest

from core.exceptions import ConfigurationError, TokenError
from core.jwt_service import JWTService

SECRET = "a" * 32


@pytest.fixture
def jwt_service():
    """Create JWTService with deterministic secret."""
    return JWTService.create_service(SECRET)


def test_generate_and_validate_token(jwt_service):
    token_data = jwt_service.generate_token("admin")

    payload = jwt_service.validate_token(token_data["token"])

    assert payload["sub"] == "admin"
    assert payload["jti"] == token_data["token_id"]
    assert payload["exp"] == token_data["expires_at"]
    assert token_data["expires_in"] == 24 * 3600


def test_invalid_and_expired_tokens(jwt_service):
    # invalid token string
    with pytest.raises(TokenError):
        jwt_service.validate_token("invalid.token")

    with pytest.raises(TokenError):
        jwt_service.validate_token("")

    # expired token
    jwt_service.token_expiry_hours = -1
    expired_token = jwt_service.generate_token("admin")["token"]
    with pytest.raises(TokenError, match="expired"):
        jwt_service.validate_token(expired_token)


def test_foreign_signature_rejected(jwt_service):
    forged = jwt.encode({"jti": "x", "sub": "admin"}, "b" * 32, algorithm="HS256")
    with pytest.raises(TokenError):
        jwt_service.validate_token(forged)


def test_token_without_identifier_rejected(jwt_service):
    token = jwt.encode({"sub": "admin"}, SECRET, algorithm="HS256")
    with pytest.raises(TokenError, match="identifier"):
        jwt_service.validate_token(token)


def test_blacklisted_token_rejected(jwt_service):
    token_data = jwt_service.generate_token("admin")

    # token initially valid
    jwt_service.validate_token(token_data["token"])

    # blacklist the token
    jwt_service.blacklist_token(token_data["token_id"])

    with pytest.raises(TokenError, match="revoked"):
        jwt_service.validate_token(token_data["token"])


def test_blacklist_is_bounded(jwt_service):
    for index in range(1000):
        jwt_service.blacklist_token(f"id-{index}")
    jwt_service.blacklist_token("latest")
    assert jwt_service.is_token_blacklisted("latest")
    assert len(jwt_service._blacklisted_tokens) == 901


@pytest.mark.parametrize("secret", [None, "", "short"])
def test_create_service_requires_strong_secret(secret):
    with pytest.raises(ConfigurationError):
        JWTService.create_service(secret)
