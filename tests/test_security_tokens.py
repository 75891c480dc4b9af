from datetime import timedelta
import uuid

from fastapi import HTTPException
import pytest

from compass.core.permissions import Role
from compass.core.security import (
    create_access_token,
    decode_credential,
    get_password_hash,
    verify_password,
)
from compass.core.simple_config import settings
from compass.core.token_validator import IssuerAwareTokenValidator, LocalJWTValidationStrategy


def _local_strategy():
    return LocalJWTValidationStrategy(
        secret_key=settings.JWT_SECRET_KEY,
        algorithm=settings.JWT_ALGORITHM,
        issuer=settings.AUTH_LOCAL_ISSUER,
    )


def test_decode_credential_returns_role_and_subject():
    subject = uuid.uuid4()
    token = create_access_token(subject=subject, role=Role.AGENT_MEMBER)

    credential = decode_credential(token)

    assert credential.role == "agent_member"
    assert credential.subject_id == str(subject)


def test_expired_token_is_rejected():
    token = create_access_token(subject="expired", role=Role.AGENT, expires_delta=timedelta(seconds=-30))

    with pytest.raises(HTTPException) as exc_info:
        decode_credential(token)

    assert exc_info.value.status_code == 401


def test_tampered_token_is_rejected():
    token = create_access_token(subject="tampered", role=Role.TRAVELLER)
    header, payload, signature = token.split(".")
    tampered = ".".join([header, payload, signature[::-1]])

    with pytest.raises(HTTPException) as exc_info:
        decode_credential(tampered)

    assert exc_info.value.status_code == 401


def test_token_without_role_is_rejected():
    token = create_access_token(subject="no-role", role=Role.AGENT, additional_claims={"role": None})

    with pytest.raises(HTTPException) as exc_info:
        decode_credential(token)

    assert exc_info.value.status_code == 401


def test_wrong_token_type_is_rejected():
    token = create_access_token(subject="refresh", role=Role.AGENT, additional_claims={"type": "refresh"})

    with pytest.raises(HTTPException) as exc_info:
        decode_credential(token)

    assert exc_info.value.detail == "Invalid token type"


def test_issuer_aware_validator_rejects_untrusted_issuer_claim():
    validator = IssuerAwareTokenValidator(
        active_issuer="local",
        trusted_issuers=["compass-local"],
        local_strategy=_local_strategy(),
    )
    token = create_access_token(
        subject="intruder",
        role=Role.AGENT,
        additional_claims={"iss": "malicious-issuer"},
    )

    with pytest.raises(HTTPException) as exc_info:
        validator.validate(token, token_type="access")

    assert exc_info.value.status_code == 401
    assert "issuer" in str(exc_info.value.detail).lower()


def test_issuer_aware_validator_fails_for_unsupported_active_strategy():
    validator = IssuerAwareTokenValidator(
        active_issuer="keycloak",
        trusted_issuers=["compass-local", "keycloak"],
        local_strategy=_local_strategy(),
    )
    token = create_access_token(subject="someone", role=Role.AGENT)

    with pytest.raises(HTTPException) as exc_info:
        validator.validate(token, token_type="access")

    assert exc_info.value.status_code == 500


def test_password_hash_round_trip():
    hashed = get_password_hash("s3cret-pass")

    assert verify_password("s3cret-pass", hashed)
    assert not verify_password("wrong-pass", hashed)


def test_verify_password_with_garbage_hash_returns_false():
    assert verify_password("anything", "not-a-bcrypt-hash") is False
