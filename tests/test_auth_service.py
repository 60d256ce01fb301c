"""Tests for bearer-token authentication."""

from datetime import timedelta
from uuid import uuid4

import jwt
import pytest

from kitchen_cloud.domain.errors import InvalidCredential, Unauthenticated
from kitchen_cloud.domain.models import UserRecord
from kitchen_cloud.services.auth import AuthService, extract_bearer_token
from tests.conftest import JWT_SECRET, InMemoryUserRepository, make_token


@pytest.fixture
def auth_service(user_repository: InMemoryUserRepository) -> AuthService:
    return AuthService(repository=user_repository, secret=JWT_SECRET)


def test_authenticate_resolves_user(
    auth_service: AuthService, alice: UserRecord
) -> None:
    user = auth_service.authenticate(f"Bearer {make_token(alice.id)}")

    assert user == alice


def test_authenticate_accepts_sub_claim(
    auth_service: AuthService, alice: UserRecord
) -> None:
    token = jwt.encode({"sub": str(alice.id)}, JWT_SECRET, algorithm="HS256")

    assert auth_service.authenticate(f"Bearer {token}") == alice


@pytest.mark.parametrize("header", [None, "", "Bearer", "Token abc", "Basic a b"])
def test_authenticate_without_bearer_token(
    auth_service: AuthService, header: str | None
) -> None:
    with pytest.raises(Unauthenticated) as excinfo:
        auth_service.authenticate(header)

    assert not isinstance(excinfo.value, InvalidCredential)
    assert excinfo.value.status_code == 401


def test_authenticate_rejects_wrong_secret(
    auth_service: AuthService, alice: UserRecord
) -> None:
    token = make_token(alice.id, secret="another-secret-that-is-long-enough-too")

    with pytest.raises(InvalidCredential):
        auth_service.authenticate(f"Bearer {token}")


def test_authenticate_rejects_expired_token(
    auth_service: AuthService, alice: UserRecord
) -> None:
    token = make_token(alice.id, expires_in=timedelta(minutes=-5))

    with pytest.raises(InvalidCredential):
        auth_service.authenticate(f"Bearer {token}")


def test_authenticate_rejects_unknown_user(auth_service: AuthService) -> None:
    with pytest.raises(InvalidCredential) as excinfo:
        auth_service.authenticate(f"Bearer {make_token(uuid4())}")

    assert excinfo.value.message == "No user found with this token"


def test_authenticate_rejects_malformed_subject(auth_service: AuthService) -> None:
    token = make_token("not-a-uuid")

    with pytest.raises(InvalidCredential):
        auth_service.authenticate(f"Bearer {token}")


def test_extract_bearer_token_is_case_insensitive_on_scheme() -> None:
    assert extract_bearer_token("bearer abc.def.ghi") == "abc.def.ghi"
    assert extract_bearer_token("Bearer abc def") is None
