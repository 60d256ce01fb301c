"""Bearer-token authentication for mutating recipe operations."""

import logging
from collections.abc import Iterable
from dataclasses import dataclass
from typing import Protocol
from uuid import UUID

import jwt

from kitchen_cloud.domain.errors import InvalidCredential, Unauthenticated
from kitchen_cloud.domain.models import UserRecord

logger = logging.getLogger(__name__)


class UserRepository(Protocol):
    """Read-only access to externally owned user records."""

    def get_user(self, user_id: UUID) -> UserRecord | None:
        """Return a user by id, if present."""

    def get_users(self, user_ids: Iterable[UUID]) -> list[UserRecord]:
        """Return every known user among the given ids."""


@dataclass
class AuthService:
    """Resolves the acting principal from an Authorization header."""

    repository: UserRepository
    secret: str
    algorithm: str = "HS256"

    def authenticate(self, authorization: str | None) -> UserRecord:
        """Return the user named by a valid bearer token.

        Raises ``Unauthenticated`` when no token is present and
        ``InvalidCredential`` when it fails verification or its subject is
        not a known user.
        """
        token = extract_bearer_token(authorization)
        if token is None:
            raise Unauthenticated()
        try:
            claims = jwt.decode(token, self.secret, algorithms=[self.algorithm])
        except jwt.PyJWTError as exc:
            logger.warning(
                "Rejected bearer token", extra={"reason": type(exc).__name__}
            )
            raise InvalidCredential() from exc

        user_id = _subject_id(claims)
        if user_id is None:
            logger.warning("Bearer token has no usable subject")
            raise InvalidCredential()
        user = self.repository.get_user(user_id)
        if user is None:
            logger.warning(
                "Bearer token names unknown user", extra={"user_id": user_id}
            )
            raise InvalidCredential("No user found with this token")
        return user


def extract_bearer_token(authorization: str | None) -> str | None:
    """Return the token from an ``Authorization: Bearer <token>`` header."""
    if not authorization:
        return None
    parts = authorization.split()
    if len(parts) != 2 or parts[0].lower() != "bearer":  # noqa: PLR2004
        return None
    return parts[1]


def _subject_id(claims: dict[str, object]) -> UUID | None:
    raw = claims.get("id") or claims.get("sub")
    if raw is None:
        return None
    try:
        return UUID(str(raw))
    except ValueError:
        return None
