"""Supabase-backed user repository."""

from collections.abc import Iterable
from dataclasses import dataclass
from uuid import UUID

from supabase import Client

from kitchen_cloud.domain.models import UserRecord
from kitchen_cloud.services.auth import UserRepository

_USER_COLUMNS = "id, name, email"


@dataclass
class SupabaseUserRepository(UserRepository):
    """Supabase implementation for reading user records."""

    client: Client

    def get_user(self, user_id: UUID) -> UserRecord | None:
        """Return the user for an id, if present."""
        response = (
            self.client.table("users")
            .select(_USER_COLUMNS)
            .eq("id", str(user_id))
            .limit(1)
            .execute()
        )
        if response.data:
            return _parse_user(response.data[0])
        return None

    def get_users(self, user_ids: Iterable[UUID]) -> list[UserRecord]:
        """Return the users among the given ids."""
        ids = sorted({str(user_id) for user_id in user_ids})
        if not ids:
            return []
        response = (
            self.client.table("users").select(_USER_COLUMNS).in_("id", ids).execute()
        )
        return [_parse_user(row) for row in response.data or []]


def _parse_user(row: dict[str, object]) -> UserRecord:
    return UserRecord(
        id=UUID(str(row["id"])),
        name=str(row.get("name") or ""),
        email=str(row.get("email") or ""),
    )
