"""Domain models for the recipe service."""

from dataclasses import dataclass
from uuid import UUID


@dataclass(frozen=True)
class UserRecord:
    """Represents a registered user stored in the database."""

    id: UUID
    name: str
    email: str
