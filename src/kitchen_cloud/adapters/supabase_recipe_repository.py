"""Supabase-backed recipe repository."""

import string
from dataclasses import dataclass
from datetime import datetime
from uuid import UUID

from postgrest.exceptions import APIError
from supabase import Client

from kitchen_cloud.domain.recipes import Comment, LikeState, Recipe, RecipeQuery
from kitchen_cloud.services.recipes import RecipeRepository

RECIPES_TABLE = "recipes"
COMMENTS_TABLE = "recipe_comments"
# PostgREST code for an offset beyond the last row of an exact count.
RANGE_NOT_SATISFIABLE = "PGRST103"

_REGEX_SPECIALS = frozenset(string.punctuation)


@dataclass
class SupabaseRecipeRepository(RecipeRepository):
    """Supabase implementation for recipes, comments and likes."""

    client: Client

    def create_recipe(self, payload: dict[str, object]) -> Recipe:
        """Insert a recipe row and return it."""
        response = (
            self.client.table(RECIPES_TABLE).insert(_to_row(payload)).execute()
        )
        if not response.data:
            raise RuntimeError("Failed to create recipe")
        return _parse_recipe(response.data[0])

    def get_recipe(self, recipe_id: UUID) -> Recipe | None:
        """Return a recipe and its comments, if present."""
        response = (
            self.client.table(RECIPES_TABLE)
            .select("*")
            .eq("id", str(recipe_id))
            .limit(1)
            .execute()
        )
        if not response.data:
            return None
        comments_response = (
            self.client.table(COMMENTS_TABLE)
            .select("*")
            .eq("recipe_id", str(recipe_id))
            .order("id")
            .execute()
        )
        comments = [_parse_comment(row) for row in comments_response.data or []]
        return _parse_recipe(response.data[0], comments)

    def list_recipes(self, query: RecipeQuery) -> tuple[list[Recipe], int]:
        """Return one page of matching recipes and the total match count."""
        request = _apply_filters(
            self.client.table(RECIPES_TABLE).select("*", count="exact"), query
        )
        try:
            response = (
                request.order("created_at", desc=True)
                .range(query.skip, query.skip + query.limit - 1)
                .execute()
            )
        except APIError as exc:
            if exc.code != RANGE_NOT_SATISFIABLE:
                raise
            # Offset past the last match: count only.
            counted = _apply_filters(
                self.client.table(RECIPES_TABLE).select("*", count="exact", head=True),
                query,
            ).execute()
            return [], int(counted.count or 0)
        recipes = [_parse_recipe(row) for row in response.data or []]
        return recipes, int(response.count or 0)

    def list_recipes_by_author(self, author_id: UUID) -> list[Recipe]:
        """Return an author's recipes, newest first."""
        response = (
            self.client.table(RECIPES_TABLE)
            .select("*")
            .eq("author_id", str(author_id))
            .order("created_at", desc=True)
            .execute()
        )
        return [_parse_recipe(row) for row in response.data or []]

    def update_recipe(self, recipe_id: UUID, payload: dict[str, object]) -> Recipe:
        """Update a recipe row and return it."""
        response = (
            self.client.table(RECIPES_TABLE)
            .update(_to_row(payload))
            .eq("id", str(recipe_id))
            .execute()
        )
        if not response.data:
            raise RuntimeError("Failed to update recipe")
        return _parse_recipe(response.data[0])

    def delete_recipe(self, recipe_id: UUID) -> None:
        """Delete a recipe row; comments cascade in the database."""
        self.client.table(RECIPES_TABLE).delete().eq("id", str(recipe_id)).execute()

    def toggle_like(
        self, recipe_id: UUID, user_id: UUID, toggled_at: datetime
    ) -> LikeState | None:
        """Flip like membership in a single row-locked database update."""
        response = self.client.rpc(
            "toggle_recipe_like",
            {
                "p_recipe_id": str(recipe_id),
                "p_user_id": str(user_id),
                "p_toggled_at": toggled_at.isoformat(),
            },
        ).execute()
        data = response.data
        if isinstance(data, list):
            data = data[0] if data else None
        if not data:
            return None
        return LikeState(
            liked=bool(data["liked"]), likes_count=int(data["likes_count"])
        )

    def add_comment(
        self, recipe_id: UUID, user_id: UUID, text: str, created_at: datetime
    ) -> Comment:
        """Insert a comment row and bump the recipe's updated timestamp."""
        response = (
            self.client.table(COMMENTS_TABLE)
            .insert(
                {
                    "recipe_id": str(recipe_id),
                    "user_id": str(user_id),
                    "text": text,
                    "created_at": created_at.isoformat(),
                }
            )
            .execute()
        )
        if not response.data:
            raise RuntimeError("Failed to add comment")
        self.client.table(RECIPES_TABLE).update(
            {"updated_at": created_at.isoformat()}
        ).eq("id", str(recipe_id)).execute()
        return _parse_comment(response.data[0])


def _apply_filters(request, query: RecipeQuery):  # type: ignore[no-untyped-def]
    """Add the search and exact-match filters of a query to a select."""
    if query.search:
        pattern = _imatch_pattern(query.search)
        request = request.or_(
            f"name.imatch.{pattern},ingredients_text.imatch.{pattern}"
        )
    if query.cuisine_type:
        request = request.eq("cuisine_type", query.cuisine_type)
    if query.recipe_type:
        request = request.eq("recipe_type", query.recipe_type)
    if query.difficulty:
        request = request.eq("difficulty", query.difficulty)
    return request


def _imatch_pattern(term: str) -> str:
    """Quote a literal substring as a case-insensitive regex for an ``or`` filter.

    PostgREST rewrites ``*`` to ``%`` inside ``like``/``ilike`` values, so a
    literal match is expressed as a regex with ASCII punctuation escaped.
    """
    regex = "".join(f"\\{char}" if char in _REGEX_SPECIALS else char for char in term)
    quoted = regex.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{quoted}"'


def _to_row(payload: dict[str, object]) -> dict[str, object]:
    row: dict[str, object] = {}
    for key, value in payload.items():
        if isinstance(value, UUID):
            row[key] = str(value)
        elif isinstance(value, datetime):
            row[key] = value.isoformat()
        elif key == "likes" and isinstance(value, list):
            row[key] = [str(item) for item in value]
        else:
            row[key] = value
    return row


def _parse_recipe(
    row: dict[str, object], comments: list[Comment] | None = None
) -> Recipe:
    """Parse a recipe row into a domain model."""
    likes = [UUID(str(item)) for item in row.get("likes") or []]
    return Recipe(
        id=UUID(str(row["id"])),
        name=str(row.get("name", "")),
        description=str(row.get("description", "")),
        ingredients=[str(item) for item in row.get("ingredients") or []],
        steps=str(row.get("steps", "")),
        image=row.get("image") or None,
        servings=int(row.get("servings", 0)),
        cooking_time=int(row.get("cooking_time", 0)),
        cuisine_type=str(row.get("cuisine_type", "")),
        recipe_type=str(row.get("recipe_type", "")),
        difficulty=str(row.get("difficulty", "")),
        author_id=UUID(str(row["author_id"])),
        likes=likes,
        likes_count=int(row.get("likes_count", len(likes))),
        created_at=_parse_timestamp(row["created_at"]),
        updated_at=_parse_timestamp(row["updated_at"]),
        comments=comments or [],
    )


def _parse_comment(row: dict[str, object]) -> Comment:
    return Comment(
        id=int(row["id"]),
        recipe_id=UUID(str(row["recipe_id"])),
        user_id=UUID(str(row["user_id"])),
        text=str(row.get("text", "")),
        created_at=_parse_timestamp(row["created_at"]),
    )


def _parse_timestamp(value: object) -> datetime:
    if isinstance(value, datetime):
        return value
    return datetime.fromisoformat(str(value))
