"""Recipe lifecycle, ownership checks and like/comment management."""

import json
import logging
from collections.abc import Iterable, Iterator, Mapping
from contextlib import contextmanager
from dataclasses import dataclass, replace
from datetime import UTC, datetime
from typing import Protocol
from uuid import UUID

from kitchen_cloud.domain.errors import (
    FieldError,
    Forbidden,
    NotFound,
    ValidationFailed,
)
from kitchen_cloud.domain.models import UserRecord
from kitchen_cloud.domain.recipes import (
    CUISINE_TYPES,
    DIFFICULTIES,
    RECIPE_TYPES,
    Comment,
    LikeState,
    Recipe,
    RecipePage,
    RecipeQuery,
)
from kitchen_cloud.domain.uploads import PendingImage
from kitchen_cloud.services.auth import UserRepository
from kitchen_cloud.services.queries import build_query, paginate
from kitchen_cloud.services.uploads import UploadService

logger = logging.getLogger(__name__)

EDITABLE_FIELDS = (
    "name",
    "description",
    "ingredients",
    "steps",
    "servings",
    "cooking_time",
    "cuisine_type",
    "recipe_type",
    "difficulty",
)
MAX_COMMENT_LENGTH = 500


class RecipeRepository(Protocol):
    """Persistence interface for recipes and their comments and likes."""

    def create_recipe(self, payload: dict[str, object]) -> Recipe:
        """Create a recipe row and return it."""

    def get_recipe(self, recipe_id: UUID) -> Recipe | None:
        """Return a recipe with its comments in insertion order, if present."""

    def list_recipes(self, query: RecipeQuery) -> tuple[list[Recipe], int]:
        """Return one page of matching recipes, newest first, plus the total."""

    def list_recipes_by_author(self, author_id: UUID) -> list[Recipe]:
        """Return every recipe by an author, newest first."""

    def update_recipe(self, recipe_id: UUID, payload: dict[str, object]) -> Recipe:
        """Update a recipe row and return it."""

    def delete_recipe(self, recipe_id: UUID) -> None:
        """Delete a recipe together with its comments and likes."""

    def toggle_like(
        self, recipe_id: UUID, user_id: UUID, toggled_at: datetime
    ) -> LikeState | None:
        """Atomically flip like membership and recompute the like count.

        Returns None when the recipe does not exist.
        """

    def add_comment(
        self, recipe_id: UUID, user_id: UUID, text: str, created_at: datetime
    ) -> Comment:
        """Append a comment and bump the recipe's updated timestamp."""


@dataclass
class RecipeService:
    """Application service orchestrating recipe operations."""

    repository: RecipeRepository
    user_repository: UserRepository
    uploads: UploadService

    def create(
        self,
        principal: UserRecord,
        fields: Mapping[str, object],
        image: PendingImage | None = None,
    ) -> Recipe:
        """Validate and persist a new recipe owned by the principal."""
        candidate = dict(fields)
        candidate["ingredients"] = normalize_ingredients(fields.get("ingredients"))
        cleaned = _validated(candidate)
        now = _now()
        with self._stored_image(image) as reference:
            payload = {
                **cleaned,
                "author_id": principal.id,
                "image": reference,
                "likes": [],
                "created_at": now,
            }
            recipe = self.repository.create_recipe(derive_fields(payload, now))
        logger.info(
            "Recipe created",
            extra={"recipe_id": recipe.id, "author_id": principal.id},
        )
        return self._resolve_one(recipe)

    def get(self, recipe_id: str | UUID) -> Recipe:
        """Return a recipe with its author and comment users resolved."""
        return self._resolve_one(self._require(recipe_id))

    def list_recipes(self, params: Mapping[str, object]) -> RecipePage:
        """Return a filtered page of recipes and its pagination envelope."""
        query = build_query(params)
        items, total = self.repository.list_recipes(query)
        return RecipePage(
            items=self._resolve(items), pagination=paginate(query, total)
        )

    def list_mine(self, principal: UserRecord) -> list[Recipe]:
        """Return every recipe authored by the principal, newest first."""
        return self._resolve(self.repository.list_recipes_by_author(principal.id))

    def update(
        self,
        principal: UserRecord,
        recipe_id: str | UUID,
        fields: Mapping[str, object],
        image: PendingImage | None = None,
    ) -> Recipe:
        """Merge partial fields into an owned recipe and persist it."""
        recipe = self._require(recipe_id)
        if recipe.author_id != principal.id:
            raise Forbidden("Not authorized to update this recipe")

        merged = editable_fields(recipe)
        for key in EDITABLE_FIELDS:
            if fields.get(key) is not None:
                merged[key] = fields[key]
        if fields.get("ingredients") is not None:
            merged["ingredients"] = normalize_ingredients(fields["ingredients"])
        payload: dict[str, object] = _validated(merged)
        with self._stored_image(image) as reference:
            if reference is not None:
                payload["image"] = reference
            updated = self.repository.update_recipe(
                recipe.id, derive_fields(payload, _now())
            )
        logger.info("Recipe updated", extra={"recipe_id": recipe.id})
        return self._resolve_one(updated)

    def delete(self, principal: UserRecord, recipe_id: str | UUID) -> None:
        """Remove an owned recipe."""
        recipe = self._require(recipe_id)
        if recipe.author_id != principal.id:
            raise Forbidden("Not authorized to delete this recipe")
        self.repository.delete_recipe(recipe.id)
        logger.info("Recipe deleted", extra={"recipe_id": recipe.id})

    def toggle_like(self, principal: UserRecord, recipe_id: str | UUID) -> LikeState:
        """Like the recipe, or remove the principal's existing like."""
        state = self.repository.toggle_like(
            _parse_recipe_id(recipe_id), principal.id, _now()
        )
        if state is None:
            raise NotFound()
        logger.info(
            "Recipe like toggled",
            extra={
                "recipe_id": recipe_id,
                "user_id": principal.id,
                "liked": state.liked,
            },
        )
        return state

    def add_comment(
        self, principal: UserRecord, recipe_id: str | UUID, text: object
    ) -> Comment:
        """Append a comment by the principal to the end of the recipe's comments."""
        cleaned = validate_comment_text(text)
        recipe = self._require(recipe_id)
        comment = self.repository.add_comment(
            recipe.id, principal.id, cleaned, _now()
        )
        logger.info(
            "Comment added",
            extra={"recipe_id": recipe.id, "comment_id": comment.id},
        )
        return replace(comment, user=principal)

    @contextmanager
    def _stored_image(self, image: PendingImage | None) -> Iterator[str | None]:
        """Store an image for a pending write and remove it if the write fails."""
        reference = self.uploads.store(image) if image else None
        try:
            yield reference
        except Exception:
            if reference is not None:
                self.uploads.discard(reference)
            raise

    def _require(self, recipe_id: str | UUID) -> Recipe:
        recipe = self.repository.get_recipe(_parse_recipe_id(recipe_id))
        if recipe is None:
            raise NotFound()
        return recipe

    def _resolve_one(self, recipe: Recipe) -> Recipe:
        return self._resolve([recipe])[0]

    def _resolve(self, recipes: list[Recipe]) -> list[Recipe]:
        """Attach author and comment user records by id."""
        user_ids = {recipe.author_id for recipe in recipes}
        user_ids.update(
            comment.user_id for recipe in recipes for comment in recipe.comments
        )
        if not user_ids:
            return recipes
        users = {user.id: user for user in self.user_repository.get_users(user_ids)}
        return [
            replace(
                recipe,
                author=users.get(recipe.author_id),
                comments=[
                    replace(comment, user=users.get(comment.user_id))
                    for comment in recipe.comments
                ],
            )
            for recipe in recipes
        ]


def normalize_ingredients(raw: object) -> list[str]:
    """Normalize ingredients to a list of trimmed, non-empty strings.

    Precedence: an already-structured sequence is used as is; a string is
    first parsed as a JSON array (after unescaping literal ``\\n`` and
    ``\\\\`` sequences), and if that does not yield an array it is split on
    commas instead.
    """
    if raw is None:
        return []
    if isinstance(raw, list | tuple):
        return _clean_items(raw)
    text = str(raw)
    unescaped = text.replace("\\n", "\n").replace("\\\\", "\\")
    try:
        parsed = json.loads(unescaped, strict=False)
    except ValueError:
        parsed = None
    if isinstance(parsed, list):
        return _clean_items(parsed)
    return _clean_items(text.split(","))


def validate_recipe_fields(
    fields: Mapping[str, object],
) -> tuple[dict[str, object], list[FieldError]]:
    """Check every recipe field and return cleaned values plus all failures."""
    errors: list[FieldError] = []
    name = _text(fields.get("name"))
    if not 2 <= len(name) <= 100:  # noqa: PLR2004
        errors.append(
            FieldError("name", "Recipe name must be between 2 and 100 characters")
        )
    description = _text(fields.get("description"))
    if not 10 <= len(description) <= 1000:  # noqa: PLR2004
        errors.append(
            FieldError(
                "description", "Description must be between 10 and 1000 characters"
            )
        )
    ingredients = fields.get("ingredients")
    if not isinstance(ingredients, list) or not ingredients:
        errors.append(FieldError("ingredients", "At least one ingredient is required"))
    steps = _text(fields.get("steps"))
    if len(steps) < 10:  # noqa: PLR2004
        errors.append(
            FieldError("steps", "Cooking steps must be at least 10 characters")
        )
    servings = _coerce_int(fields.get("servings"))
    if servings is None or not 1 <= servings <= 50:  # noqa: PLR2004
        errors.append(FieldError("servings", "Servings must be between 1 and 50"))
    cooking_time = _coerce_int(fields.get("cooking_time"))
    if cooking_time is None or cooking_time < 1:
        errors.append(
            FieldError("cookingTime", "Cooking time must be at least 1 minute")
        )
    cuisine_type = fields.get("cuisine_type")
    if cuisine_type not in CUISINE_TYPES:
        errors.append(FieldError("cuisineType", "Please select a valid cuisine type"))
    recipe_type = fields.get("recipe_type")
    if recipe_type not in RECIPE_TYPES:
        errors.append(FieldError("recipeType", "Please select a valid recipe type"))
    difficulty = fields.get("difficulty")
    if difficulty not in DIFFICULTIES:
        errors.append(
            FieldError("difficulty", "Please select a valid difficulty level")
        )

    cleaned: dict[str, object] = {
        "name": name,
        "description": description,
        "ingredients": ingredients,
        "steps": steps,
        "servings": servings,
        "cooking_time": cooking_time,
        "cuisine_type": cuisine_type,
        "recipe_type": recipe_type,
        "difficulty": difficulty,
    }
    return cleaned, errors


def validate_comment_text(text: object) -> str:
    """Return trimmed comment text or raise ``ValidationFailed``."""
    cleaned = _text(text)
    if not 1 <= len(cleaned) <= MAX_COMMENT_LENGTH:
        raise ValidationFailed(
            [FieldError("text", "Comment must be between 1 and 500 characters")]
        )
    return cleaned


def derive_fields(payload: dict[str, object], now: datetime) -> dict[str, object]:
    """Stamp ``updated_at`` and recompute ``likes_count`` from ``likes``."""
    derived = {**payload, "updated_at": now}
    likes = payload.get("likes")
    if isinstance(likes, list):
        derived["likes_count"] = len(likes)
    return derived


def editable_fields(recipe: Recipe) -> dict[str, object]:
    """Return the user-editable fields of a stored recipe."""
    return {
        "name": recipe.name,
        "description": recipe.description,
        "ingredients": list(recipe.ingredients),
        "steps": recipe.steps,
        "servings": recipe.servings,
        "cooking_time": recipe.cooking_time,
        "cuisine_type": recipe.cuisine_type,
        "recipe_type": recipe.recipe_type,
        "difficulty": recipe.difficulty,
    }


def _validated(fields: Mapping[str, object]) -> dict[str, object]:
    cleaned, errors = validate_recipe_fields(fields)
    if errors:
        logger.info(
            "Recipe validation failed",
            extra={"fields": [error.field for error in errors]},
        )
        raise ValidationFailed(errors)
    return cleaned


def _parse_recipe_id(recipe_id: str | UUID) -> UUID:
    if isinstance(recipe_id, UUID):
        return recipe_id
    try:
        return UUID(str(recipe_id))
    except ValueError as exc:
        raise NotFound() from exc


def _clean_items(items: Iterable[object]) -> list[str]:
    cleaned = []
    for item in items:
        if item is None:
            continue
        value = " ".join(str(item).splitlines()).strip()
        if value:
            cleaned.append(value)
    return cleaned


def _text(value: object) -> str:
    return value.strip() if isinstance(value, str) else ""


def _coerce_int(value: object) -> int | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if value.is_integer() else None
    if isinstance(value, str):
        try:
            return int(value.strip())
        except ValueError:
            return None
    return None


def _now() -> datetime:
    return datetime.now(tz=UTC)
