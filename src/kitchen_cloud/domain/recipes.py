"""Domain models for recipes and their nested likes and comments."""

from dataclasses import dataclass, field
from datetime import datetime
from uuid import UUID

from kitchen_cloud.domain.models import UserRecord

CUISINE_TYPES = (
    "Indian",
    "Italian",
    "Chinese",
    "Mexican",
    "Thai",
    "American",
    "French",
    "Japanese",
    "Mediterranean",
    "Other",
)
RECIPE_TYPES = (
    "Veg",
    "Non-Veg",
    "Vegan",
    "Dessert",
    "Appetizer",
    "Main Course",
    "Beverage",
)
DIFFICULTIES = ("Easy", "Medium", "Hard")


@dataclass(frozen=True)
class Comment:
    """A comment appended to a recipe."""

    id: int
    recipe_id: UUID
    user_id: UUID
    text: str
    created_at: datetime
    user: UserRecord | None = None


@dataclass(frozen=True)
class Recipe:
    """A published recipe.

    ``author`` and each comment's ``user`` are only populated once the
    service has resolved them; repositories return bare ids.
    """

    id: UUID
    name: str
    description: str
    ingredients: list[str]
    steps: str
    image: str | None
    servings: int
    cooking_time: int
    cuisine_type: str
    recipe_type: str
    difficulty: str
    author_id: UUID
    likes: list[UUID]
    likes_count: int
    created_at: datetime
    updated_at: datetime
    comments: list[Comment] = field(default_factory=list)
    author: UserRecord | None = None


@dataclass(frozen=True)
class LikeState:
    """Outcome of a like toggle."""

    liked: bool
    likes_count: int


@dataclass(frozen=True)
class RecipeQuery:
    """Search filters plus the page window for listing recipes."""

    search: str | None = None
    cuisine_type: str | None = None
    recipe_type: str | None = None
    difficulty: str | None = None
    page: int = 1
    limit: int = 12

    @property
    def skip(self) -> int:
        return (self.page - 1) * self.limit

    def matches(self, recipe: Recipe) -> bool:
        """Return True when the recipe satisfies every filter."""
        if self.cuisine_type is not None and recipe.cuisine_type != self.cuisine_type:
            return False
        if self.recipe_type is not None and recipe.recipe_type != self.recipe_type:
            return False
        if self.difficulty is not None and recipe.difficulty != self.difficulty:
            return False
        if self.search:
            term = self.search.casefold()
            if term in recipe.name.casefold():
                return True
            return any(term in item.casefold() for item in recipe.ingredients)
        return True


@dataclass(frozen=True)
class Pagination:
    """Pagination envelope returned alongside a page of recipes."""

    page: int
    limit: int
    total: int
    total_pages: int
    has_next_page: bool
    has_prev_page: bool


@dataclass(frozen=True)
class RecipePage:
    """A page of recipes with its pagination envelope."""

    items: list[Recipe]
    pagination: Pagination
