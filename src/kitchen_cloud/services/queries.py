"""Translate listing request parameters into a recipe query."""

import math
from collections.abc import Mapping

from kitchen_cloud.domain.recipes import Pagination, RecipeQuery

ALL_SENTINEL = "all"
DEFAULT_PAGE = 1
DEFAULT_LIMIT = 12


def build_query(params: Mapping[str, object]) -> RecipeQuery:
    """Build a query from raw search/filter/pagination parameters.

    Malformed or non-positive ``page``/``limit`` values fall back to their
    defaults instead of failing the request.
    """
    search = params.get("search")
    term = search.strip() if isinstance(search, str) else ""
    return RecipeQuery(
        search=term or None,
        cuisine_type=_filter_value(params.get("cuisine")),
        recipe_type=_filter_value(params.get("type")),
        difficulty=_filter_value(params.get("difficulty")),
        page=_positive_int(params.get("page"), DEFAULT_PAGE),
        limit=_positive_int(params.get("limit"), DEFAULT_LIMIT),
    )


def paginate(query: RecipeQuery, total: int) -> Pagination:
    """Return the pagination envelope for a query that matched ``total`` rows."""
    total_pages = math.ceil(total / query.limit)
    return Pagination(
        page=query.page,
        limit=query.limit,
        total=total,
        total_pages=total_pages,
        has_next_page=query.page < total_pages,
        has_prev_page=query.page > 1,
    )


def _filter_value(value: object) -> str | None:
    if not isinstance(value, str):
        return None
    cleaned = value.strip()
    if not cleaned or cleaned == ALL_SENTINEL:
        return None
    return cleaned


def _positive_int(value: object, default: int) -> int:
    if value is None or isinstance(value, bool):
        return default
    try:
        number = int(str(value).strip())
    except ValueError:
        return default
    return number if number >= 1 else default
