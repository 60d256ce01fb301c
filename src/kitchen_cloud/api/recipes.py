"""Recipe API endpoints."""

from __future__ import annotations

from collections.abc import Mapping  # noqa: TC003
from typing import TYPE_CHECKING, Annotated

from fastapi import APIRouter, Depends, Header, Request, status
from pydantic import BaseModel
from starlette.datastructures import UploadFile

from kitchen_cloud.domain.errors import FieldError, PayloadTooLarge, ValidationFailed
from kitchen_cloud.domain.models import UserRecord  # noqa: TC001

if TYPE_CHECKING:
    from starlette.types import Message, Receive

    from kitchen_cloud.containers import AppContainer
    from kitchen_cloud.domain.recipes import Comment, Pagination, Recipe
    from kitchen_cloud.domain.uploads import PendingImage

router = APIRouter(prefix="/api/recipes", tags=["recipes"])

FORM_OVERHEAD_BYTES = 1024 * 1024

# Request field name -> service field name.
_RECIPE_FIELDS = {
    "name": "name",
    "description": "description",
    "ingredients": "ingredients",
    "steps": "steps",
    "servings": "servings",
    "cookingTime": "cooking_time",
    "cuisineType": "cuisine_type",
    "recipeType": "recipe_type",
    "difficulty": "difficulty",
}


class CommentPayload(BaseModel):
    """Body of a comment request."""

    text: str | None = None


def _get_container(request: Request) -> AppContainer:
    return request.app.state.container


async def require_principal(
    request: Request,
    authorization: str | None = Header(default=None),
) -> UserRecord:
    """Resolve the acting user from the bearer token."""
    container = _get_container(request)
    return container.auth_service.authenticate(authorization)


async def limit_body_size(request: Request) -> None:
    """Reject bodies whose declared length cannot fit the upload ceiling."""
    container = _get_container(request)
    raw_length = request.headers.get("content-length")
    if raw_length is None or not raw_length.isdigit():
        return
    if int(raw_length) > _body_ceiling(container):
        raise PayloadTooLarge()


Principal = Annotated[UserRecord, Depends(require_principal)]


@router.get("")
async def list_recipes(request: Request) -> dict[str, object]:
    """Return a filtered, paginated list of recipes."""
    container = _get_container(request)
    page = container.recipe_service.list_recipes(dict(request.query_params))
    return {
        "success": True,
        "data": [_serialize_recipe(recipe) for recipe in page.items],
        "pagination": _serialize_pagination(page.pagination),
    }


@router.get("/user/my-recipes")
async def list_my_recipes(request: Request, principal: Principal) -> dict[str, object]:
    """Return the caller's recipes, newest first."""
    container = _get_container(request)
    recipes = container.recipe_service.list_mine(principal)
    return {"success": True, "data": [_serialize_recipe(recipe) for recipe in recipes]}


@router.get("/{recipe_id}")
async def get_recipe(recipe_id: str, request: Request) -> dict[str, object]:
    """Return a single recipe with its comments."""
    container = _get_container(request)
    recipe = container.recipe_service.get(recipe_id)
    return {"success": True, "data": _serialize_recipe(recipe, include_comments=True)}


@router.post(
    "",
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(limit_body_size)],
)
async def create_recipe(request: Request, principal: Principal) -> dict[str, object]:
    """Create a recipe from form fields and an optional image."""
    container = _get_container(request)
    fields, image = await _read_recipe_form(request, container)
    recipe = container.recipe_service.create(principal, fields, image)
    return {
        "success": True,
        "message": "Recipe created successfully",
        "data": _serialize_recipe(recipe, include_comments=True),
    }


@router.put("/{recipe_id}", dependencies=[Depends(limit_body_size)])
async def update_recipe(
    recipe_id: str, request: Request, principal: Principal
) -> dict[str, object]:
    """Update an owned recipe with partial fields and an optional image."""
    container = _get_container(request)
    fields, image = await _read_recipe_form(request, container)
    recipe = container.recipe_service.update(principal, recipe_id, fields, image)
    return {
        "success": True,
        "message": "Recipe updated successfully",
        "data": _serialize_recipe(recipe, include_comments=True),
    }


@router.delete("/{recipe_id}")
async def delete_recipe(
    recipe_id: str, request: Request, principal: Principal
) -> dict[str, object]:
    """Delete an owned recipe."""
    container = _get_container(request)
    container.recipe_service.delete(principal, recipe_id)
    return {"success": True, "message": "Recipe deleted successfully"}


@router.put("/{recipe_id}/like")
async def toggle_like(
    recipe_id: str, request: Request, principal: Principal
) -> dict[str, object]:
    """Like a recipe, or remove the caller's like."""
    container = _get_container(request)
    state = container.recipe_service.toggle_like(principal, recipe_id)
    return {
        "success": True,
        "message": "Recipe liked" if state.liked else "Like removed",
        "liked": state.liked,
        "likesCount": state.likes_count,
    }


@router.post("/{recipe_id}/comment", status_code=status.HTTP_201_CREATED)
async def add_comment(
    recipe_id: str,
    payload: CommentPayload,
    request: Request,
    principal: Principal,
) -> dict[str, object]:
    """Append a comment to a recipe."""
    container = _get_container(request)
    comment = container.recipe_service.add_comment(principal, recipe_id, payload.text)
    return {
        "success": True,
        "message": "Comment added successfully",
        "comment": _serialize_comment(comment),
    }


async def _read_recipe_form(
    request: Request, container: AppContainer
) -> tuple[dict[str, object], PendingImage | None]:
    """Read recipe fields and an optional image from a form or JSON body.

    The body is read through a byte counter, so requests without a declared
    length are rejected once they pass the upload ceiling.
    """
    bounded = Request(
        request.scope, _bounded_receive(request.receive, _body_ceiling(container))
    )
    content_type = request.headers.get("content-type", "")
    if content_type.startswith("application/json"):
        try:
            body = await bounded.json()
        except ValueError as exc:
            raise ValidationFailed(
                [FieldError("body", "Request body must be valid JSON")]
            ) from exc
        if not isinstance(body, dict):
            raise ValidationFailed(
                [FieldError("body", "Request body must be a JSON object")]
            )
        return _recipe_fields(body), None

    form = await bounded.form(max_files=1)
    try:
        fields = _recipe_fields(form)
        values = form.getlist("ingredients")
        if len(values) > 1:
            fields["ingredients"] = [str(value) for value in values]
        upload = form.get("image")
        image = None
        if isinstance(upload, UploadFile):
            image = await container.upload_service.accept(upload)
    finally:
        await form.close()
    return fields, image


def _body_ceiling(container: AppContainer) -> int:
    return container.settings.max_upload_bytes + FORM_OVERHEAD_BYTES


def _bounded_receive(receive: Receive, max_bytes: int) -> Receive:
    """Wrap an ASGI receive callable to fail once ``max_bytes`` have arrived."""
    received = 0

    async def bounded() -> Message:
        nonlocal received
        message = await receive()
        if message["type"] == "http.request":
            received += len(message.get("body", b""))
            if received > max_bytes:
                raise PayloadTooLarge()
        return message

    return bounded


def _recipe_fields(source: Mapping[str, object]) -> dict[str, object]:
    fields: dict[str, object] = {}
    for request_name, field_name in _RECIPE_FIELDS.items():
        value = source.get(request_name)
        if value is not None and not isinstance(value, UploadFile):
            fields[field_name] = value
    return fields


def _serialize_recipe(
    recipe: Recipe, include_comments: bool = False
) -> dict[str, object]:
    data: dict[str, object] = {
        "id": str(recipe.id),
        "name": recipe.name,
        "description": recipe.description,
        "ingredients": recipe.ingredients,
        "steps": recipe.steps,
        "image": recipe.image or "",
        "servings": recipe.servings,
        "cookingTime": recipe.cooking_time,
        "cuisineType": recipe.cuisine_type,
        "recipeType": recipe.recipe_type,
        "difficulty": recipe.difficulty,
        "author": _serialize_user(recipe.author, include_email=True)
        or {"id": str(recipe.author_id)},
        "likes": [str(user_id) for user_id in recipe.likes],
        "likesCount": recipe.likes_count,
        "createdAt": recipe.created_at.isoformat(),
        "updatedAt": recipe.updated_at.isoformat(),
    }
    if include_comments:
        data["comments"] = [_serialize_comment(comment) for comment in recipe.comments]
    return data


def _serialize_comment(comment: Comment) -> dict[str, object]:
    return {
        "id": comment.id,
        "user": _serialize_user(comment.user, include_email=False)
        or {"id": str(comment.user_id)},
        "text": comment.text,
        "createdAt": comment.created_at.isoformat(),
    }


def _serialize_user(
    user: UserRecord | None, include_email: bool
) -> dict[str, str] | None:
    if user is None:
        return None
    data = {"id": str(user.id), "name": user.name}
    if include_email:
        data["email"] = user.email
    return data


def _serialize_pagination(pagination: Pagination) -> dict[str, object]:
    return {
        "page": pagination.page,
        "limit": pagination.limit,
        "total": pagination.total,
        "totalPages": pagination.total_pages,
        "hasNextPage": pagination.has_next_page,
        "hasPrevPage": pagination.has_prev_page,
    }
