"""Dependency container wiring for the application."""

from dataclasses import dataclass

from supabase import create_client

from kitchen_cloud.adapters.supabase_image_storage import SupabaseImageStorage
from kitchen_cloud.adapters.supabase_recipe_repository import (
    SupabaseRecipeRepository,
)
from kitchen_cloud.adapters.supabase_user_repository import SupabaseUserRepository
from kitchen_cloud.config import Settings
from kitchen_cloud.services.auth import AuthService
from kitchen_cloud.services.recipes import RecipeService
from kitchen_cloud.services.uploads import UploadService


@dataclass
class AppContainer:
    """Holds application-wide dependencies."""

    settings: Settings
    auth_service: AuthService
    upload_service: UploadService
    recipe_service: RecipeService


def build_container(settings: Settings | None = None) -> AppContainer:
    """Create the default dependency container."""
    resolved_settings = settings or Settings()
    supabase_client = create_client(
        resolved_settings.supabase_url, resolved_settings.supabase_service_key
    )
    user_repository = SupabaseUserRepository(supabase_client)
    recipe_repository = SupabaseRecipeRepository(supabase_client)
    image_storage = SupabaseImageStorage(
        client=supabase_client, bucket=resolved_settings.upload_bucket
    )
    auth_service = AuthService(
        repository=user_repository,
        secret=resolved_settings.jwt_secret,
        algorithm=resolved_settings.jwt_algorithm,
    )
    upload_service = UploadService(
        storage=image_storage, max_bytes=resolved_settings.max_upload_bytes
    )
    recipe_service = RecipeService(
        repository=recipe_repository,
        user_repository=user_repository,
        uploads=upload_service,
    )
    return AppContainer(
        settings=resolved_settings,
        auth_service=auth_service,
        upload_service=upload_service,
        recipe_service=recipe_service,
    )
