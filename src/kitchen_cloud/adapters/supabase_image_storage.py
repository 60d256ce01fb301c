"""Supabase Storage bucket for recipe images."""

from dataclasses import dataclass

from supabase import Client

from kitchen_cloud.domain.uploads import PendingImage
from kitchen_cloud.services.uploads import ImageStorage


@dataclass
class SupabaseImageStorage(ImageStorage):
    """Stores accepted images in a Supabase Storage bucket."""

    client: Client
    bucket: str

    def save(self, image: PendingImage) -> None:
        """Upload image bytes under the image reference."""
        self.client.storage.from_(self.bucket).upload(
            path=image.reference,
            file=image.data,
            file_options={"content-type": image.content_type},
        )

    def delete(self, reference: str) -> None:
        """Remove the object stored under the image reference."""
        self.client.storage.from_(self.bucket).remove([reference])
