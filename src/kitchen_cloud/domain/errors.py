"""Error taxonomy for the recipe service.

Every error carries the HTTP status it maps to and a stable message that is
safe to show to API clients.
"""

from dataclasses import dataclass


@dataclass(frozen=True)
class FieldError:
    """A single field-level validation failure."""

    field: str
    message: str


class KitchenCloudError(Exception):
    """Base class for errors surfaced to API clients."""

    status_code = 500
    default_message = "Server error"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class Unauthenticated(KitchenCloudError):
    """No credential was supplied."""

    status_code = 401
    default_message = "Not authorized to access this route"


class InvalidCredential(Unauthenticated):
    """The credential failed verification or names an unknown user."""

    default_message = "Invalid token"


class Forbidden(KitchenCloudError):
    """The principal does not own the resource."""

    status_code = 403
    default_message = "Not authorized to modify this recipe"


class NotFound(KitchenCloudError):
    """The identifier is unknown or malformed."""

    status_code = 404
    default_message = "Recipe not found"


class ValidationFailed(KitchenCloudError):
    """One or more input fields are invalid."""

    status_code = 400
    default_message = "Validation failed"

    def __init__(self, errors: list[FieldError], message: str | None = None) -> None:
        super().__init__(message)
        self.errors = errors


class UnsupportedMediaType(KitchenCloudError):
    """The upload is not an image."""

    status_code = 400
    default_message = "Only image files are allowed"


class PayloadTooLarge(KitchenCloudError):
    """The upload exceeds the size ceiling."""

    status_code = 400
    default_message = "Image file is too large"
