"""FastAPI application factory."""

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from kitchen_cloud.api.recipes import router as recipes_router
from kitchen_cloud.app_logging import configure_logging
from kitchen_cloud.config import parse_cors_origins
from kitchen_cloud.containers import AppContainer
from kitchen_cloud.domain.errors import FieldError, KitchenCloudError, ValidationFailed

_REQUEST_LOCATIONS = {"body", "query", "path", "header", "cookie"}


def create_app(container: AppContainer) -> FastAPI:
    """Create a FastAPI app configured with dependencies."""
    configure_logging(container.settings.log_level)
    logger = logging.getLogger(__name__)

    app = FastAPI(title="KitchenCloud API")
    app.state.container = container
    app.add_middleware(
        CORSMiddleware,
        allow_origins=parse_cors_origins(container.settings.cors_origins),
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(KitchenCloudError)
    async def handle_domain_error(
        request: Request, exc: KitchenCloudError
    ) -> JSONResponse:
        errors = exc.errors if isinstance(exc, ValidationFailed) else None
        return _error_response(exc.status_code, exc.message, errors=errors)

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        errors = [_field_error(error) for error in exc.errors()]
        return _error_response(400, ValidationFailed.default_message, errors=errors)

    @app.exception_handler(StarletteHTTPException)
    async def handle_http_error(
        request: Request, exc: StarletteHTTPException
    ) -> JSONResponse:
        return _error_response(exc.status_code, str(exc.detail))

    @app.exception_handler(Exception)
    async def handle_unexpected(request: Request, exc: Exception) -> JSONResponse:
        logger.exception(
            "Unhandled error",
            extra={"method": request.method, "path": request.url.path},
        )
        details = None
        if container.settings.environment == "local":
            details = f"{type(exc).__name__}: {exc}"
        return _error_response(500, "Server error", details=details)

    app.include_router(recipes_router)

    @app.get("/")
    async def root() -> dict[str, str]:
        """Service banner."""
        return {"message": "KitchenCloud API Server Running"}

    @app.get("/health")
    async def health() -> dict[str, str]:
        """Simple health check endpoint."""
        return {"status": "ok"}

    return app


def _error_response(
    status_code: int,
    message: str,
    errors: list[FieldError] | None = None,
    details: str | None = None,
) -> JSONResponse:
    body: dict[str, object] = {"success": False, "message": message}
    if errors:
        body["errors"] = [
            {"field": error.field, "message": error.message} for error in errors
        ]
    if details:
        body["details"] = details
    return JSONResponse(status_code=status_code, content=body)


def _field_error(error: dict[str, object]) -> FieldError:
    """Convert a pydantic error entry into a field error."""
    location = [
        str(part)
        for part in error.get("loc", ())  # type: ignore[union-attr]
        if part not in _REQUEST_LOCATIONS
    ]
    field = ".".join(location) or "body"
    return FieldError(field, str(error.get("msg", "Invalid value")))
