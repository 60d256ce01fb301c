"""ASGI entrypoint for the recipe API."""

from kitchen_cloud.api.app import create_app
from kitchen_cloud.containers import build_container

app = create_app(build_container())
