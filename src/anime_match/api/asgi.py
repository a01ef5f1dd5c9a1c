"""ASGI entrypoint for the anime match API."""

from anime_match.api.app import create_app
from anime_match.containers import build_container

app = create_app(build_container())
