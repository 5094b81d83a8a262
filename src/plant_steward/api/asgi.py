"""ASGI entrypoint for the plant steward bot."""

from plant_steward.api.app import create_app
from plant_steward.containers import build_container

app = create_app(build_container())
