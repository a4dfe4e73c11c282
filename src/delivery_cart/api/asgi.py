"""ASGI entrypoint for the cart API."""

from delivery_cart.api.app import create_app
from delivery_cart.containers import build_container

app = create_app(build_container())
