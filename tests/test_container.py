"""Tests for container wiring and configuration."""

import asyncio

import pytest

from delivery_cart.adapters.cart_sync_client import HttpxCartSyncClient
from delivery_cart.adapters.local_cart_storage import JsonFileCartStorage
from delivery_cart.adapters.pricing_client import HttpxPricingClient
from delivery_cart.config import Settings, parse_backend
from delivery_cart.containers import build_container
from delivery_cart.services.pricing_rules import LocalPricingClient


def test_build_container_creates_services(settings) -> None:
    container = build_container(settings)
    assert container.coordinator.store is container.store
    assert isinstance(container.reconciler.client, LocalPricingClient)
    assert container.reconciler.debounce_seconds == 0.01
    asyncio.run(container.close_resources())


def test_build_container_remote_backends(tmp_path) -> None:
    settings = Settings(
        api_base_url="https://api.test/",
        cart_storage_path=str(tmp_path / "cart.json"),
    )
    container = build_container(settings)
    assert isinstance(container.reconciler.client, HttpxPricingClient)
    assert isinstance(container.coordinator.sync_client, HttpxCartSyncClient)
    assert container.coordinator.sync_client.base_url == "https://api.test"
    assert isinstance(container.coordinator.storage, JsonFileCartStorage)
    asyncio.run(container.close_resources())


def test_parse_backend() -> None:
    assert parse_backend(None) == "remote"
    assert parse_backend("  LOCAL ") == "local"
    assert parse_backend("", default="local") == "local"
    with pytest.raises(ValueError):
        parse_backend("carrier-pigeon")
