"""Shared fixtures for the release relay test suite."""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path
from typing import Any

import pytest
from fastapi.testclient import TestClient

from release_relay.config import Settings, load_settings
from release_relay.serve import create_app
from release_relay.store.metadata_store import MetadataStore
from tests.helpers import SECRET, encode, make_event, signed_headers


@pytest.fixture()
def store_path(tmp_path: Path) -> Path:
    return tmp_path / "data" / "metadata.json"


@pytest.fixture()
def store(store_path: Path) -> MetadataStore:
    return MetadataStore(store_path)


@pytest.fixture()
def make_settings(store_path: Path) -> Callable[..., Settings]:
    """Settings factory isolated from .env files; rate limiting off by default."""

    def _make(**overrides: Any) -> Settings:
        values: dict[str, Any] = {
            "webhook_secret": SECRET,
            "store_location": store_path,
            "rate_limit_enabled": False,
            "_env_file": None,
        }
        values.update(overrides)
        return load_settings(**values)

    return _make


@pytest.fixture()
def settings(make_settings: Callable[..., Settings]) -> Settings:
    return make_settings()


@pytest.fixture()
def client(settings: Settings):
    """TestClient over a fresh app backed by a temp store."""
    with TestClient(create_app(settings), raise_server_exceptions=False) as c:
        yield c


@pytest.fixture()
def post_event(client: TestClient) -> Callable[..., Any]:
    """POST a correctly signed event for the given tag."""

    def _post(tag_name: str, digest: str = "sha256:0000", **kwargs: Any):
        body = encode(make_event(tag_name, digest, **kwargs))
        return client.post("/github/webhook", content=body, headers=signed_headers(body))

    return _post
