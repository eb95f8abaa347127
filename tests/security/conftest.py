"""Security test fixtures.

- hardened_client: restricted CORS origins and an aggressive rate limit
- Scoped to tests/security/ only; the global tests/conftest.py supplies the
  default client, settings and store fixtures
"""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from release_relay.serve import create_app

ALLOWED_ORIGIN = "https://releases.example.com"


@pytest.fixture
def hardened_client(make_settings):
    """TestClient with an origin allowlist and a 3/minute per-client limit."""
    settings = make_settings(
        cors_origins=[ALLOWED_ORIGIN],
        rate_limit="3/minute",
        rate_limit_enabled=True,
    )
    with TestClient(create_app(settings), raise_server_exceptions=False) as c:
        yield c
