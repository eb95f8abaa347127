"""Application factory for the release relay.

Configuration is loaded (and a missing webhook secret rejected) before any
route exists, so a misconfigured relay never accepts a request. Components are
built once here and handed to the route modules; nothing is module-global.

Routes:
- POST /github/webhook   signed package events
- GET  /version          latest tag per architecture
- GET  /metadata         stored release records
- GET  /health           liveness
- GET  /infos            uptime and service version
"""

from __future__ import annotations

import logging
import time
from datetime import timedelta

from fastapi import FastAPI
from fastapi.responses import PlainTextResponse

from release_relay.config import Settings, load_settings
from release_relay.security.middleware import install_middleware
from release_relay.store.metadata_store import MetadataStore
from release_relay.versions.handlers import register_version_routes
from release_relay.versions.query import VersionQuery
from release_relay.webhooks.handlers import register_webhook_routes
from release_relay.webhooks.ingest import WebhookIngest

logger = logging.getLogger(__name__)

_LOG_FORMAT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"


def configure_logging(level: str = "INFO") -> None:
    """Console logging for the whole process."""
    logging.basicConfig(level=level.upper(), format=_LOG_FORMAT)


def format_uptime(seconds: float) -> str:
    """Whole-second uptime as H:MM:SS (days prefixed when over 24h)."""
    return str(timedelta(seconds=int(max(seconds, 0))))


def create_app(settings: Settings | None = None) -> FastAPI:
    """Build the relay application.

    Raises:
        ConfigError: settings are invalid (e.g. no webhook secret)
    """
    if settings is None:
        settings = load_settings()

    store = MetadataStore(settings.store_location)
    ingest = WebhookIngest(settings.secret_bytes, store)
    query = VersionQuery(
        store,
        settings.required_architectures,
        enforce_parity=settings.enforce_version_parity,
    )
    started_at = time.time()

    app = FastAPI(title="Release Relay", version=settings.service_version)
    app.state.settings = settings
    app.state.store = store
    app.state.ingest = ingest
    app.state.query = query

    @app.get("/health", response_class=PlainTextResponse)
    async def health():
        """Liveness probe."""
        return "Healthy"

    @app.get("/infos")
    async def infos():
        """Uptime since the app was built, and the service version."""
        return {
            "uptime": format_uptime(time.time() - started_at),
            "version": settings.service_version,
        }

    register_webhook_routes(app, ingest)
    register_version_routes(app, query, store)
    install_middleware(app, settings)

    logger.info(
        "Release relay ready: store=%s architectures=%s parity=%s",
        settings.store_location,
        ",".join(settings.required_architectures),
        settings.enforce_version_parity,
    )
    return app
