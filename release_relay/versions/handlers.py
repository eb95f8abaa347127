"""Version HTTP handlers: latest tag per architecture, raw metadata view."""

from __future__ import annotations

import logging

from fastapi import FastAPI
from fastapi.responses import JSONResponse
from starlette.concurrency import run_in_threadpool

from release_relay.errors import MissingArchitecturesError, StoreError, VersionMismatchError
from release_relay.store.metadata_store import MetadataStore
from release_relay.versions.query import VersionQuery

logger = logging.getLogger(__name__)

# Seconds a client should wait before asking again while architectures are missing
_NOT_READY_RETRY_AFTER = 60


def _store_unavailable(e: StoreError) -> JSONResponse:
    logger.error("Metadata store unavailable (%s): %s", e.kind.value, e.message)
    return JSONResponse({"error": "Metadata unavailable"}, status_code=500)


def register_version_routes(app: FastAPI, query: VersionQuery, store: MetadataStore) -> None:
    """Register /version and /metadata."""

    @app.get("/version")
    async def latest_version():
        """Latest release tag per required architecture."""
        try:
            tags = await run_in_threadpool(query.latest_tags)
        except StoreError as e:
            return _store_unavailable(e)
        except MissingArchitecturesError as e:
            return JSONResponse(
                {"error": "Versions not ready", "missing": e.architectures},
                status_code=503,
                headers={"Retry-After": str(_NOT_READY_RETRY_AFTER)},
            )
        except VersionMismatchError as e:
            return JSONResponse(
                {"error": "Architecture versions disagree", "versions": e.versions},
                status_code=409,
            )
        return tags

    @app.get("/metadata")
    async def all_metadata():
        """Every stored release record, in insertion order."""
        try:
            records = await run_in_threadpool(store.read_all)
        except StoreError as e:
            return _store_unavailable(e)
        return [r.model_dump(mode="json") for r in records]
