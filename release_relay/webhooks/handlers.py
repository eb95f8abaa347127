"""Webhook HTTP handler: FastAPI route for inbound release events.

The handler:
1. Reads the raw body (HMAC is computed over exact bytes)
2. Hands body + signature header to WebhookIngest in the threadpool
3. Maps the ingest outcome to a status code

Security contract:
- 200 with an empty body is the only acknowledgement
- Rejections carry a one-word status, never digests or parse errors
- Body is fully read before the store lock is taken
"""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, Response
from starlette.concurrency import run_in_threadpool

from release_relay.webhooks.ingest import WebhookIngest
from release_relay.webhooks.verification import SIGNATURE_HEADER

logger = logging.getLogger(__name__)

WEBHOOK_PATH = "/github/webhook"

_STATUS_BODIES = {
    400: "bad_request",
    401: "unauthorized",
    500: "error",
}


def register_webhook_routes(app: FastAPI, ingest: WebhookIngest) -> None:
    """Register the webhook endpoint backed by the given ingest pipeline."""

    @app.post(WEBHOOK_PATH)
    async def github_webhook(request: Request):
        """Receive a signed package event."""
        body = await request.body()
        signature = request.headers.get(SIGNATURE_HEADER)

        result = await run_in_threadpool(ingest.process, body, signature)

        if result.accepted:
            return Response(status_code=200)
        return JSONResponse(
            {"status": _STATUS_BODIES.get(result.status_code, "error")},
            status_code=result.status_code,
        )

    logger.info("Webhook route registered: %s", WEBHOOK_PATH)
