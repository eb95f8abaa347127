"""Payload builders shared across test modules."""

from __future__ import annotations

import json
from typing import Any

from release_relay.webhooks.verification import sign

SECRET = "relay-test-secret"


def make_event(
    tag_name: str | None,
    digest: str = "sha256:0000",
    all_labels: dict[str, str] | None = None,
) -> dict[str, Any]:
    """Registry package event carrying one container tag."""
    tag: dict[str, Any] = {"digest": digest}
    if tag_name is not None:
        tag["name"] = tag_name
    return {
        "action": "published",
        "package": {
            "name": "relay",
            "package_type": "CONTAINER",
            "package_version": {
                "id": 1,
                "container_metadata": {
                    "tag": tag,
                    "labels": {
                        "description": "",
                        "source": "https://github.com/example/relay",
                        "revision": "abc123",
                        "image_url": "",
                        "licenses": "MIT",
                        "all_labels": all_labels or {},
                    },
                    "manifest": {
                        "digest": digest,
                        "media_type": "application/vnd.oci.image.manifest.v1+json",
                        "uri": "ghcr.io/example/relay",
                        "size": 1024,
                        "config": {"digest": "sha256:cfg", "media_type": "", "size": 10},
                        "layers": [{"digest": "sha256:l1", "media_type": "", "size": 100}],
                    },
                },
            },
        },
    }


def encode(payload: dict[str, Any]) -> bytes:
    return json.dumps(payload).encode("utf-8")


def signed_headers(body: bytes, secret: str = SECRET) -> dict[str, str]:
    return {"X-Hub-Signature-256": sign(secret.encode(), body), "Content-Type": "application/json"}
