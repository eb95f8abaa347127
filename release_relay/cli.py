"""CLI for the release relay.

Usage:
    release-relay serve --port 8080
    release-relay sign payload.json
    release-relay resolve --store metadata.json --arch arm64 --arch amd64
"""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path

from release_relay.config import DEFAULT_ARCHITECTURES, load_settings
from release_relay.errors import ConfigError, ResolveError, StoreError
from release_relay.store.metadata_store import MetadataStore
from release_relay.versions.resolver import resolve
from release_relay.webhooks.verification import sign


def cmd_serve(args: argparse.Namespace) -> None:
    """Run the HTTP service under uvicorn."""
    import uvicorn

    from release_relay.serve import configure_logging, create_app

    try:
        settings = load_settings()
    except ConfigError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        sys.exit(1)

    configure_logging(settings.log_level)
    uvicorn.run(
        create_app(settings),
        host=args.host or settings.host,
        port=args.port or settings.port,
        log_level=settings.log_level.lower(),
    )


def cmd_sign(args: argparse.Namespace) -> None:
    """Print the X-Hub-Signature-256 value for a payload file."""
    try:
        settings = load_settings()
    except ConfigError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        sys.exit(1)

    if args.payload == "-":
        body = sys.stdin.buffer.read()
    else:
        payload_path = Path(args.payload)
        if not payload_path.exists():
            print(f"ERROR: payload file not found: {payload_path}", file=sys.stderr)
            sys.exit(1)
        body = payload_path.read_bytes()

    print(sign(settings.secret_bytes, body))


def _resolve_defaults() -> tuple[Path, list[str]]:
    """Store location and architectures the service is configured with.

    Falls back to the built-in defaults when settings do not load (no secret
    is needed to read the store).
    """
    try:
        settings = load_settings()
    except ConfigError:
        return Path("metadata.json"), list(DEFAULT_ARCHITECTURES)
    return settings.store_location, settings.required_architectures


def cmd_resolve(args: argparse.Namespace) -> None:
    """Print the latest tag per architecture from a store file."""
    default_store, default_architectures = _resolve_defaults()
    store = MetadataStore(Path(args.store) if args.store else default_store)
    architectures = args.arch or default_architectures

    try:
        selected = resolve(store.read_all(), architectures, enforce_parity=not args.no_parity)
    except StoreError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        sys.exit(2)
    except ResolveError as e:
        print(f"UNRESOLVED: {e}", file=sys.stderr)
        sys.exit(1)

    print(json.dumps({arch: record.tag.name for arch, record in selected.items()}, indent=2))


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(
        prog="release-relay",
        description="Signed container-release webhook relay",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    # serve
    p_serve = sub.add_parser("serve", help="Run the HTTP service")
    p_serve.add_argument("--host", help="Bind address (default from settings)")
    p_serve.add_argument("--port", type=int, help="Bind port (default from settings)")
    p_serve.set_defaults(func=cmd_serve)

    # sign
    p_sign = sub.add_parser("sign", help="Compute the webhook signature for a payload")
    p_sign.add_argument("payload", help="Path to payload file, or - for stdin")
    p_sign.set_defaults(func=cmd_sign)

    # resolve
    p_resolve = sub.add_parser("resolve", help="Resolve latest tags from a store file")
    p_resolve.add_argument("--store", help="Metadata JSON file (default from settings)")
    p_resolve.add_argument(
        "--arch", action="append", help="Required architecture, repeatable (default from settings)"
    )
    p_resolve.add_argument(
        "--no-parity", action="store_true", help="Allow differing versions across architectures"
    )
    p_resolve.set_defaults(func=cmd_resolve)

    args = parser.parse_args(argv)
    args.func(args)


if __name__ == "__main__":
    main()
