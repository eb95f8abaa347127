"""Release relay: signed container-release webhooks and per-architecture version lookup."""

__version__ = "0.4.0"
