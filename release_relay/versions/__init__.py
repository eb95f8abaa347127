"""Release tag parsing and per-architecture version resolution."""
