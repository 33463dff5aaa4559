"""External interfaces (HTTP API)."""
