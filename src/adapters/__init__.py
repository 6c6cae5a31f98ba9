"""Adapters connecting the core to SQLite and the Lemmy HTTP API."""
