"""HTTP API for the flatshare chat service."""
