"""Logging setup and per-request log lines."""
