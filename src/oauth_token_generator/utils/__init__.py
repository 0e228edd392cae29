"""Shared helpers: error types, constants and socket utilities."""
