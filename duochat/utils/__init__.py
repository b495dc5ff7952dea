"""Shared utilities: logging, errors, sanitisation, rate limiting and the request guard."""
