"""Shared utilities: state storage, idempotent execution, retry, logging."""
