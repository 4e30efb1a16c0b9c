"""Shared utilities: errors, logging, failover policy, concurrency helpers."""
