"""Ingestion pipeline: source adapters and the orchestrating service."""
