"""Configuration: environment settings and the ingestion catalog loader."""
