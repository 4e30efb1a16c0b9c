"""f1rag: Formula 1 knowledge-base ingestion and retrieval pipeline."""

__version__ = "0.1.0"
