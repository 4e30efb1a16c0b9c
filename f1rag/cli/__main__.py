"""Allow ``python -m f1rag.cli`` execution (defaults to the ingestion CLI)."""

from f1rag.cli.ingest import main

main()
