"""CLI tools for f1rag.

- ``python -m f1rag.cli.ingest`` -- ingest catalogued data files and
  manage the document store (init, stats, health, clear).
- ``python -m f1rag.cli.ask`` -- answer a question, or list the retrieved
  documents with ``--search-only``.

Heavy imports (providers, FastAPI wiring) are deferred inside the command
handlers so ``--help`` stays fast.
"""
