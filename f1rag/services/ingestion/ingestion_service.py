"""Orchestrator for the F1 ingestion pipeline.

Pipeline stages per file: **read -> normalize -> pre-validate -> embed -> insert**.

The :class:`IngestionService` coordinates four collaborators (source
adapters, record normalizer, embedding generator, document store) without
any of them knowing about each other.  All are injected.

A run never aborts on a bad record, file or batch.  Every attempted record
ends up in exactly one bucket of the :class:`IngestionReport`:

- ``validation_failed`` -- rejected before embedding, or by the store;
- ``embedding_failed``  -- every embedding endpoint failed for it;
- ``insert_failed``     -- its insert batch failed at the store;
- ``succeeded``         -- stored.

Missing or unreadable files are counted as skipped.  Only a
:class:`~f1rag.utils.errors.ConfigurationError` escapes :meth:`ingest`.
"""

from __future__ import annotations

import asyncio
import time
import uuid
from pathlib import Path

import structlog

from f1rag.interfaces.document_store import IDocumentStore
from f1rag.models.document import DocumentDraft
from f1rag.models.embedding import EmbeddingPurpose
from f1rag.models.ingestion import (
    MAX_REPORT_ERRORS,
    FileReport,
    IngestionOptions,
    IngestionReport,
    SourceFileConfig,
)
from f1rag.providers.document_store.validation import collect_violations
from f1rag.services.embedding_generator import EmbeddingGenerator
from f1rag.services.ingestion.source_adapters import DEFAULT_ADAPTERS, SourceAdapter, get_adapter
from f1rag.services.record_normalizer import RecordNormalizer
from f1rag.utils.errors import DocumentStoreError, SourceReadError
from f1rag.utils.logging import bind_run_context, clear_run_context

logger = structlog.get_logger(logger_name=__name__)


class _ErrorLog:
    """Collects report error messages up to the cap."""

    def __init__(self) -> None:
        self.messages: list[str] = []

    def add(self, message: str) -> None:
        if len(self.messages) < MAX_REPORT_ERRORS:
            self.messages.append(message)


class IngestionService:
    """Ingest catalogued data files into the document store.

    Parameters
    ----------
    normalizer:
        Converts raw records into drafts.
    embedder:
        Embeds draft texts in rate-limited batches.
    store:
        Destination document store.
    adapters:
        Source adapters tried by file suffix.
    """

    def __init__(
        self,
        normalizer: RecordNormalizer,
        embedder: EmbeddingGenerator,
        store: IDocumentStore,
        adapters: tuple[SourceAdapter, ...] = DEFAULT_ADAPTERS,
    ) -> None:
        self._normalizer = normalizer
        self._embedder = embedder
        self._store = store
        self._adapters = adapters

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    @staticmethod
    def select_sources(
        catalog: list[SourceFileConfig],
        options: IngestionOptions,
    ) -> list[SourceFileConfig]:
        """Enabled entries within the priority threshold, most important first.

        Seasons before the historical cutoff are dropped unless
        ``options.include_historical`` is set.
        """
        selected = [
            entry
            for entry in catalog
            if entry.enabled
            and entry.priority <= options.priority_threshold
            and (options.include_historical or not entry.is_historical)
        ]
        return sorted(selected, key=lambda e: (e.priority, e.filename))

    async def ingest(
        self,
        data_dir: str | Path,
        catalog: list[SourceFileConfig],
        options: IngestionOptions | None = None,
    ) -> IngestionReport:
        """Run the pipeline over every selected catalog entry."""
        options = options or IngestionOptions()
        run_id = uuid.uuid4().hex[:12]
        bind_run_context(run_id=run_id)
        try:
            return await self._run(Path(data_dir), catalog, options, run_id)
        finally:
            clear_run_context("run_id")

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    async def _run(
        self,
        data_dir: Path,
        catalog: list[SourceFileConfig],
        options: IngestionOptions,
        run_id: str,
    ) -> IngestionReport:
        start = time.monotonic()
        selected = self.select_sources(catalog, options)
        errors = _ErrorLog()
        logger.info(
            "ingestion_run_start",
            files=len(selected),
            catalog_size=len(catalog),
            validate_only=options.validate_only,
        )

        files: list[FileReport] = []
        for entry in selected:
            files.append(await self._ingest_file(data_dir, entry, options, errors))

        processed = [f for f in files if not f.skipped]
        report = IngestionReport(
            run_id=run_id,
            attempted=sum(f.attempted for f in files),
            succeeded=sum(f.succeeded for f in files),
            validation_failed=sum(f.validation_failed for f in files),
            embedding_failed=sum(f.embedding_failed for f in files),
            insert_failed=sum(f.insert_failed for f in files),
            total_files=len(selected),
            processed_files=len(processed),
            skipped_files=len(files) - len(processed),
            processing_time=round(time.monotonic() - start, 3),
            validate_only=options.validate_only,
            files=files,
            errors=errors.messages,
        )
        logger.info(
            "ingestion_run_complete",
            attempted=report.attempted,
            succeeded=report.succeeded,
            validation_failed=report.validation_failed,
            embedding_failed=report.embedding_failed,
            insert_failed=report.insert_failed,
            skipped_files=report.skipped_files,
            processing_time=report.processing_time,
        )
        return report

    async def _ingest_file(
        self,
        data_dir: Path,
        entry: SourceFileConfig,
        options: IngestionOptions,
        errors: _ErrorLog,
    ) -> FileReport:
        start = time.monotonic()
        path = data_dir / entry.filename
        base = {
            "filename": entry.filename,
            "category": entry.category.value,
            "season": entry.season,
        }

        if not path.is_file():
            errors.add(f"{entry.filename}: file not found")
            logger.warning("ingestion_file_missing", path=str(path))
            return FileReport(**base, skipped=True, skip_reason="file not found")

        try:
            records = get_adapter(path, self._adapters).read(path)
        except SourceReadError as exc:
            errors.add(f"{entry.filename}: {exc.message}")
            logger.warning("ingestion_file_unreadable", path=str(path), error=str(exc))
            return FileReport(**base, skipped=True, skip_reason=exc.message)

        logger.info(
            "ingestion_file_start",
            filename=entry.filename,
            records=len(records),
            priority=entry.priority,
        )
        selected_records = records[: options.max_records_per_file]
        drafts = [
            self._normalizer.normalize(record, entry.category, entry.season, entry.filename)
            for record in selected_records
        ]

        valid: list[DocumentDraft] = []
        validation_failed = 0
        for position, draft in enumerate(drafts):
            reasons = collect_violations(draft)
            if reasons:
                validation_failed += 1
                errors.add(f"{entry.filename}[{position}]: {'; '.join(reasons)}")
            else:
                valid.append(draft)

        counters = {
            "records_read": len(records),
            "attempted": len(drafts),
            "validation_failed": validation_failed,
        }
        if options.validate_only:
            return self._finish(base, counters, succeeded=len(valid), start=start)

        batch = await self._embedder.embed_batch(
            [d.text for d in valid],
            batch_size=options.batch_size,
            purpose=EmbeddingPurpose.STORE,
            stagger_delay=options.stagger_delay,
            batch_delay=options.embedding_delay,
        )
        for failure in batch.errors:
            errors.add(f"{entry.filename}: embedding failed: {failure.message}")
        embedded = [
            valid[index].model_copy(update={"embedding": vector})
            for index, vector in sorted(batch.embeddings.items())
        ]
        counters["embedding_failed"] = len(batch.errors)

        succeeded = 0
        insert_failed = 0
        for offset in range(0, len(embedded), options.insert_batch_size):
            if offset:
                await asyncio.sleep(options.insert_delay)
            chunk = embedded[offset : offset + options.insert_batch_size]
            try:
                result = await self._store.insert(chunk)
            except DocumentStoreError as exc:
                insert_failed += len(chunk)
                errors.add(f"{entry.filename}: insert batch failed: {exc}")
                logger.error(
                    "ingestion_insert_failed",
                    filename=entry.filename,
                    batch_size=len(chunk),
                    error=str(exc),
                )
                continue
            succeeded += len(chunk) - len(result.failures)
            for failure in result.failures:
                if failure.write_failed:
                    insert_failed += 1
                    errors.add(f"{entry.filename}: not stored: {failure.reason}")
                else:
                    counters["validation_failed"] += 1
                    errors.add(f"{entry.filename}: rejected by store: {failure.reason}")

        counters["insert_failed"] = insert_failed
        return self._finish(base, counters, succeeded=succeeded, start=start)

    @staticmethod
    def _finish(
        base: dict[str, str],
        counters: dict[str, int],
        succeeded: int,
        start: float,
    ) -> FileReport:
        report = FileReport(
            **base,
            **counters,
            succeeded=succeeded,
            processing_time=round(time.monotonic() - start, 3),
        )
        logger.info(
            "ingestion_file_complete",
            filename=report.filename,
            attempted=report.attempted,
            succeeded=report.succeeded,
            validation_failed=report.validation_failed,
            embedding_failed=report.embedding_failed,
            insert_failed=report.insert_failed,
        )
        return report
