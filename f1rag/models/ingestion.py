"""Ingestion catalog, options and run-report models.

``SourceFileConfig`` entries come from ``config/sources.yaml``.  The
``IngestionReport`` accounts for every attempted record exactly once:

    attempted == succeeded + validation_failed + embedding_failed + insert_failed

(validate-only runs stop before embedding, so ``succeeded`` there counts
records that passed pre-validation).
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from f1rag.models.document import Category

# Seasons before this year are skipped unless historical ingestion is requested.
HISTORICAL_CUTOFF_SEASON = 2022

# Cap on error messages kept in a report.
MAX_REPORT_ERRORS = 50


class SourceFileConfig(BaseModel):
    """One data file in the ingestion catalog."""

    model_config = ConfigDict(frozen=True)

    filename: str = Field(description="Path relative to the data directory.")
    category: Category = Field(description="Category applied to every record in the file.")
    season: str = Field(pattern=r"^\d{4}$", description="Season applied to every record in the file.")
    priority: int = Field(default=3, ge=1, description="1 = most important.")
    description: str = Field(default="", description="Free-text description of the file.")
    enabled: bool = Field(default=True)

    @property
    def is_historical(self) -> bool:
        return int(self.season) < HISTORICAL_CUTOFF_SEASON


class IngestionOptions(BaseModel):
    """Knobs for one ingestion run."""

    model_config = ConfigDict(frozen=True)

    max_records_per_file: int = Field(default=50, ge=1)
    priority_threshold: int = Field(default=3, ge=1)
    batch_size: int = Field(default=5, ge=1, description="Concurrent embedding calls per chunk.")
    embedding_delay: float = Field(default=1.0, ge=0.0, description="Seconds between chunks.")
    stagger_delay: float = Field(default=0.1, ge=0.0, description="Seconds per position in a chunk.")
    insert_batch_size: int = Field(default=25, ge=1)
    insert_delay: float = Field(default=0.5, ge=0.0, description="Seconds between insert batches.")
    validate_only: bool = Field(default=False)
    include_historical: bool = Field(default=False)


class FileReport(BaseModel):
    """Per-file counters."""

    model_config = ConfigDict(frozen=True)

    filename: str
    category: str
    season: str
    records_read: int = 0
    attempted: int = 0
    succeeded: int = 0
    validation_failed: int = 0
    embedding_failed: int = 0
    insert_failed: int = 0
    skipped: bool = False
    skip_reason: str | None = None
    processing_time: float = 0.0


class IngestionReport(BaseModel):
    """Aggregate outcome of an ingestion run."""

    model_config = ConfigDict(frozen=True)

    run_id: str = ""
    attempted: int = 0
    succeeded: int = 0
    validation_failed: int = 0
    embedding_failed: int = 0
    insert_failed: int = 0
    total_files: int = 0
    processed_files: int = 0
    skipped_files: int = 0
    processing_time: float = 0.0
    validate_only: bool = False
    files: list[FileReport] = Field(default_factory=list)
    errors: list[str] = Field(default_factory=list)

    @property
    def success_rate(self) -> float:
        if not self.attempted:
            return 0.0
        return self.succeeded / self.attempted
