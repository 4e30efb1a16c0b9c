"""Application settings loaded from environment variables via pydantic-settings.

Field names map to upper-case environment variables (``supabase_url`` ->
``SUPABASE_URL``); a ``.env`` file in the working directory is read as a
lower-priority source.  An empty string means "not configured": the
factories in :mod:`f1rag.main` skip providers and backends whose
credentials are empty.
"""

from __future__ import annotations

from pydantic_settings import BaseSettings, SettingsConfigDict

from f1rag.models.ingestion import IngestionOptions
from f1rag.utils.errors import ConfigurationError

# Region order tried by the embedding generator and Bedrock chat failover.
DEFAULT_BEDROCK_REGIONS = (
    "us-east-1",
    "us-west-2",
    "eu-west-1",
    "ap-southeast-1",
    "eu-central-1",
    "ap-northeast-1",
)

DOCUMENT_BACKENDS = ("supabase", "astra")


class Settings(BaseSettings):
    """f1rag application settings.

    Environment variables override defaults. Loaded from .env file when present.
    """

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")

    # === AWS / Bedrock ===
    aws_region: str = "us-east-1"
    aws_access_key_id: str = ""
    aws_secret_access_key: str = ""
    bedrock_regions: str = ",".join(DEFAULT_BEDROCK_REGIONS)  # comma-separated
    bedrock_embedding_model: str = "cohere.embed-english-v3"
    bedrock_chat_model: str = "anthropic.claude-3-haiku-20240307-v1:0"
    use_bedrock_chat: bool = True

    # === Embeddings ===
    embedding_backend: str = "bedrock"  # bedrock | openai
    embedding_dimension: int = 1024
    openai_api_key: str = ""
    openai_base_url: str = ""  # any OpenAI-compatible endpoint
    openai_embedding_model: str = "text-embedding-3-small"

    # === OpenRouter chat ===
    openrouter_api_key: str = ""
    openrouter_base_url: str = "https://openrouter.ai/api/v1"
    openrouter_chat_models: str = "anthropic/claude-3.5-sonnet,openai/gpt-4o-mini"
    openrouter_referer: str = "https://f1rag.local"
    openrouter_title: str = "F1 RAG"

    # === Document stores ===
    document_backend: str = ""  # supabase | astra | empty = auto
    supabase_url: str = ""
    supabase_anon_key: str = ""
    supabase_service_role_key: str = ""
    supabase_db_url: str = ""  # postgres DSN, only needed to apply schema.sql
    supabase_table: str = "f1_documents"
    astra_db_application_token: str = ""
    astra_db_api_endpoint: str = ""
    astra_db_namespace: str = "default_keyspace"
    astra_db_collection: str = "f1gpt"

    # === Retrieval ===
    retrieval_threshold: float = 0.3
    retrieval_limit: int = 10

    # === Ingestion ===
    data_dir: str = "data"
    catalog_path: str = "config/sources.yaml"
    ingest_max_records_per_file: int = 50
    ingest_priority_threshold: int = 3
    ingest_batch_size: int = 5
    ingest_embedding_delay: float = 1.0
    ingest_stagger_delay: float = 0.1
    ingest_insert_batch_size: int = 25
    ingest_insert_delay: float = 0.5

    # === Chat ===
    chat_max_tokens: int = 1000
    chat_temperature: float = 0.7

    # === App ===
    app_host: str = "0.0.0.0"
    app_port: int = 8000
    app_env: str = "development"
    log_level: str = "INFO"
    http_timeout: float = 30.0
    cors_origins: str = ""  # comma-separated; empty allows any origin

    @property
    def supabase_key(self) -> str:
        """Service-role key when set, else the anon key."""
        return self.supabase_service_role_key or self.supabase_anon_key

    @property
    def supabase_configured(self) -> bool:
        return bool(self.supabase_url and self.supabase_key)

    @property
    def astra_configured(self) -> bool:
        return bool(self.astra_db_application_token and self.astra_db_api_endpoint)

    def get_document_backend(self) -> str:
        """Resolve which document store to use.

        An explicit ``DOCUMENT_BACKEND`` wins; otherwise Supabase is chosen
        when configured, then Astra.

        Raises
        ------
        ConfigurationError
            If the explicit value is unknown, or no backend is configured.
        """
        explicit = self.document_backend.strip().lower()
        if explicit:
            if explicit not in DOCUMENT_BACKENDS:
                raise ConfigurationError(
                    message=f"Unknown DOCUMENT_BACKEND {self.document_backend!r}; "
                    f"expected one of {', '.join(DOCUMENT_BACKENDS)}"
                )
            return explicit
        if self.supabase_configured:
            return "supabase"
        if self.astra_configured:
            return "astra"
        raise ConfigurationError(
            message="No document store configured: set SUPABASE_URL and a Supabase key, "
            "or ASTRA_DB_APPLICATION_TOKEN and ASTRA_DB_API_ENDPOINT"
        )

    def get_bedrock_regions(self) -> list[str]:
        """Ordered Bedrock regions with ``aws_region`` moved to the front."""
        regions = [r.strip() for r in self.bedrock_regions.split(",") if r.strip()]
        if self.aws_region:
            regions = [self.aws_region] + [r for r in regions if r != self.aws_region]
        return regions

    def get_cors_origins(self) -> list[str]:
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]

    def get_openrouter_models(self) -> list[str]:
        return [m.strip() for m in self.openrouter_chat_models.split(",") if m.strip()]

    def default_ingestion_options(self) -> IngestionOptions:
        return IngestionOptions(
            max_records_per_file=self.ingest_max_records_per_file,
            priority_threshold=self.ingest_priority_threshold,
            batch_size=self.ingest_batch_size,
            embedding_delay=self.ingest_embedding_delay,
            stagger_delay=self.ingest_stagger_delay,
            insert_batch_size=self.ingest_insert_batch_size,
            insert_delay=self.ingest_insert_delay,
        )
