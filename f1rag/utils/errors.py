"""Custom exception hierarchy for f1rag.

All application exceptions inherit from :class:`F1RagError`, which carries
an optional ``provider_name`` so handlers and log lines can tell which
external service (e.g. "bedrock-us-east-1", "supabase", "astra") failed.

The hierarchy follows the pipeline's error taxonomy:

    F1RagError  (base -- catch-all for any f1rag error)
    +-- ConfigurationError       (startup / missing credentials -- fatal)
    +-- LLMError                 (chat completion failure)
    +-- RateLimitError           (provider throttling)
    +-- DocumentValidationError  (a draft violates the document model)
    +-- SourceReadError          (a data file cannot be read or parsed)
    +-- RAGError                 (embedding or document-store failure)
        +-- EmbeddingError       (one embedding call, all endpoints exhausted)
        +-- DocumentStoreError   (backend request failed)

Only :class:`ConfigurationError` is meant to stop a run.  Everything else is
recoverable at some level: validation and embedding errors drop one record,
store errors fail one insert batch, search errors trigger the lexical
fallback in the retrieval service.
"""


class F1RagError(Exception):
    """Base exception for all f1rag errors.

    Every subclass carries a human-readable ``message`` and an optional
    ``provider_name``.  ``__str__`` prefixes the provider in brackets, e.g.
    ``[supabase] search_f1_documents failed: 404``.
    """

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        provider_name: str | None = None,
    ) -> None:
        self._message = message
        self._provider_name = provider_name
        super().__init__(self._message)

    @property
    def message(self) -> str:
        return self._message

    @property
    def provider_name(self) -> str | None:
        return self._provider_name

    def __str__(self) -> str:
        if self._provider_name:
            return f"[{self._provider_name}] {self._message}"
        return self._message


# ---------------------------------------------------------------------------
# Startup
# ---------------------------------------------------------------------------

class ConfigurationError(F1RagError):
    """Raised when configuration is invalid or missing at startup."""

    def __init__(
        self,
        message: str = "Invalid or missing configuration",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


# ---------------------------------------------------------------------------
# External service errors
# ---------------------------------------------------------------------------

class LLMError(F1RagError):
    """Raised when a chat completion call fails or returns no usable text."""

    def __init__(
        self,
        message: str = "LLM API call failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class RateLimitError(F1RagError):
    """Raised when a provider throttles the request.

    The embedding generator and the answer service treat this like any
    other endpoint failure and move on to the next endpoint.
    """

    def __init__(
        self,
        message: str = "Rate limit exceeded",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


# ---------------------------------------------------------------------------
# Data errors
# ---------------------------------------------------------------------------

class DocumentValidationError(F1RagError):
    """Raised when a document draft violates the document model.

    ``reasons`` lists every violated rule so ingestion reports can show all
    of them at once rather than the first.
    """

    def __init__(
        self,
        message: str = "Document failed validation",
        provider_name: str | None = None,
        reasons: list[str] | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)
        self._reasons = list(reasons or [])

    @property
    def reasons(self) -> list[str]:
        return list(self._reasons)


class SourceReadError(F1RagError):
    """Raised when a source data file is missing, unreadable or malformed."""

    def __init__(
        self,
        message: str = "Source file could not be read",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


# ---------------------------------------------------------------------------
# RAG errors
# ---------------------------------------------------------------------------

class RAGError(F1RagError):
    """Raised when a RAG operation fails (embedding or document store)."""

    def __init__(
        self,
        message: str = "RAG pipeline operation failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class EmbeddingError(RAGError):
    """Raised when an embedding call fails or returns a malformed vector."""

    def __init__(
        self,
        message: str = "Embedding generation failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class DocumentStoreError(RAGError):
    """Raised when a document-store request fails.

    ``code`` holds the backend's own error code when one was returned
    (PostgREST ``42P01``, Data API ``COLLECTION_NOT_EXIST``, an HTTP status,
    ...).
    """

    def __init__(
        self,
        message: str = "Document store operation failed",
        provider_name: str | None = None,
        code: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)
        self._code = code

    @property
    def code(self) -> str | None:
        return self._code
