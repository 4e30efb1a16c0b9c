"""Business logic: normalization, embedding, retrieval, answers and ingestion."""
