"""Concrete adapters for external services (Bedrock, OpenAI-compatible APIs, Supabase, Astra)."""
