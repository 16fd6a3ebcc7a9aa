# =============================================================================
# Application Configuration — Pydantic Settings
# =============================================================================
#
# Pydantic Settings loads values in this priority order (highest first):
#   1. Environment variables (e.g., `DEFAULT_RAG_MODE=coordinated`)
#   2. Values from the .env file
#   3. Default values defined below
#
# USAGE:
#   from finanalyzer.config import settings
#   print(settings.default_rag_mode)
# =============================================================================

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    All settings have sensible defaults for local development.
    API keys must come from the environment or a .env file.
    """

    # -------------------------------------------------------------------------
    # Application
    # -------------------------------------------------------------------------
    app_name: str = "Financial Report Analyzer"
    app_version: str = "0.1.0"
    debug: bool = True

    # -------------------------------------------------------------------------
    # API Keys: External Services
    # -------------------------------------------------------------------------
    # ANTHROPIC_API_KEY: Claude (planner/analyst/validator completions)
    # OPENAI_API_KEY: embeddings, or completions via openai_compatible
    # -------------------------------------------------------------------------
    anthropic_api_key: str = ""
    openai_api_key: str = ""

    # -------------------------------------------------------------------------
    # LLM Configuration: Multi-Provider
    # -------------------------------------------------------------------------
    # Switching providers is a single .env change:
    #   OpenRouter:  provider=openai_compatible, base_url=https://openrouter.ai/api/v1,
    #                model=openai/gpt-4-turbo-preview
    #   DeepSeek V3: provider=openai_compatible, base_url=https://api.deepseek.com/v1,
    #                model=deepseek-chat
    #   Claude:      provider=anthropic, model=claude-sonnet-4-6
    #
    # Every outbound call is bounded by llm_timeout_seconds. An expired call
    # surfaces as ProviderError, which the orchestrator may fall back on.
    # -------------------------------------------------------------------------
    llm_provider: str = "anthropic"  # "anthropic" or "openai_compatible"
    llm_base_url: str | None = None  # Only needed for openai_compatible
    llm_api_key: str | None = None   # Overrides provider-specific key if set
    llm_model: str = "claude-sonnet-4-6"
    llm_temperature: float = 0.2
    llm_max_tokens: int = 600
    llm_timeout_seconds: float = 60.0
    llm_max_retries: int = 2

    # -------------------------------------------------------------------------
    # Embedding Configuration
    # -------------------------------------------------------------------------
    # Embeddings are computed once per document generation (index build)
    # plus once per retrieval query.
    # -------------------------------------------------------------------------
    embedding_model: str = "text-embedding-3-small"
    embedding_dimensions: int | None = 1536
    embedding_base_url: str | None = None
    embedding_batch_size: int = 100  # Chunks per embeddings API call
    embedding_timeout_seconds: float = 30.0

    # -------------------------------------------------------------------------
    # RAG Modes
    # -------------------------------------------------------------------------
    # DEFAULT_RAG_MODE: used when a request names no mode or an unknown one.
    # ENABLED_RAG_MODES: comma-separated allow-list. A request resolving to
    # a mode outside this list fails with ConfigurationError.
    # -------------------------------------------------------------------------
    default_rag_mode: str = "coordinated"
    enabled_rag_modes: str = "coordinated,specialized-agent"

    # -------------------------------------------------------------------------
    # Chunking Configuration (tokens, cl100k_base)
    # -------------------------------------------------------------------------
    # ~4 characters per token: 300 tokens ≈ 1200 characters.
    # The specialized pipeline uses larger chunks with more overlap.
    # -------------------------------------------------------------------------
    chunk_size: int = 300
    chunk_overlap: int = 40
    specialized_chunk_size: int = 375
    specialized_chunk_overlap: int = 50

    # -------------------------------------------------------------------------
    # Conversation Ledger
    # -------------------------------------------------------------------------
    ledger_max_entries: int = 24
    ledger_entry_chars: int = 1200
    ledger_context_entries: int = 8
    ledger_context_chars: int = 500

    # -------------------------------------------------------------------------
    # Document Registry
    # -------------------------------------------------------------------------
    # Report indexes are kept in memory for follow-up questions. The oldest
    # is evicted once this many documents are cached.
    # -------------------------------------------------------------------------
    max_cached_documents: int = 32

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    @property
    def enabled_modes(self) -> list[str]:
        """ENABLED_RAG_MODES parsed into a list (trimmed, blanks dropped)."""
        return [
            mode.strip()
            for mode in self.enabled_rag_modes.split(",")
            if mode.strip()
        ]


settings = Settings()
