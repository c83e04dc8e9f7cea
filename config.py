"""Configuration settings for docsmith."""

# Load .env into os.environ so provider fallbacks (e.g. GROQ_API_KEY) work
from dotenv import load_dotenv

load_dotenv()

from pydantic_settings import BaseSettings
from pydantic import Field


class Settings(BaseSettings):
    """Global settings for docsmith.

    Settings can be overridden via environment variables with DOCSMITH_ prefix.
    Example: DOCSMITH_RATE_LIMIT_REQUESTS=100
    """

    # Backend credentials (env: DOCSMITH_<KEY> or the provider's standard env var)
    groq_api_key: str = Field(
        default="",
        description="Groq API key (env: DOCSMITH_GROQ_API_KEY or GROQ_API_KEY)",
    )
    google_api_key: str = Field(
        default="",
        description="Google/Gemini API key (env: DOCSMITH_GOOGLE_API_KEY or GOOGLE_API_KEY)",
    )
    openai_api_key: str = Field(
        default="",
        description="OpenAI API key (env: DOCSMITH_OPENAI_API_KEY or OPENAI_API_KEY)",
    )
    anthropic_api_key: str = Field(
        default="",
        description="Anthropic API key (env: DOCSMITH_ANTHROPIC_API_KEY or ANTHROPIC_API_KEY)",
    )
    deepseek_api_key: str = Field(
        default="",
        description="Deepseek API key (env: DOCSMITH_DEEPSEEK_API_KEY or DEEPSEEK_API_KEY)",
    )
    ollama_base_url: str = Field(
        default="",
        description="Ollama server URL, e.g. http://localhost:11434 (empty disables Ollama)",
    )
    litellm_model: str = Field(
        default="",
        description="LiteLLM model string for the catch-all backend (empty disables it)",
    )

    # Models
    groq_model: str = Field(default="llama-3.3-70b-versatile")
    gemini_model: str = Field(default="gemini-2.5-flash")
    openai_model: str = Field(default="gpt-4o-mini")
    anthropic_model: str = Field(default="claude-sonnet-4-20250514")
    deepseek_model: str = Field(default="deepseek-chat")
    ollama_model: str = Field(default="llama3")

    # Generation
    max_tokens_per_section: int = Field(
        default=2048,
        description="Maximum tokens per generated section"
    )
    temperature: float = Field(default=0.5, ge=0.0, le=2.0)
    backend_timeout_seconds: float = Field(
        default=60.0,
        gt=0,
        description="Timeout applied to every backend call"
    )
    backend_max_attempts: int = Field(
        default=2,
        ge=1,
        description="Attempts per backend for transient and network failures"
    )
    backend_retry_base_delay_seconds: float = Field(
        default=2.0,
        ge=0.0,
        description="Linear backoff base: delay = base * attempt"
    )

    # Abuse rate limit
    rate_limit_requests: int = Field(
        default=50,
        ge=1,
        description="Requests allowed per network identity per window"
    )
    rate_limit_window_seconds: int = Field(
        default=600,
        ge=1,
        description="Sliding window length in seconds"
    )

    # Daily usage quotas
    usage_timezone: str = Field(
        default="UTC",
        description="Timezone whose midnight resets daily usage"
    )
    quota_fail_open: bool = Field(
        default=True,
        description="Allow requests when the quota store is unreachable"
    )

    # Content cache
    cache_ttl_seconds: int = Field(
        default=86400,
        ge=1,
        description="Lifetime of cached generated sections"
    )
    cache_min_content_length: int = Field(
        default=100,
        ge=1,
        description="Shortest content considered a real generation"
    )
    cache_fingerprint_entries: int = Field(
        default=10,
        ge=0,
        description="Leading file-structure entries folded into the cache key"
    )

    # Stores
    redis_url: str = Field(
        default="",
        description="Redis URL for quota counters and cache (empty uses in-process store)",
    )

    # Service
    trust_identity_headers: bool = Field(
        default=False,
        description="Honour X-User-Tier, X-User-Id and X-Session-Id set by an upstream auth layer"
    )
    log_level: str = Field(default="INFO")

    model_config = {
        "env_prefix": "DOCSMITH_",
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }


# Create singleton instance
settings = Settings()
