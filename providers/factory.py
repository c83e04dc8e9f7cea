"""Factory for creating generation backends from settings."""

from typing import Callable, Dict, List, Optional

from .base import LLMBackend
from .anthropic_provider import AnthropicProvider
from .openai_provider import OpenAIProvider, GroqProvider, DeepseekProvider
from .gemini_provider import GeminiProvider
from .ollama_provider import OllamaProvider
from .litellm_provider import LiteLLMProvider


def _common(settings) -> dict:
    return {
        "timeout": settings.backend_timeout_seconds,
        "max_tokens": settings.max_tokens_per_section,
        "temperature": settings.temperature,
    }


# Registry of backend builders, keyed by backend name
BUILDERS: Dict[str, Callable[..., LLMBackend]] = {
    "groq": lambda s: GroqProvider(api_key=s.groq_api_key or None, model=s.groq_model, **_common(s)),
    "gemini": lambda s: GeminiProvider(api_key=s.google_api_key or None, model=s.gemini_model, **_common(s)),
    "openai": lambda s: OpenAIProvider(api_key=s.openai_api_key or None, model=s.openai_model, **_common(s)),
    "anthropic": lambda s: AnthropicProvider(
        api_key=s.anthropic_api_key or None, model=s.anthropic_model, **_common(s)
    ),
    "deepseek": lambda s: DeepseekProvider(
        api_key=s.deepseek_api_key or None, model=s.deepseek_model, **_common(s)
    ),
    "ollama": lambda s: OllamaProvider(base_url=s.ollama_base_url, model=s.ollama_model, **_common(s)),
    "litellm": lambda s: LiteLLMProvider(default_model=s.litellm_model, **_common(s)),
}

# Aliases accepted by get_backend
ALIASES: Dict[str, str] = {
    "claude": "anthropic",
    "gpt": "openai",
    "google": "gemini",
}


def _settings(settings=None):
    if settings is None:
        from config import settings as default_settings
        return default_settings
    return settings


def get_backend(name: str, settings=None) -> LLMBackend:
    """Get a single backend instance by name.

    Args:
        name: Backend name or alias (groq, gemini, openai, anthropic, deepseek, ollama, litellm)
        settings: Settings to build from (defaults to the global settings)

    Returns:
        LLMBackend instance, configured or not
    """
    key = ALIASES.get(name.lower(), name.lower())
    if key not in BUILDERS:
        raise ValueError(
            f"Unknown backend: {name}. "
            f"Available: {list(BUILDERS.keys())}"
        )
    return BUILDERS[key](_settings(settings))


def build_backends(settings=None, names: Optional[List[str]] = None) -> List[LLMBackend]:
    """Build every known backend (or the named subset), configured or not.

    The orchestrator decides which of them are available.
    """
    return [get_backend(name, settings) for name in (names or list(BUILDERS.keys()))]


def list_providers(settings=None) -> Dict[str, bool]:
    """List all backends and their availability.

    Returns:
        Dict mapping backend name to availability status
    """
    return {backend.name: backend.is_available() for backend in build_backends(settings)}
