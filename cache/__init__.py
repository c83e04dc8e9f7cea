"""Content cache for generated sections."""

from .content_cache import ContentCache, INVALID_CONTENT_MARKERS

__all__ = ["ContentCache", "INVALID_CONTENT_MARKERS"]
