"""Quota module: abuse rate limiting, tier policy and daily usage metering."""

from .tiers import (
    BASIC_SECTIONS,
    REGISTERED_SECTIONS,
    ELEVATED_SECTIONS,
    DEFAULT_TIERS,
    TierPolicy,
)
from .rate_limiter import RateLimiter
from .usage_meter import UsageMeter

__all__ = [
    "BASIC_SECTIONS",
    "REGISTERED_SECTIONS",
    "ELEVATED_SECTIONS",
    "DEFAULT_TIERS",
    "TierPolicy",
    "RateLimiter",
    "UsageMeter",
]
