"""Quota, tier and caller contracts."""

from dataclasses import dataclass
from datetime import datetime
from pydantic import BaseModel, Field
from typing import FrozenSet, Optional
from enum import Enum


class UserTier(str, Enum):
    """Caller privilege level, in increasing order of privilege."""
    ANONYMOUS = "anonymous"
    REGISTERED = "registered"
    ELEVATED = "elevated"

    @property
    def rank(self) -> int:
        return list(UserTier).index(self)


class PolicyReason(str, Enum):
    """Machine-readable reason attached to a policy rejection."""
    RATE_LIMITED = "rate_limited"
    PREMIUM_FEATURE = "premium_feature"
    USAGE_LIMIT = "usage_limit"


@dataclass(frozen=True)
class TierRecord:
    """Static configuration for one tier."""
    tier: UserTier
    daily_quota: Optional[int]  # None = unbounded
    allowed_sections: FrozenSet[str]
    allowed_backends: FrozenSet[str]


class CallerIdentity(BaseModel):
    """Who is asking: network address for abuse limits, user/session for quotas."""
    network_address: str = "anonymous"
    user_id: Optional[str] = None
    session_id: Optional[str] = None
    tier: UserTier = UserTier.ANONYMOUS


class RateLimitResult(BaseModel):
    """Outcome of an abuse rate-limit check."""
    allowed: bool
    limit: int
    remaining: int
    reset_at: datetime


class UsageInfo(BaseModel):
    """Daily usage snapshot for one identity."""
    used: int = 0
    limit: Optional[int] = Field(default=None, description="None when the tier is unbounded")
    remaining: Optional[int] = None
    tier: UserTier
    resets_at: datetime


class UsageCheckResult(BaseModel):
    """Outcome of a daily usage check."""
    allowed: bool
    usage: UsageInfo
    message: Optional[str] = None
