"""Pydantic contracts for docsmith.

Every value crossing a component boundary is typed through these contracts.
"""

from .stack_contracts import (
    StackType,
    PackageManager,
    ProjectFile,
    DetectedStack,
)

from .generation_contracts import (
    FailureKind,
    GenerationResult,
    CacheEntry,
)

from .quota_contracts import (
    UserTier,
    PolicyReason,
    TierRecord,
    CallerIdentity,
    RateLimitResult,
    UsageInfo,
    UsageCheckResult,
)

from .request_contracts import (
    AnalyzeRequest,
    AnalysisResult,
    RepoData,
    GenerateRequest,
    SectionResult,
    ClearCacheRequest,
)

__all__ = [
    # Stack
    "StackType",
    "PackageManager",
    "ProjectFile",
    "DetectedStack",
    # Generation
    "FailureKind",
    "GenerationResult",
    "CacheEntry",
    # Quota
    "UserTier",
    "PolicyReason",
    "TierRecord",
    "CallerIdentity",
    "RateLimitResult",
    "UsageInfo",
    "UsageCheckResult",
    # Requests
    "AnalyzeRequest",
    "AnalysisResult",
    "RepoData",
    "GenerateRequest",
    "SectionResult",
    "ClearCacheRequest",
]
