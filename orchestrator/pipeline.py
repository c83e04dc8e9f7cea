"""Request pipeline composing analysis, quota enforcement, caching and generation.

GenerateSection runs in a fixed order; each step short-circuits the rest:

1. Abuse rate limit (before the payload is even parsed)
2. Input validation
3. Tier gate on the requested section
4. Daily usage check
5. Content cache lookup (a hit skips 6 and 7)
6. Generation through the orchestrator
7. Cache store when the content is valid
8. Usage record

A cache hit is metered exactly like a fresh generation.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence, Union

from pydantic import BaseModel, ValidationError

from analyzer import StackAnalyzer, get_section, sections_for_stack
from cache import ContentCache
from contracts import (
    AnalysisResult,
    AnalyzeRequest,
    CacheEntry,
    CallerIdentity,
    GenerateRequest,
    PolicyReason,
    SectionResult,
    UsageInfo,
    UserTier,
)
from logging_setup import get_logger
from quota import RateLimiter, TierPolicy, UsageMeter

from .generation import GenerationOrchestrator
from .prompts import build_context, build_section_prompt

logger = get_logger("orchestrator.pipeline")

Payload = Union[BaseModel, Dict[str, Any]]


class InputError(ValueError):
    """Malformed or semantically invalid request payload."""

    def __init__(self, message: str, details: Optional[List[Dict[str, Any]]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or []


class PolicyViolation(Exception):
    """Request refused by rate limiting, tier gating or daily usage."""

    def __init__(
        self,
        reason: PolicyReason,
        message: str,
        reset_at: Optional[datetime] = None,
        required_tier: Optional[UserTier] = None,
        usage: Optional[UsageInfo] = None,
    ):
        super().__init__(message)
        self.reason = PolicyReason(reason)
        self.message = message
        self.reset_at = reset_at
        self.required_tier = required_tier
        self.usage = usage


def _validate(model: type, payload: Payload) -> Any:
    if isinstance(payload, model):
        return payload
    if isinstance(payload, BaseModel):
        payload = payload.model_dump()
    try:
        return model.model_validate(payload)
    except ValidationError as exc:
        raise InputError(
            f"Invalid {model.__name__}",
            details=exc.errors(include_url=False, include_context=False),
        ) from exc


class RequestPipeline:
    """Single entry point for the Analyze and GenerateSection operations."""

    def __init__(
        self,
        analyzer: StackAnalyzer,
        rate_limiter: RateLimiter,
        tier_policy: TierPolicy,
        usage_meter: UsageMeter,
        cache: ContentCache,
        orchestrator: GenerationOrchestrator,
    ):
        self.analyzer = analyzer
        self.rate_limiter = rate_limiter
        self.tier_policy = tier_policy
        self.usage_meter = usage_meter
        self.cache = cache
        self.orchestrator = orchestrator

    # ------------------------------------------------------------------
    # Analyze

    def analyze(self, payload: Union[Payload, Sequence[Any]]) -> AnalysisResult:
        """Classify a project and list the sections it qualifies for.

        Raises:
            InputError: payload is not a file listing
        """
        if isinstance(payload, (list, tuple)):
            payload = {"files": list(payload)}
        request = _validate(AnalyzeRequest, payload)
        stack = self.analyzer.analyze(request.files)
        logger.info("Analyzed %d files: %s", len(request.files), stack.primary.value)
        return AnalysisResult(
            stack=stack,
            eligible_sections=sections_for_stack(stack),
            file_names=[f.name for f in request.files],
        )

    # ------------------------------------------------------------------
    # GenerateSection

    def generate_section(self, payload: Payload, caller: CallerIdentity) -> SectionResult:
        """Produce one documentation section for the caller.

        Raises:
            PolicyViolation: rate limited, premium section or daily limit reached
            InputError: invalid payload or unknown section id
            GenerationError: no backend configured or every backend failed
        """
        limit = self.rate_limiter.check(caller.network_address)
        if not limit.allowed:
            raise PolicyViolation(
                PolicyReason.RATE_LIMITED,
                "Too many requests. Please slow down.",
                reset_at=limit.reset_at,
            )

        request: GenerateRequest = _validate(GenerateRequest, payload)
        section = get_section(request.section_id)
        if section is None:
            raise InputError(f"Unknown section: {request.section_id}")

        tier = caller.tier
        if not self.tier_policy.is_allowed(section.id, tier):
            required = self.tier_policy.required_tier(section.id)
            raise PolicyViolation(
                PolicyReason.PREMIUM_FEATURE,
                f"The {section.name} section requires the {required.value if required else 'elevated'} tier.",
                required_tier=required,
            )

        check = self.usage_meter.check(caller.user_id, caller.session_id, tier)
        if not check.allowed:
            raise PolicyViolation(
                PolicyReason.USAGE_LIMIT,
                check.message or "Daily limit reached.",
                reset_at=check.usage.resets_at,
                usage=check.usage,
            )

        structure = request.repo_data.structure if request.repo_data else None
        key = self.cache.make_key(request.project_name, section.id, request.stack.primary.value, structure)
        cached = self.cache.lookup(key)
        if cached is not None:
            usage = self.usage_meter.record(caller.user_id, caller.session_id, tier)
            return SectionResult(
                section_id=cached.section_id,
                content=cached.content,
                explanation=cached.explanation or section.explanation,
                provider=cached.provider,
                cached=True,
                usage=usage,
            )

        context = build_context(request.stack, request.project_name, request.repo_data, request.repo_url)
        prompt = build_section_prompt(section, request.project_name, request.stack, context, request.repo_url)
        result = self.orchestrator.generate(
            prompt,
            context,
            preferred_backend=request.preferred_backend,
            allowed_backends=self.tier_policy.allowed_backends(tier),
        )

        entry = CacheEntry(
            section_id=section.id,
            content=result.content,
            explanation=section.explanation,
            provider=result.provider,
        )
        self.cache.store(key, entry)
        usage = self.usage_meter.record(caller.user_id, caller.session_id, tier)
        logger.info("Generated %s for %s with %s", section.id, request.project_name, result.provider)
        return SectionResult(
            section_id=entry.section_id,
            content=entry.content,
            explanation=entry.explanation,
            provider=entry.provider,
            cached=False,
            usage=usage,
        )

    # ------------------------------------------------------------------
    # Auxiliary operations

    def usage(self, caller: CallerIdentity) -> UsageInfo:
        return self.usage_meter.current(caller.user_id, caller.session_id, caller.tier)

    def clear_cache(self, project_name: str) -> int:
        if not project_name:
            raise InputError("project_name is required")
        return self.cache.clear_project(project_name)


def build_pipeline(settings=None, backends=None, store=None) -> RequestPipeline:
    """Wire a pipeline from configuration.

    Args:
        settings: Settings instance (defaults to the global settings)
        backends: Backend list overriding the ones built from settings
        store: Key-value store overriding the one selected by ``redis_url``
    """
    if settings is None:
        from config import settings
    from providers import build_backends
    from stores import create_store

    if store is None:
        store = create_store(settings.redis_url)
    tier_policy = TierPolicy()
    orchestrator = GenerationOrchestrator(
        build_backends(settings) if backends is None else backends,
        max_attempts=settings.backend_max_attempts,
        retry_base_delay=settings.backend_retry_base_delay_seconds,
    )
    return RequestPipeline(
        analyzer=StackAnalyzer(),
        rate_limiter=RateLimiter(
            store,
            limit=settings.rate_limit_requests,
            window_seconds=settings.rate_limit_window_seconds,
            fail_open=settings.quota_fail_open,
        ),
        tier_policy=tier_policy,
        usage_meter=UsageMeter(
            store,
            tier_policy,
            timezone_name=settings.usage_timezone,
            fail_open=settings.quota_fail_open,
        ),
        cache=ContentCache(
            store,
            ttl_seconds=settings.cache_ttl_seconds,
            min_content_length=settings.cache_min_content_length,
            fingerprint_entries=settings.cache_fingerprint_entries,
        ),
        orchestrator=orchestrator,
    )
