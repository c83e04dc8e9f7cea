"""Tests for the request pipeline's ordering and composition."""

from datetime import datetime, timezone
from typing import Optional

import pytest

from cache import ContentCache
from config import Settings
from contracts import (
    CacheEntry,
    CallerIdentity,
    DetectedStack,
    FailureKind,
    GenerationResult,
    PolicyReason,
    RepoData,
    StackType,
    UserTier,
)
from orchestrator import (
    AllBackendsFailedError,
    GenerationOrchestrator,
    InputError,
    PolicyViolation,
    RequestPipeline,
    build_context,
    build_pipeline,
    build_section_prompt,
)
from analyzer import StackAnalyzer, get_section
from providers.base import BackendError, LLMBackend
from quota import RateLimiter, TierPolicy, UsageMeter
from stores import InMemoryStore

GENERATED = "## Installation\n\n" + " ".join(["Clone the repository and install the dependencies."] * 4)


class StubBackend(LLMBackend):
    """Backend returning fixed content and recording prompts."""

    def __init__(self, name="groq", priority=1, content=GENERATED, error: Optional[FailureKind] = None):
        self._name = name
        self._priority = priority
        self.content = content
        self.error = error
        self.prompts = []

    @property
    def name(self) -> str:
        return self._name

    @property
    def priority(self) -> int:
        return self._priority

    @property
    def default_model(self) -> str:
        return "stub"

    def generate(self, prompt: str, context: Optional[str] = None) -> GenerationResult:
        self.prompts.append((prompt, context))
        if self.error:
            raise BackendError(self._name, self.error, "stub failure")
        return GenerationResult(content=self.content, provider=self._name)


def _pipeline(backends=None, rate_limit=50):
    store = InMemoryStore()
    policy = TierPolicy()
    backends = backends if backends is not None else [StubBackend()]
    pipeline = RequestPipeline(
        analyzer=StackAnalyzer(),
        rate_limiter=RateLimiter(store, limit=rate_limit, window_seconds=600),
        tier_policy=policy,
        usage_meter=UsageMeter(store, policy),
        cache=ContentCache(store),
        orchestrator=GenerationOrchestrator(backends, sleep=lambda _: None),
    )
    return pipeline, store


def _payload(section_id="installation", project="demo", **extra):
    payload = {
        "section_id": section_id,
        "project_name": project,
        "stack": {"primary": "nextjs", "language": "TypeScript", "package_manager": "npm"},
        "repo_data": {"structure": ["package.json", "src/app/api/generate/route.ts"]},
    }
    payload.update(extra)
    return payload


def _caller(tier=UserTier.ANONYMOUS, session="s1", address="10.0.0.1", user_id=None):
    return CallerIdentity(network_address=address, session_id=session, tier=tier, user_id=user_id)


class TestAnalyze:
    """Test the Analyze operation."""

    def test_analyze_returns_sections(self):
        pipeline, _ = _pipeline()
        result = pipeline.analyze({"files": [
            {"name": "package.json", "content": '{"dependencies": {"next": "14"}}'},
            {"name": "Dockerfile", "content": ""},
        ]})
        assert result.stack.primary == StackType.NEXTJS
        assert "scripts" in result.eligible_sections
        assert result.file_names == ["package.json", "Dockerfile"]

    def test_analyze_accepts_list(self):
        pipeline, _ = _pipeline()
        assert pipeline.analyze([{"name": "go.mod", "content": "module x"}]).stack.primary == StackType.GO

    def test_analyze_invalid_payload(self):
        pipeline, _ = _pipeline()
        with pytest.raises(InputError):
            pipeline.analyze({"files": [{"content": "no name"}]})


class TestGenerateSection:
    """Test GenerateSection ordering and side effects."""

    def test_fresh_generation_cached_and_metered(self):
        backend = StubBackend()
        pipeline, _ = _pipeline([backend])
        result = pipeline.generate_section(_payload(), _caller())
        assert result.content == GENERATED
        assert result.provider == "groq"
        assert result.cached is False
        assert result.explanation == get_section("installation").explanation
        assert result.usage.used == 1
        assert len(backend.prompts) == 1

    def test_cache_hit_skips_backend_but_is_metered(self):
        backend = StubBackend()
        pipeline, _ = _pipeline([backend])
        pipeline.generate_section(_payload(), _caller())
        second = pipeline.generate_section(_payload(), _caller())
        assert second.cached is True
        assert second.usage.used == 2
        assert len(backend.prompts) == 1

    def test_invalid_cached_entry_regenerated(self):
        backend = StubBackend()
        pipeline, store = _pipeline([backend])
        key = pipeline.cache.make_key("demo", "installation", "nextjs", ["package.json", "src/app/api/generate/route.ts"])
        store.set(key, CacheEntry(
            section_id="installation", content="*AI generation temporarily unavailable*", provider="groq",
        ).model_dump_json())
        result = pipeline.generate_section(_payload(), _caller())
        assert result.cached is False
        assert len(backend.prompts) == 1
        assert pipeline.cache.lookup(key).content == GENERATED

    def test_short_content_not_cached(self):
        backend = StubBackend(content="tiny")
        pipeline, _ = _pipeline([backend])
        pipeline.generate_section(_payload(), _caller())
        second = pipeline.generate_section(_payload(), _caller())
        assert second.cached is False
        assert len(backend.prompts) == 2

    def test_rate_limit_checked_before_validation(self):
        pipeline, _ = _pipeline(rate_limit=1)
        pipeline.generate_section(_payload(), _caller())
        with pytest.raises(PolicyViolation) as info:
            pipeline.generate_section({"garbage": True}, _caller())
        assert info.value.reason == PolicyReason.RATE_LIMITED
        assert info.value.reset_at is not None

    def test_invalid_payload(self):
        pipeline, _ = _pipeline()
        with pytest.raises(InputError):
            pipeline.generate_section({"section_id": "header"}, _caller())

    def test_unknown_section(self):
        pipeline, _ = _pipeline()
        with pytest.raises(InputError, match="Unknown section"):
            pipeline.generate_section(_payload(section_id="nope"), _caller())

    def test_premium_section_refused_without_metering(self):
        backend = StubBackend()
        pipeline, _ = _pipeline([backend])
        with pytest.raises(PolicyViolation) as info:
            pipeline.generate_section(_payload(section_id="docker"), _caller())
        assert info.value.reason == PolicyReason.PREMIUM_FEATURE
        assert info.value.required_tier == UserTier.REGISTERED
        assert pipeline.usage(_caller()).used == 0
        assert backend.prompts == []

    def test_usage_limit(self):
        pipeline, _ = _pipeline()
        pipeline.generate_section(_payload(project="a"), _caller())
        pipeline.generate_section(_payload(project="b"), _caller())
        with pytest.raises(PolicyViolation) as info:
            pipeline.generate_section(_payload(project="c"), _caller())
        assert info.value.reason == PolicyReason.USAGE_LIMIT
        assert info.value.reset_at > datetime.now(timezone.utc)
        assert info.value.usage.used == 2

    def test_failed_generation_not_metered(self):
        pipeline, _ = _pipeline([StubBackend(error=FailureKind.RATE_LIMITED)])
        with pytest.raises(AllBackendsFailedError):
            pipeline.generate_section(_payload(), _caller())
        assert pipeline.usage(_caller()).used == 0

    def test_tier_backends_enforced(self):
        paid = StubBackend(name="anthropic", priority=4)
        pipeline, _ = _pipeline([paid, StubBackend(name="groq", priority=1, error=FailureKind.PERMANENT)])
        with pytest.raises(AllBackendsFailedError):
            pipeline.generate_section(_payload(), _caller())
        assert paid.prompts == []
        result = pipeline.generate_section(_payload(), _caller(tier=UserTier.ELEVATED, user_id="vip"))
        assert result.provider == "anthropic"

    def test_preferred_backend_forwarded(self):
        groq = StubBackend(name="groq", priority=1)
        gemini = StubBackend(name="gemini", priority=2)
        pipeline, _ = _pipeline([groq, gemini])
        result = pipeline.generate_section(_payload(preferred_backend="gemini"), _caller())
        assert result.provider == "gemini"
        assert groq.prompts == []


class TestAuxiliaryOperations:
    """Test usage display and cache clearing."""

    def test_usage_snapshot(self):
        pipeline, _ = _pipeline()
        pipeline.generate_section(_payload(), _caller())
        usage = pipeline.usage(_caller())
        assert usage.used == 1
        assert usage.limit == 2
        assert usage.tier == UserTier.ANONYMOUS

    def test_clear_cache(self):
        backend = StubBackend()
        pipeline, _ = _pipeline([backend])
        caller = _caller(tier=UserTier.ELEVATED, user_id="vip")
        pipeline.generate_section(_payload(), caller)
        assert pipeline.clear_cache("demo") == 1
        assert pipeline.generate_section(_payload(), caller).cached is False
        assert len(backend.prompts) == 2

    def test_clear_cache_requires_project(self):
        pipeline, _ = _pipeline()
        with pytest.raises(InputError):
            pipeline.clear_cache("")


class TestPrompts:
    """Test context and prompt construction."""

    def test_context_includes_package_data(self):
        stack = DetectedStack(primary=StackType.NEXTJS, language="TypeScript")
        context = build_context(
            stack,
            "demo",
            RepoData(
                structure=["src/app/api/generate/route.ts", "README.md"],
                package_json={"description": "A demo", "scripts": {"dev": "next dev"}, "dependencies": {"next": "14"}},
                env_example="API_KEY=",
                has_docker=True,
            ),
            "https://github.com/acme/demo",
        )
        assert "=== PROJECT: demo ===" in context
        assert "Repository: https://github.com/acme/demo" in context
        assert "src/app/api/generate/route.ts" in context
        assert "dev: next dev" in context
        assert "API_KEY=" in context
        assert "- Docker" in context

    def test_context_without_repo_data(self):
        context = build_context(DetectedStack(dependencies={"flask": "*"}), "demo")
        assert "No repository data available." in context
        assert "flask" in context

    def test_badges_for_github_url(self):
        prompt = build_section_prompt(
            get_section("header"), "demo", DetectedStack(), "ctx", "https://github.com/acme/demo.git",
        )
        assert "https://img.shields.io/github/license/acme/demo" in prompt
        assert "# demo" in prompt
        assert "{{" not in prompt

    def test_no_badges_without_github(self):
        prompt = build_section_prompt(get_section("header"), "demo", DetectedStack(), "ctx", None)
        assert "shields.io" not in prompt


class TestBuildPipeline:
    """Test wiring from settings."""

    def test_build_with_injected_backends(self):
        settings = Settings(_env_file=None, rate_limit_requests=7, cache_ttl_seconds=120)
        store = InMemoryStore()
        pipeline = build_pipeline(settings, backends=[StubBackend()], store=store)
        assert pipeline.usage_meter.store is store
        assert pipeline.rate_limiter.limit == 7
        assert pipeline.cache.ttl_seconds == 120
        assert pipeline.orchestrator.configured_names == ["groq"]

    def test_build_uses_memory_store_without_redis(self):
        settings = Settings(_env_file=None, redis_url="")
        pipeline = build_pipeline(settings, backends=[])
        assert pipeline.usage_meter.store.name == "memory"
