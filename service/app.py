"""FastAPI application exposing the docsmith pipeline over HTTP."""

import asyncio
import json
from typing import Any, Callable, Dict, List, Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ValidationError

from contracts import CallerIdentity, ClearCacheRequest, PolicyReason, UserTier
from logging_setup import get_logger
from orchestrator import (
    GenerationError,
    InputError,
    PolicyViolation,
    RequestPipeline,
    build_pipeline,
)
from stores import StoreUnavailableError

logger = get_logger("service")

_POLICY_STATUS = {
    PolicyReason.RATE_LIMITED: 429,
    PolicyReason.USAGE_LIMIT: 429,
    PolicyReason.PREMIUM_FEATURE: 403,
}


class HealthResponse(BaseModel):
    status: str
    backends: List[str]


class ClearCacheResponse(BaseModel):
    project_name: str
    cleared: int


def caller_from_request(request: Request, trust_identity_headers: bool = False) -> CallerIdentity:
    """Derive the caller identity from proxy and upstream auth headers.

    Tier, user and session headers are only honoured when the service sits
    behind an auth layer that sets them; otherwise every caller is an
    anonymous identity keyed by its network address.
    """
    headers = request.headers
    forwarded = headers.get("x-forwarded-for", "")
    address = forwarded.split(",")[0].strip() if forwarded else ""
    if not address:
        address = headers.get("x-real-ip", "").strip()
    if not address and request.client is not None:
        address = request.client.host
    address = address or "anonymous"

    if not trust_identity_headers:
        return CallerIdentity(network_address=address, session_id=address, tier=UserTier.ANONYMOUS)

    try:
        tier = UserTier(headers.get("x-user-tier", UserTier.ANONYMOUS.value).strip().lower())
    except ValueError:
        tier = UserTier.ANONYMOUS

    return CallerIdentity(
        network_address=address,
        user_id=headers.get("x-user-id") or None,
        session_id=headers.get("x-session-id") or address,
        tier=tier,
    )


def _error(status_code: int, error: str, message: str, **extra: Any) -> JSONResponse:
    content: Dict[str, Any] = {"error": error, "message": message}
    content.update({k: v for k, v in extra.items() if v is not None})
    return JSONResponse(status_code=status_code, content=content)


async def _run(func: Callable[..., Any], *args: Any) -> Any:
    loop = asyncio.get_running_loop()
    return await loop.run_in_executor(None, func, *args)


async def _json_body(request: Request) -> Any:
    try:
        return await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise InputError(f"Request body is not valid JSON: {exc}") from exc


def create_app(
    pipeline_factory: Callable[[], RequestPipeline] = build_pipeline,
    trust_identity_headers: Optional[bool] = None,
) -> FastAPI:
    """Create the FastAPI application.

    The pipeline is built once so its stores and backend registry are shared
    across requests.

    Args:
        pipeline_factory: Builds the shared pipeline on first use
        trust_identity_headers: Honour upstream identity headers
            (defaults to the ``trust_identity_headers`` setting)
    """
    if trust_identity_headers is None:
        from config import settings

        trust_identity_headers = settings.trust_identity_headers

    def identify(request: Request) -> CallerIdentity:
        return caller_from_request(request, trust_identity_headers)

    app = FastAPI(title="docsmith", version="0.1.0")
    state: Dict[str, Optional[RequestPipeline]] = {"pipeline": None}

    def get_pipeline() -> RequestPipeline:
        if state["pipeline"] is None:
            state["pipeline"] = pipeline_factory()
        return state["pipeline"]

    @app.exception_handler(InputError)
    async def input_error_handler(_: Request, exc: InputError) -> JSONResponse:
        return _error(400, "invalid_request", exc.message, details=exc.details or None)

    @app.exception_handler(PolicyViolation)
    async def policy_handler(_: Request, exc: PolicyViolation) -> JSONResponse:
        return _error(
            _POLICY_STATUS[exc.reason],
            exc.reason.value,
            exc.message,
            reset_at=exc.reset_at.isoformat() if exc.reset_at else None,
            required_tier=exc.required_tier.value if exc.required_tier else None,
            usage=exc.usage.model_dump(mode="json") if exc.usage else None,
        )

    @app.exception_handler(StoreUnavailableError)
    async def store_error_handler(_: Request, exc: StoreUnavailableError) -> JSONResponse:
        logger.error("Store unavailable: %s", exc)
        return _error(503, "store_unavailable", "Storage is temporarily unavailable. Please try again later.")

    @app.exception_handler(GenerationError)
    async def generation_error_handler(_: Request, exc: GenerationError) -> JSONResponse:
        logger.error("Generation failed: %s", exc)
        return _error(500, "generation_failed", "Content generation failed. Please try again later.")

    @app.get("/health", response_model=HealthResponse)
    async def health() -> HealthResponse:
        return HealthResponse(status="ok", backends=get_pipeline().orchestrator.configured_names)

    @app.post("/analyze")
    async def analyze(request: Request) -> JSONResponse:
        payload = await _json_body(request)
        try:
            result = await _run(get_pipeline().analyze, payload)
        except InputError:
            raise
        except Exception:
            logger.exception("Analysis failed")
            return _error(500, "analysis_failed", "Failed to analyze project")
        return JSONResponse(content=result.model_dump(mode="json"))

    @app.post("/generate")
    async def generate(request: Request) -> JSONResponse:
        caller = identify(request)
        pipeline = get_pipeline()
        # Rate limiting happens inside the pipeline before the body is validated
        try:
            payload = await request.json()
        except (json.JSONDecodeError, UnicodeDecodeError):
            payload = None
        result = await _run(pipeline.generate_section, payload, caller)
        return JSONResponse(content=result.model_dump(mode="json"))

    @app.get("/usage")
    async def usage(request: Request) -> JSONResponse:
        info = await _run(get_pipeline().usage, identify(request))
        return JSONResponse(content=info.model_dump(mode="json"))

    @app.post("/cache/clear", response_model=ClearCacheResponse)
    async def clear_cache(request: Request) -> ClearCacheResponse:
        payload = await _json_body(request)
        try:
            body = ClearCacheRequest.model_validate(payload)
        except ValidationError as exc:
            raise InputError(
                "Invalid ClearCacheRequest",
                details=exc.errors(include_url=False, include_context=False),
            ) from exc
        cleared = await _run(get_pipeline().clear_cache, body.project_name)
        return ClearCacheResponse(project_name=body.project_name, cleared=cleared)

    return app


def run_service(host: str = "0.0.0.0", port: int = 8000, log_level: str = "info") -> None:
    import uvicorn

    uvicorn.run(create_app(), host=host, port=port, log_level=log_level)
