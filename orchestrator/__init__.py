"""Orchestrator module: backend fallback, prompts and the request pipeline."""

from .generation import (
    AllBackendsFailedError,
    BackendDescriptor,
    GenerationError,
    GenerationOrchestrator,
    NoBackendsConfiguredError,
)
from .pipeline import InputError, PolicyViolation, RequestPipeline, build_pipeline
from .prompts import build_context, build_section_prompt

__all__ = [
    "AllBackendsFailedError",
    "BackendDescriptor",
    "GenerationError",
    "GenerationOrchestrator",
    "NoBackendsConfiguredError",
    "InputError",
    "PolicyViolation",
    "RequestPipeline",
    "build_pipeline",
    "build_context",
    "build_section_prompt",
]
