"""Generation orchestrator: ordered fallback across backends with bounded retry."""

import time
from dataclasses import dataclass
from typing import Callable, Dict, Iterable, List, Optional, Sequence

from contracts import FailureKind, GenerationResult
from logging_setup import get_logger
from providers.base import BackendError, LLMBackend

logger = get_logger("orchestrator.generation")


class GenerationError(Exception):
    """Base class for orchestrator failures."""


class NoBackendsConfiguredError(GenerationError):
    """No backend is configured, or none is permitted for the caller."""


class AllBackendsFailedError(GenerationError):
    """Every candidate backend failed; carries each backend's last error."""

    def __init__(self, errors: Dict[str, BackendError]):
        self.errors = dict(errors)
        details = "; ".join(f"{name}: {err.kind.value}: {err.message}" for name, err in self.errors.items())
        super().__init__(f"All generation backends failed ({details})")


@dataclass(frozen=True)
class BackendDescriptor:
    """A configured backend as seen by the orchestrator."""
    name: str
    priority: int
    model: str
    backend: LLMBackend


class GenerationOrchestrator:
    """Turns a prompt into text, trying backends in priority order.

    The backend registry is fixed at construction: availability is evaluated
    once and never re-read. Only transient overload and network failures are
    retried on the same backend; every other failure moves on to the next one.
    """

    def __init__(
        self,
        backends: Iterable[LLMBackend],
        max_attempts: int = 2,
        retry_base_delay: float = 2.0,
        sleep: Callable[[float], None] = time.sleep,
    ):
        """Initialize the orchestrator.

        Args:
            backends: Candidate backends, configured or not
            max_attempts: Total attempts per backend for retryable failures
            retry_base_delay: Linear backoff base; attempt n waits base * n seconds
            sleep: Sleep function (injected in tests)
        """
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        backends = [b for b in backends if b.is_available()]
        seen: Dict[int, str] = {}
        for backend in backends:
            if backend.priority in seen:
                raise ValueError(
                    f"Backends {seen[backend.priority]} and {backend.name} share priority {backend.priority}"
                )
            seen[backend.priority] = backend.name

        self.max_attempts = max_attempts
        self.retry_base_delay = retry_base_delay
        self._sleep = sleep
        self._descriptors: List[BackendDescriptor] = sorted(
            (
                BackendDescriptor(name=b.name, priority=b.priority, model=b.default_model, backend=b)
                for b in backends
            ),
            key=lambda d: d.priority,
        )
        self.preferred: Optional[str] = None

        if self._descriptors:
            logger.info(
                "Generation backends available: %s",
                ", ".join(f"{d.name}({d.model})" for d in self._descriptors),
            )
        else:
            logger.warning("No generation backends configured")

    # ------------------------------------------------------------------
    # Registry

    @property
    def backends(self) -> List[BackendDescriptor]:
        return list(self._descriptors)

    @property
    def configured_names(self) -> List[str]:
        return [d.name for d in self._descriptors]

    def set_preferred_backend(self, name: Optional[str]) -> None:
        """Advisory default preference used when a call names none."""
        if name is not None and name not in self.configured_names:
            raise ValueError(f"Backend {name} is not configured")
        self.preferred = name

    def ordered(
        self,
        preferred_backend: Optional[str] = None,
        allowed_backends: Optional[Iterable[str]] = None,
    ) -> List[BackendDescriptor]:
        """Backends in the order a call would try them."""
        order = list(self._descriptors)
        preferred = preferred_backend or self.preferred
        if preferred:
            front = [d for d in order if d.name == preferred]
            order = front + [d for d in order if d.name != preferred]
        if allowed_backends is not None:
            allowed = set(allowed_backends)
            order = [d for d in order if d.name in allowed]
        return order

    # ------------------------------------------------------------------
    # Generation

    def generate(
        self,
        prompt: str,
        context: Optional[str] = None,
        preferred_backend: Optional[str] = None,
        allowed_backends: Optional[Sequence[str]] = None,
    ) -> GenerationResult:
        """Generate text with the first backend that succeeds.

        Raises:
            NoBackendsConfiguredError: nothing configured (or nothing allowed)
            AllBackendsFailedError: every candidate failed
        """
        if not self._descriptors:
            raise NoBackendsConfiguredError("No generation backends are configured")

        candidates = self.ordered(preferred_backend, allowed_backends)
        if not candidates:
            raise NoBackendsConfiguredError("No configured generation backend is permitted for this caller")

        errors: Dict[str, BackendError] = {}
        for descriptor in candidates:
            try:
                result = self._attempt(descriptor, prompt, context)
            except BackendError as exc:
                errors[descriptor.name] = exc
                logger.warning("Backend %s exhausted, trying next: %s", descriptor.name, exc)
                continue
            if errors:
                logger.info("Generated with fallback backend %s", descriptor.name)
            return result

        logger.error("All generation backends failed: %s", ", ".join(errors))
        raise AllBackendsFailedError(errors)

    def _attempt(self, descriptor: BackendDescriptor, prompt: str, context: Optional[str]) -> GenerationResult:
        """Call one backend, retrying retryable failures up to max_attempts."""
        attempt = 1
        while True:
            try:
                return descriptor.backend.generate(prompt, context)
            except BackendError as exc:
                error = exc
            except Exception as exc:
                error = BackendError(descriptor.name, FailureKind.UNKNOWN, f"{type(exc).__name__}: {exc}")

            if error.kind == FailureKind.PERMANENT:
                logger.error("Backend %s rejected the request permanently: %s", descriptor.name, error)
            if not error.retryable or attempt >= self.max_attempts:
                raise error

            delay = self.retry_base_delay * attempt
            logger.warning(
                "Backend %s failed (%s), retrying in %.1fs (attempt %d/%d)",
                descriptor.name,
                error.kind.value,
                delay,
                attempt + 1,
                self.max_attempts,
            )
            self._sleep(delay)
            attempt += 1
