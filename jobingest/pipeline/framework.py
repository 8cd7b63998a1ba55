"""Shared pipeline plumbing: run context, progress reporting, step runner, result.

Steps raise StepError; ``run_step`` logs each step with its run id and
duration and turns any other exception into StepError(UNEXPECTED).
"""

import logging
import time
import uuid
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Generic, Protocol, TypeVar

from jobingest.core.errors import StepError, StepErrorKind

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class PipelineContext:
    """Per-run identity and free-form metadata, threaded through every step."""

    run_id: str
    started_at: datetime
    metadata: dict[str, str] = field(default_factory=dict)

    @classmethod
    def create(cls, **metadata: str) -> "PipelineContext":
        return cls(run_id=str(uuid.uuid4()), started_at=datetime.now(UTC), metadata=dict(metadata))

    def with_metadata(self, key: str, value: str) -> "PipelineContext":
        return PipelineContext(self.run_id, self.started_at, {**self.metadata, key: value})


@dataclass(frozen=True)
class ProgressEvent:
    step: int
    total_steps: int
    status: str
    message: str


class ProgressEmitter(Protocol):
    def emit(self, step: int, total_steps: int, status: str, message: str) -> None: ...


class _NoopProgress:
    def emit(self, step: int, total_steps: int, status: str, message: str) -> None:
        return None


NOOP_PROGRESS: ProgressEmitter = _NoopProgress()


class RecordingProgress:
    """Collects progress events in memory (CLI verbose output, tests)."""

    def __init__(self) -> None:
        self.events: list[ProgressEvent] = []

    def emit(self, step: int, total_steps: int, status: str, message: str) -> None:
        self.events.append(ProgressEvent(step, total_steps, status, message))

    @property
    def statuses(self) -> list[str]:
        return [e.status for e in self.events]


@dataclass(frozen=True)
class PipelineResult(Generic[T]):
    """Outcome of one pipeline run: exactly one of ``output`` / ``error`` is set."""

    run_id: str
    output: T | None
    error: StepError | None
    duration_ms: int

    @property
    def is_success(self) -> bool:
        return self.output is not None and self.error is None

    @property
    def is_failure(self) -> bool:
        return self.error is not None

    @classmethod
    def success(cls, run_id: str, output: T, duration_ms: int) -> "PipelineResult[T]":
        return cls(run_id, output, None, duration_ms)

    @classmethod
    def failure(cls, run_id: str, error: StepError, duration_ms: int) -> "PipelineResult[T]":
        return cls(run_id, None, error, duration_ms)


def _elapsed_ms(start: float) -> int:
    return int((time.monotonic() - start) * 1000)


def _unexpected(name: str, e: Exception) -> StepError:
    return StepError(
        StepErrorKind.UNEXPECTED, f"Unexpected error in step {name}: {e}", name, cause=e,
    )


def run_step(name: str, ctx: PipelineContext, fn: Callable[[], T]) -> T:
    """Run a synchronous step with start/finish logging."""
    start = time.monotonic()
    logger.info("[%s] Starting step: %s", ctx.run_id, name)
    try:
        result = fn()
    except StepError as e:
        logger.error("[%s] Failed step: %s in %dms - %s", ctx.run_id, name, _elapsed_ms(start), e.message)
        raise
    except Exception as e:
        logger.error("[%s] Failed step: %s in %dms - %s", ctx.run_id, name, _elapsed_ms(start), e)
        raise _unexpected(name, e) from e
    logger.info("[%s] Completed step: %s in %dms", ctx.run_id, name, _elapsed_ms(start))
    return result


async def run_step_async(
    name: str,
    ctx: PipelineContext,
    fn: Callable[[], Awaitable[T]],
) -> T:
    """Async counterpart of ``run_step``."""
    start = time.monotonic()
    logger.info("[%s] Starting step: %s", ctx.run_id, name)
    try:
        result = await fn()
    except StepError as e:
        logger.error("[%s] Failed step: %s in %dms - %s", ctx.run_id, name, _elapsed_ms(start), e.message)
        raise
    except Exception as e:
        logger.error("[%s] Failed step: %s in %dms - %s", ctx.run_id, name, _elapsed_ms(start), e)
        raise _unexpected(name, e) from e
    logger.info("[%s] Completed step: %s in %dms", ctx.run_id, name, _elapsed_ms(start))
    return result


def elapsed_since(ctx: PipelineContext) -> int:
    """Milliseconds since the run started."""
    return int((datetime.now(UTC) - ctx.started_at).total_seconds() * 1000)
