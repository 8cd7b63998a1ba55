"""Tests for the pipeline step runner, context and result types."""

import logging

import pytest

from jobingest.core.errors import StepError, StepErrorKind
from jobingest.pipeline.framework import (
    NOOP_PROGRESS,
    PipelineContext,
    PipelineResult,
    ProgressEvent,
    RecordingProgress,
    elapsed_since,
    run_step,
    run_step_async,
)


class TestPipelineContext:
    def test_create(self) -> None:
        ctx = PipelineContext.create(source="cli")
        assert ctx.run_id
        assert ctx.metadata == {"source": "cli"}

    def test_unique_run_ids(self) -> None:
        assert PipelineContext.create().run_id != PipelineContext.create().run_id

    def test_with_metadata_returns_copy(self) -> None:
        ctx = PipelineContext.create()
        updated = ctx.with_metadata("url", "https://jobs.acme.com/1")
        assert updated.metadata == {"url": "https://jobs.acme.com/1"}
        assert ctx.metadata == {}
        assert updated.run_id == ctx.run_id

    def test_elapsed_since_non_negative(self) -> None:
        assert elapsed_since(PipelineContext.create()) >= 0


class TestProgress:
    def test_recording(self) -> None:
        progress = RecordingProgress()
        progress.emit(1, 3, "fetching", "Fetching page")
        progress.emit(3, 3, "complete", "Done")
        assert progress.statuses == ["fetching", "complete"]
        assert progress.events[0] == ProgressEvent(1, 3, "fetching", "Fetching page")

    def test_noop(self) -> None:
        assert NOOP_PROGRESS.emit(1, 1, "complete", "Done") is None


# ---------------------------------------------------------------------------
# Step runner
# ---------------------------------------------------------------------------


class TestRunStep:
    def test_returns_value(self) -> None:
        assert run_step("Add", PipelineContext.create(), lambda: 1 + 1) == 2

    def test_step_error_propagates_unchanged(self) -> None:
        error = StepError(StepErrorKind.VALIDATION, "bad input", "Validate")

        def fail() -> None:
            raise error

        with pytest.raises(StepError) as exc_info:
            run_step("Validate", PipelineContext.create(), fail)
        assert exc_info.value is error

    def test_other_exception_wrapped(self) -> None:
        def fail() -> None:
            msg = "boom"
            raise RuntimeError(msg)

        with pytest.raises(StepError) as exc_info:
            run_step("Explode", PipelineContext.create(), fail)
        assert exc_info.value.kind is StepErrorKind.UNEXPECTED
        assert exc_info.value.step_name == "Explode"
        assert "boom" in exc_info.value.message
        assert isinstance(exc_info.value.cause, RuntimeError)

    def test_logs_with_run_id(self, caplog: pytest.LogCaptureFixture) -> None:
        ctx = PipelineContext.create()
        with caplog.at_level(logging.INFO, logger="jobingest.pipeline.framework"):
            run_step("Noop", ctx, lambda: None)
        assert f"[{ctx.run_id}] Starting step: Noop" in caplog.text
        assert f"[{ctx.run_id}] Completed step: Noop" in caplog.text


class TestRunStepAsync:
    async def test_returns_value(self) -> None:
        async def step() -> str:
            return "ok"

        assert await run_step_async("Async", PipelineContext.create(), step) == "ok"

    async def test_other_exception_wrapped(self) -> None:
        async def step() -> None:
            msg = "nope"
            raise KeyError(msg)

        with pytest.raises(StepError) as exc_info:
            await run_step_async("Async", PipelineContext.create(), step)
        assert exc_info.value.kind is StepErrorKind.UNEXPECTED

    async def test_step_error_propagates(self) -> None:
        async def step() -> None:
            raise StepError(StepErrorKind.NETWORK, "timeout", "Fetch")

        with pytest.raises(StepError) as exc_info:
            await run_step_async("Fetch", PipelineContext.create(), step)
        assert exc_info.value.kind is StepErrorKind.NETWORK


class TestPipelineResult:
    def test_success(self) -> None:
        result = PipelineResult.success("run-1", {"id": 1}, 12)
        assert result.is_success
        assert not result.is_failure
        assert result.error is None

    def test_failure(self) -> None:
        error = StepError(StepErrorKind.STORAGE, "disk full", "LoadJob")
        result: PipelineResult[int] = PipelineResult.failure("run-1", error, 5)
        assert result.is_failure
        assert not result.is_success
        assert result.output is None
        assert result.error is error
