"""Job extraction flow and the end-to-end job ingestion pipeline.

extract_job (per page):
  1. Pattern matcher picks a known config (input order)
  2. Deterministic extraction + scoring; accepted if >= SUFFICIENT
  3. Otherwise escalate to the config generator (one AI call)

JobIngestionPipeline (per URL):
  existing-job check → fetch → load configs + extract_job →
  persist generated config (best effort) → normalize → store job
"""

import asyncio
import logging
import sqlite3
import time
from typing import Protocol

from pydantic import BaseModel, ConfigDict

from jobingest.core.db import StoredJob
from jobingest.core.errors import InputValidationError, SchemaError, StepError, StepErrorKind
from jobingest.core.schemas import CompletionState, ExtractedJobData, ScoringResult
from jobingest.extraction.extractor import extract
from jobingest.extraction.generator import ConfigGenerator
from jobingest.extraction.matcher import find_match
from jobingest.extraction.models import ExtractionConfig
from jobingest.fetch.browser import DocumentFetcher, FetchedDocument, FetchError
from jobingest.normalize import normalize_job
from jobingest.pipeline.framework import (
    NOOP_PROGRESS,
    PipelineContext,
    PipelineResult,
    ProgressEmitter,
    elapsed_since,
    run_step,
    run_step_async,
)

logger = logging.getLogger(__name__)

EXTRACT_STEP = "ExtractJob"


class JobExtraction(BaseModel):
    """Outcome of ``extract_job``.

    ``used_config`` is the config whose rules produced ``data`` (None when
    the data came from the AI). ``matched_config`` is whatever the matcher
    picked, even if its result was escalated. ``generated_config`` is None
    when the AI ran but derived the same rules the matched config has.
    """

    model_config = ConfigDict(frozen=True)

    data: ExtractedJobData
    scoring: ScoringResult
    used_config: ExtractionConfig | None = None
    matched_config: ExtractionConfig | None = None
    was_config_generated: bool = False
    generated_config: ExtractionConfig | None = None

    @property
    def completion_state(self) -> CompletionState:
        return self.scoring.state


def extract_job(
    html: str,
    url: str,
    known_configs: list[ExtractionConfig],
    generator: ConfigGenerator,
) -> JobExtraction:
    """Extract a job from a page, deterministically if possible, else via AI.

    A low-quality AI result is returned with its state attached, not raised.

    Raises:
        StepError: SCHEMA if the AI call failed, VALIDATION for a URL with no host.
    """
    matched = find_match(html, url, known_configs)
    if matched is not None:
        result = extract(html, url, matched)
        if result.completion_state >= CompletionState.SUFFICIENT:
            logger.info("Config '%s' accepted for %s: %s", matched.name, url, result.scoring.summary)
            return JobExtraction(
                data=result.data,
                scoring=result.scoring,
                used_config=matched,
                matched_config=matched,
            )
        logger.info(
            "Config '%s' scored %s on %s, escalating to AI",
            matched.name, result.scoring.summary, url,
        )
    else:
        logger.info("No config matches %s, generating one", url)

    try:
        generation = generator.generate(html, url)
    except SchemaError as e:
        raise StepError(StepErrorKind.SCHEMA, str(e), EXTRACT_STEP, cause=e) from e
    except InputValidationError as e:
        raise StepError(StepErrorKind.VALIDATION, str(e), EXTRACT_STEP, cause=e) from e

    generated: ExtractionConfig | None = generation.config
    if matched is not None and matched.match_hash == generation.config.match_hash:
        # Same page signature: changed rules become the next version, unchanged rules are kept.
        if generation.config.extract_rules == matched.extract_rules:
            logger.info("Config '%s' v%d rules unchanged, keeping it", matched.name, matched.version)
            generated = None
        else:
            generated = matched.with_rules(generation.config.extract_rules)

    return JobExtraction(
        data=generation.extraction_result.data,
        scoring=generation.extraction_result.scoring,
        matched_config=matched,
        was_config_generated=True,
        generated_config=generated,
    )


class IngestionStore(Protocol):
    def list_configs(self) -> list[ExtractionConfig]: ...

    def insert_config(self, config: ExtractionConfig) -> ExtractionConfig | None: ...

    def find_job(self, source_url: str) -> StoredJob | None: ...

    def insert_job(
        self,
        source_url: str,
        data: ExtractedJobData,
        completion_state: CompletionState,
        config_id: str | None = None,
    ) -> int | None: ...


class JobIngestionOutput(BaseModel):
    """What the ingestion pipeline stored (or found already stored).

    ``page_url`` is where the page was actually served from after redirects;
    the job itself is keyed by ``source_url``.
    """

    model_config = ConfigDict(frozen=True)

    source_url: str
    job_id: int | None
    page_url: str | None = None
    data: ExtractedJobData
    completion_state: CompletionState | None
    already_existed: bool = False
    was_config_generated: bool = False
    stored_config: ExtractionConfig | None = None


class JobIngestionPipeline:
    """Fetch, extract, and store one job posting per ``run``."""

    name = "JobIngestionPipeline"
    total_steps = 5

    def __init__(
        self,
        fetcher: DocumentFetcher | None,
        store: IngestionStore,
        generator: ConfigGenerator,
        progress: ProgressEmitter = NOOP_PROGRESS,
    ) -> None:
        self._fetcher = fetcher
        self._store = store
        self._generator = generator
        self._progress = progress

    async def run(self, url: str, html: str | None = None) -> PipelineResult[JobIngestionOutput]:
        """Ingest ``url``. Pass ``html`` to skip fetching."""
        ctx = PipelineContext.create(url=url)
        logger.info("[%s] Starting pipeline: %s", ctx.run_id, self.name)
        step = 0
        try:
            step = 1
            self._progress.emit(step, self.total_steps, "checking", "Looking up job...")
            existing = run_step("CheckExistingJob", ctx, lambda: self._find_existing(url))
            if existing is not None:
                logger.info("[%s] Job already stored for %s (id %d)", ctx.run_id, url, existing.id)
                output = JobIngestionOutput(
                    source_url=existing.source_url,
                    job_id=existing.id,
                    data=existing.data,
                    completion_state=existing.completion_state,
                    already_existed=True,
                )
            else:
                output = await self._ingest(ctx, url, html)
        except StepError as e:
            self._progress.emit(step, self.total_steps, "error", e.message)
            logger.error(
                "[%s] Failed pipeline: %s in %dms - %s",
                ctx.run_id, self.name, elapsed_since(ctx), e.message,
            )
            return PipelineResult.failure(ctx.run_id, e, elapsed_since(ctx))

        self._progress.emit(self.total_steps, self.total_steps, "complete", "Job added successfully")
        logger.info("[%s] Completed pipeline: %s in %dms", ctx.run_id, self.name, elapsed_since(ctx))
        return PipelineResult.success(ctx.run_id, output, elapsed_since(ctx))

    async def _ingest(self, ctx: PipelineContext, url: str, html: str | None) -> JobIngestionOutput:
        self._progress.emit(2, self.total_steps, "fetching", "Getting job page...")
        page_url = url
        if html is None:
            document = await run_step_async("FetchDocument", ctx, lambda: self._fetch(url))
            html = document.html
            if document.url and document.url != url:
                page_url = document.url
                ctx = ctx.with_metadata("page_url", page_url)
                logger.info("[%s] %s redirected to %s", ctx.run_id, url, page_url)

        self._progress.emit(3, self.total_steps, "extracting", "Extracting job details...")
        configs = run_step("LoadConfigs", ctx, self._load_configs)
        extraction = await run_step_async(
            EXTRACT_STEP,
            ctx,
            lambda: asyncio.to_thread(extract_job, html, page_url, configs, self._generator),
        )

        self._progress.emit(4, self.total_steps, "saving_config", "Saving extraction config...")
        stored_config = self._save_config(ctx, extraction.generated_config)

        self._progress.emit(5, self.total_steps, "loading", "Creating job record...")
        data = normalize_job(extraction.data)
        source_config = stored_config or extraction.used_config
        config_id = source_config.id if source_config is not None else None
        job_id = run_step(
            "LoadJob",
            ctx,
            lambda: self._insert_job(url, data, extraction.completion_state, config_id),
        )
        return JobIngestionOutput(
            source_url=url,
            job_id=job_id,
            page_url=page_url,
            data=data,
            completion_state=extraction.completion_state,
            was_config_generated=extraction.was_config_generated,
            stored_config=stored_config,
        )

    def _find_existing(self, url: str) -> StoredJob | None:
        try:
            return self._store.find_job(url)
        except sqlite3.Error as e:
            raise StepError(StepErrorKind.STORAGE, f"Job lookup failed: {e}", "CheckExistingJob", e) from e

    async def _fetch(self, url: str) -> FetchedDocument:
        if self._fetcher is None:
            msg = "No document fetcher configured and no HTML supplied"
            raise StepError(StepErrorKind.VALIDATION, msg, "FetchDocument")
        try:
            document = await self._fetcher.fetch(url)
        except FetchError as e:
            raise StepError(StepErrorKind.NETWORK, str(e), "FetchDocument", e) from e
        if not document.html.strip():
            msg = f"Empty document fetched from {url}"
            raise StepError(StepErrorKind.EXTRACTION, msg, "FetchDocument")
        return document

    def _load_configs(self) -> list[ExtractionConfig]:
        try:
            return self._store.list_configs()
        except sqlite3.Error as e:
            raise StepError(StepErrorKind.STORAGE, f"Loading configs failed: {e}", "LoadConfigs", e) from e

    def _save_config(self, ctx: PipelineContext, config: ExtractionConfig | None) -> ExtractionConfig | None:
        """Best effort: a config that cannot be saved only loses future reuse."""
        if config is None:
            return None
        if not config.extract_rules:
            logger.info("[%s] Generated config '%s' has no rules, not saving", ctx.run_id, config.name)
            return None
        start = time.monotonic()
        try:
            stored = self._store.insert_config(config)
        except Exception:
            logger.warning("[%s] Saving config '%s' failed", ctx.run_id, config.name, exc_info=True)
            return None
        if stored is None:
            logger.warning("[%s] Config '%s' v%d was not saved", ctx.run_id, config.name, config.version)
        else:
            logger.info(
                "[%s] Saved config '%s' v%d (%s) in %dms",
                ctx.run_id, stored.name, stored.version, stored.id,
                int((time.monotonic() - start) * 1000),
            )
        return stored

    def _insert_job(
        self,
        url: str,
        data: ExtractedJobData,
        state: CompletionState,
        config_id: str | None,
    ) -> int | None:
        try:
            return self._store.insert_job(url, data, state, config_id)
        except sqlite3.Error as e:
            raise StepError(StepErrorKind.STORAGE, f"Storing job failed: {e}", "LoadJob", e) from e
