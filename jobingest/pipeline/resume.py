"""Resume parsing pipeline: validate → extract text → AI extraction → normalize."""

import logging
from typing import Protocol

from pydantic import BaseModel, ConfigDict

from jobingest.core.config import Settings
from jobingest.core.errors import InputValidationError, SchemaError, StepError, StepErrorKind
from jobingest.normalize import normalize_resume
from jobingest.pipeline.framework import (
    NOOP_PROGRESS,
    PipelineContext,
    PipelineResult,
    ProgressEmitter,
    elapsed_since,
    run_step,
)
from jobingest.resume.documents import DocumentType, detect_document_type, extract_text
from jobingest.resume.schema import ExtractedResumeData

logger = logging.getLogger(__name__)


class AIResumeExtractor(Protocol):
    def extract_structured(self, document_text: str) -> ExtractedResumeData: ...


class ResumeParsingOutput(BaseModel):
    model_config = ConfigDict(frozen=True)

    file_name: str
    document_type: DocumentType
    text_length: int
    data: ExtractedResumeData


class ResumeParsingPipeline:
    """Turn an uploaded resume file into a normalized ExtractedResumeData."""

    name = "ResumeParsingPipeline"
    total_steps = 4

    def __init__(
        self,
        extractor: AIResumeExtractor,
        settings: Settings | None = None,
        progress: ProgressEmitter = NOOP_PROGRESS,
    ) -> None:
        self._extractor = extractor
        self._settings = settings or Settings()
        self._progress = progress

    def run(
        self,
        file_bytes: bytes,
        file_name: str,
        claimed_mime_type: str | None = None,
    ) -> PipelineResult[ResumeParsingOutput]:
        ctx = PipelineContext.create(file_name=file_name)
        logger.info("[%s] Starting pipeline: %s", ctx.run_id, self.name)
        step = 0
        try:
            step = 1
            self._progress.emit(step, self.total_steps, "validating", "Checking file...")
            doc_type = run_step(
                "ValidateDocument",
                ctx,
                lambda: self._validate(file_bytes, file_name, claimed_mime_type),
            )

            step = 2
            self._progress.emit(step, self.total_steps, "extracting_text", "Reading document...")
            text = run_step("ExtractText", ctx, lambda: self._extract_text(file_bytes, doc_type))

            step = 3
            self._progress.emit(step, self.total_steps, "extracting_data", "Extracting resume details...")
            extracted = run_step("ExtractResume", ctx, lambda: self._extract_data(text))

            step = 4
            self._progress.emit(step, self.total_steps, "normalizing", "Cleaning up...")
            data = run_step("NormalizeResume", ctx, lambda: normalize_resume(extracted))
        except StepError as e:
            self._progress.emit(step, self.total_steps, "error", e.message)
            logger.error(
                "[%s] Failed pipeline: %s in %dms - %s",
                ctx.run_id, self.name, elapsed_since(ctx), e.message,
            )
            return PipelineResult.failure(ctx.run_id, e, elapsed_since(ctx))

        self._progress.emit(self.total_steps, self.total_steps, "complete", "Resume parsed successfully")
        logger.info("[%s] Completed pipeline: %s in %dms", ctx.run_id, self.name, elapsed_since(ctx))
        output = ResumeParsingOutput(
            file_name=file_name,
            document_type=doc_type,
            text_length=len(text),
            data=data,
        )
        return PipelineResult.success(ctx.run_id, output, elapsed_since(ctx))

    def _validate(self, file_bytes: bytes, file_name: str, claimed_mime_type: str | None) -> DocumentType:
        if not file_bytes:
            msg = f"File '{file_name}' is empty"
            raise StepError(StepErrorKind.VALIDATION, msg, "ValidateDocument")
        limit = self._settings.resume.max_file_bytes
        if len(file_bytes) > limit:
            msg = f"File '{file_name}' is {len(file_bytes)} bytes; the limit is {limit}"
            raise StepError(StepErrorKind.VALIDATION, msg, "ValidateDocument")
        doc_type = detect_document_type(file_bytes, file_name, claimed_mime_type)
        if doc_type is DocumentType.UNKNOWN:
            msg = f"Unsupported document type for '{file_name}'. Accepted types: PDF, DOCX, TXT"
            raise StepError(StepErrorKind.VALIDATION, msg, "ValidateDocument")
        return doc_type

    def _extract_text(self, file_bytes: bytes, doc_type: DocumentType) -> str:
        try:
            text = extract_text(file_bytes, doc_type)
        except InputValidationError as e:
            raise StepError(StepErrorKind.VALIDATION, str(e), "ExtractText", e) from e
        except ImportError as e:
            raise StepError(StepErrorKind.EXTRACTION, str(e), "ExtractText", e) from e
        except Exception as e:
            msg = f"Could not read {doc_type.label} document: {e}"
            raise StepError(StepErrorKind.EXTRACTION, msg, "ExtractText", e) from e
        if not text:
            msg = f"No text found in {doc_type.label} document"
            raise StepError(StepErrorKind.EXTRACTION, msg, "ExtractText")
        return text

    def _extract_data(self, text: str) -> ExtractedResumeData:
        try:
            return self._extractor.extract_structured(text)
        except SchemaError as e:
            raise StepError(StepErrorKind.SCHEMA, str(e), "ExtractResume", e) from e
