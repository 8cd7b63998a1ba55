"""CLI entry point for job and resume ingestion."""

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path

from pydantic import ValidationError

from jobingest.ai import available_providers
from jobingest.core.config import Settings
from jobingest.core.db import SqliteStore
from jobingest.core.errors import SchemaError, StepError
from jobingest.core.schemas import ExtractedJobData
from jobingest.pipeline.framework import PipelineResult

DEFAULT_CONFIG = "config/settings.yaml"


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Job and resume ingestion - extract, score and normalize structured records",
    )
    parser.add_argument(
        "--config",
        default=DEFAULT_CONFIG,
        help=f"Path to settings YAML file (default: {DEFAULT_CONFIG}; defaults used if absent)",
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable verbose (DEBUG) logging",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    # --- extract-job subcommand ---
    job_parser = subparsers.add_parser(
        "extract-job",
        help="Extract a job posting from a URL and store it",
    )
    job_parser.add_argument("--url", required=True, help="Job posting URL")
    job_parser.add_argument(
        "--html",
        help="Read page HTML from this file instead of launching a browser",
    )
    job_parser.add_argument(
        "--provider",
        choices=available_providers(),
        help="LLM provider for AI extraction (default: from settings)",
    )

    # --- parse-resume subcommand ---
    resume_parser = subparsers.add_parser(
        "parse-resume",
        help="Parse a resume file (PDF, DOCX, TXT) into structured JSON",
    )
    resume_parser.add_argument("--file", required=True, help="Path to resume file")
    resume_parser.add_argument(
        "--provider",
        choices=available_providers(),
        help="LLM provider for AI extraction (default: from settings)",
    )

    # --- normalize-resume subcommand ---
    normalize_parser = subparsers.add_parser(
        "normalize-resume",
        help="Normalize an extracted resume JSON file",
    )
    normalize_parser.add_argument("--input", required=True, help="Path to resume JSON")

    # --- score subcommand ---
    score_parser = subparsers.add_parser(
        "score",
        help="Score an extracted job JSON file for completeness",
    )
    score_parser.add_argument("--input", required=True, help="Path to job JSON")

    # --- parse-greenhouse subcommand ---
    greenhouse_parser = subparsers.add_parser(
        "parse-greenhouse",
        help="Parse a Greenhouse job API response into a job record",
    )
    greenhouse_parser.add_argument("--input", required=True, help="Path to Greenhouse job JSON")
    greenhouse_parser.add_argument("--url", help="Source URL of the posting (default: its absolute_url)")
    greenhouse_parser.add_argument("--company", help="Company name for the record")

    # --- list-configs subcommand ---
    subparsers.add_parser("list-configs", help="List stored extraction configs")

    return parser.parse_args(argv)


def setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )


def load_settings(path: str) -> Settings:
    """Settings from ``path``; defaults when the default path does not exist."""
    if path == DEFAULT_CONFIG and not Path(path).exists():
        return Settings()
    return Settings.from_yaml(path)


def _with_provider(settings: Settings, provider: str | None) -> Settings:
    if provider is None:
        return settings
    ai = settings.ai.model_copy(update={"provider": provider})
    return settings.model_copy(update={"ai": ai})


def _print_json(payload: object) -> None:
    print(json.dumps(payload, indent=2, ensure_ascii=False))


def _fail(result: PipelineResult) -> None:
    error = result.error
    if error is not None:
        print(f"Error: [{error.kind.value}] {error.step_name}: {error.message}", file=sys.stderr)
    sys.exit(1)


async def cmd_extract_job(args: argparse.Namespace, settings: Settings) -> None:
    """Handle extract-job subcommand."""
    from jobingest.ai.job_agent import LLMJobExtractor
    from jobingest.extraction.generator import ConfigGenerator
    from jobingest.fetch.browser import BrowserFetcher
    from jobingest.pipeline.job import JobIngestionPipeline

    extractor = LLMJobExtractor.from_config(settings.ai)
    generator = ConfigGenerator(extractor, settings.ai.max_content_chars)
    store = SqliteStore.open(settings.database.path)
    try:
        if args.html:
            html = Path(args.html).read_text(encoding="utf-8")
            pipeline = JobIngestionPipeline(None, store, generator)
            result = await pipeline.run(args.url, html=html)
        else:
            async with BrowserFetcher(settings.browser) as fetcher:
                pipeline = JobIngestionPipeline(fetcher, store, generator)
                result = await pipeline.run(args.url)
    finally:
        store.close()

    if result.output is None:
        _fail(result)
        return
    output = result.output
    if output.already_existed:
        print(f"Job already stored (id {output.job_id}): {output.data.title}")
    else:
        state = output.completion_state.value if output.completion_state else "unknown"
        print(f"Stored job {output.job_id}: {output.data.title} [{state}]")
        if output.stored_config is not None:
            cfg = output.stored_config
            print(f"  Saved extraction config '{cfg.name}' v{cfg.version}")
    _print_json(output.data.to_json_dict())


def cmd_parse_resume(args: argparse.Namespace, settings: Settings) -> None:
    """Handle parse-resume subcommand."""
    from jobingest.ai.resume_agent import LLMResumeExtractor
    from jobingest.pipeline.resume import ResumeParsingPipeline

    path = Path(args.file)
    if not path.exists():
        msg = f"Resume file not found: {path}"
        raise FileNotFoundError(msg)

    extractor = LLMResumeExtractor.from_config(settings.ai)
    pipeline = ResumeParsingPipeline(extractor, settings)
    result = pipeline.run(path.read_bytes(), path.name)
    if result.output is None:
        _fail(result)
        return
    print(
        f"Parsed {result.output.document_type.label} resume "
        f"({result.output.text_length} characters)",
        file=sys.stderr,
    )
    _print_json(result.output.data.to_json_dict())


def cmd_normalize_resume(args: argparse.Namespace) -> None:
    """Handle normalize-resume subcommand."""
    from jobingest.normalize import normalize_resume
    from jobingest.resume.schema import ExtractedResumeData

    data = ExtractedResumeData.model_validate_json(Path(args.input).read_text(encoding="utf-8"))
    _print_json(normalize_resume(data).to_json_dict())


def cmd_score(args: argparse.Namespace) -> None:
    """Handle score subcommand."""
    from jobingest.extraction.scorer import score_extracted_data

    data = ExtractedJobData.model_validate_json(Path(args.input).read_text(encoding="utf-8"))
    result = score_extracted_data(data)
    print(f"Score: {result.summary}")
    if result.missing_required:
        print(f"  Missing required: {', '.join(result.missing_required)}")
    if result.missing_optional:
        print(f"  Missing optional: {', '.join(result.missing_optional)}")


def cmd_parse_greenhouse(args: argparse.Namespace) -> None:
    """Handle parse-greenhouse subcommand."""
    from jobingest.pipeline.framework import PipelineContext
    from jobingest.sources.greenhouse import parse_greenhouse_job

    raw = Path(args.input).read_text(encoding="utf-8")
    ctx = PipelineContext.create(source="greenhouse")
    try:
        job = parse_greenhouse_job(raw, args.url, ctx, args.company)
    except StepError as e:
        print(f"Error: [{e.kind.value}] {e.step_name}: {e.message}", file=sys.stderr)
        sys.exit(1)
    print(f"Score: {job.scoring.summary}", file=sys.stderr)
    _print_json(job.data.to_json_dict())


def cmd_list_configs(settings: Settings) -> None:
    """Handle list-configs subcommand."""
    store = SqliteStore.open(settings.database.path)
    try:
        configs = store.list_configs()
    finally:
        store.close()

    print(f"{len(configs)} extraction configs")
    for cfg in configs:
        fields = ", ".join(sorted(cfg.extract_rules)) or "-"
        print(f"  {cfg.name} v{cfg.version} [{cfg.match_hash[:12]}] fields: {fields}")


def main(argv: list[str] | None = None) -> None:
    args = parse_args(argv)
    setup_logging(args.verbose)

    try:
        settings = load_settings(args.config)
    except (FileNotFoundError, ValueError) as e:
        print(f"Error loading config: {e}", file=sys.stderr)
        sys.exit(1)

    try:
        if args.command == "extract-job":
            asyncio.run(cmd_extract_job(args, _with_provider(settings, args.provider)))
        elif args.command == "parse-resume":
            cmd_parse_resume(args, _with_provider(settings, args.provider))
        elif args.command == "normalize-resume":
            cmd_normalize_resume(args)
        elif args.command == "score":
            cmd_score(args)
        elif args.command == "parse-greenhouse":
            cmd_parse_greenhouse(args)
        else:
            cmd_list_configs(settings)
    except (FileNotFoundError, ImportError, ValidationError, SchemaError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
