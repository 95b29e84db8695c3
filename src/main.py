# src/main.py — v3
"""CLI entry point: run, validate, hints, featured commands.

Usage:
    sportsync run [--manifest PATH] [--result PATH]
    sportsync validate <featured.json>
    sportsync hints [--history PATH]
    sportsync featured --events PATH --output PATH [--history PATH]
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import Any

from sportsync.version import __version__

logger = logging.getLogger(__name__)

FEATURED_SYSTEM_PROMPT = (
    "You are the editor of a daily sports dashboard. Return JSON only: "
    '{"blocks": [...]} using block types headline, event-line, event-group, '
    "narrative, section and divider. Use 3-8 blocks, lead with must-watch "
    "events (importance 4+), mix sports, prefix event lines with the sport "
    "emoji, and respect word limits (headline 15, event-line 20, narrative 40)."
)


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    if not hasattr(args, "func"):
        parser.print_help()
        return 1

    try:
        from sportsync.config.settings import load_settings

        settings = load_settings()
    except Exception as exc:
        print(f"Configuration error: {exc}", file=sys.stderr)
        return 1

    _setup_logging(settings, args.verbose)

    try:
        return asyncio.run(args.func(args, settings))
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        return 130
    except Exception as exc:
        logger.error("Fatal error: %s", exc, exc_info=args.verbose)
        return 1


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="sportsync",
        description=f"sportsync v{__version__}: data pipeline runner and content quality gate",
    )
    parser.add_argument(
        "--version", action="version", version=f"%(prog)s {__version__}",
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true",
        help="Enable debug logging",
    )

    subparsers = parser.add_subparsers(dest="command")

    # --- run ---
    p_run = subparsers.add_parser("run", help="Run the pipeline manifest")
    p_run.add_argument(
        "--manifest", type=Path, default=None,
        help="Manifest JSON (default: settings manifest_path)",
    )
    p_run.add_argument(
        "--result", type=Path, default=None,
        help="Where to write pipeline-result.json (default: <data_dir>/pipeline-result.json)",
    )
    p_run.set_defaults(func=_cmd_run)

    # --- validate ---
    p_validate = subparsers.add_parser(
        "validate", help="Validate a featured content document",
    )
    p_validate.add_argument("file", type=Path, help="Featured JSON file")
    p_validate.set_defaults(func=_cmd_validate)

    # --- hints ---
    p_hints = subparsers.add_parser(
        "hints", help="Show the adaptive hints derived from quality history",
    )
    p_hints.add_argument(
        "--history", type=Path, default=None,
        help="Quality history JSON (default: <data_dir>/quality-history.json)",
    )
    p_hints.set_defaults(func=_cmd_hints)

    # --- featured ---
    p_featured = subparsers.add_parser(
        "featured", help="Generate featured content with the quality loop",
    )
    p_featured.add_argument("--events", type=Path, required=True, help="Events JSON")
    p_featured.add_argument("--output", type=Path, required=True, help="Featured output JSON")
    p_featured.add_argument(
        "--history", type=Path, default=None,
        help="Quality history JSON (default: <data_dir>/quality-history.json)",
    )
    p_featured.set_defaults(func=_cmd_featured)

    return parser


async def _cmd_run(args: argparse.Namespace, settings: Any) -> int:
    """Run every phase; exit code reflects the gate."""
    from sportsync.pipeline.orchestrator import PipelineOrchestrator

    orchestrator = PipelineOrchestrator(settings=settings, result_path=args.result)
    try:
        result = await orchestrator.run(args.manifest)
    except Exception as exc:
        logger.error("Pipeline failed: %s", exc)
        print(f"Pipeline error, partial result written to {orchestrator.result_path}")
        return 1

    summary = result.summary
    print(f"\nPipeline {result.gate.upper()}:")
    print(f"  Steps:     {summary.total}")
    print(f"  Success:   {summary.success}")
    print(f"  Failed:    {summary.failed}")
    print(f"  Skipped:   {summary.skipped}")
    print(f"  Duration:  {result.duration / 1000:.1f}s")
    print(f"  Result:    {orchestrator.result_path}")
    return 0 if result.gate == "pass" else 1


async def _cmd_validate(args: argparse.Namespace, settings: Any) -> int:
    from sportsync.quality.validator import validate_featured

    document = _read_json(args.file)
    result = validate_featured(document)
    print(f"\n{args.file}: {'valid' if result.valid else 'INVALID'} (score {result.score})")
    for issue in result.issues:
        print(f"  [{issue.severity}] {issue.code}: {issue.message}")
    return 0 if result.valid else 1


async def _cmd_hints(args: argparse.Namespace, settings: Any) -> int:
    from sportsync.quality.hints import build_adaptive_hints
    from sportsync.quality.history import QualityHistory

    history = QualityHistory(args.history or settings.history_path, settings.history_max_entries)
    entries = history.load()
    hints = build_adaptive_hints(entries)

    print(f"\nQuality history: {len(entries)} entries ({history.path})")
    for metric, value in hints.metrics.items():
        shown = "n/a" if value is None else f"{value:.2f}"
        print(f"  {metric:<20} {shown}")
    if not hints.hints:
        print("\nNo adaptive corrections active.")
        return 0
    print(f"\n{len(hints.hints)} correction(s) active:")
    for hint in hints.hints:
        print(f"  - {hint}")
    return 0


async def _cmd_featured(args: argparse.Namespace, settings: Any) -> int:
    """Generate featured content, write it, append a quality snapshot."""
    from sportsync.generation.fallback import build_fallback_featured
    from sportsync.generation.generator import LLMContentGenerator
    from sportsync.generation.loop import generate_featured
    from sportsync.llm.client_factory import create_default_client
    from sportsync.quality.editorial import (
        evaluate_editorial_quality,
        filter_today_events,
        get_enrichment_coverage,
    )
    from sportsync.quality.hints import build_adaptive_hints, format_hints_block
    from sportsync.quality.history import QualityHistory, build_quality_snapshot
    from sportsync.storage.json_io import write_json_atomic

    events = _load_events(args.events)
    now = datetime.now().astimezone()
    history = QualityHistory(args.history or settings.history_path, settings.history_max_entries)
    adaptive = build_adaptive_hints(history.load())
    for hint in adaptive.hints:
        logger.info("Adaptive hint active: %s", hint[:80])

    client = create_default_client(settings)
    generator = None
    if client is not None:
        generator = LLMContentGenerator(
            client,
            _build_user_prompt(events, now, format_hints_block(adaptive.hints)),
            max_tokens=settings.llm_max_tokens,
            temperature=settings.llm_temperature,
        )

    outcome = await generate_featured(
        generator,
        FEATURED_SYSTEM_PROMPT,
        fallback=lambda: build_fallback_featured(events, now),
        max_attempts=settings.generation_max_attempts,
        base_hints=adaptive.hints,
    )
    write_json_atomic(args.output, outcome.featured)

    editorial = evaluate_editorial_quality(outcome.featured, events, now)
    coverage = get_enrichment_coverage(events)
    snapshot = build_quality_snapshot(
        editorial,
        {**coverage, "score": round(
            (coverage["importanceCoverage"] + coverage["summaryCoverage"]) * 50
        )},
        {
            "blocks": outcome.featured.get("blocks", []),
            "score": outcome.quality.score,
            "provider": outcome.provider,
            "valid": outcome.quality.valid,
        },
        hints_applied=outcome.hints_applied,
        token_usage=outcome.usage.to_document() if outcome.usage.calls else None,
    )
    history.append(snapshot)

    print(f"\nFeatured content written to {args.output}:")
    print(f"  Provider:   {outcome.provider} ({outcome.attempts} attempt(s))")
    print(f"  Blocks:     {len(outcome.featured.get('blocks', []))}")
    print(f"  Quality:    {outcome.quality.score} ({'valid' if outcome.quality.valid else 'invalid'})")
    print(f"  Editorial:  {editorial.score}")
    print(f"  Today:      {len(filter_today_events(events, now))} event(s)")
    if outcome.usage.calls:
        print(f"  Tokens:     {outcome.usage.total} over {outcome.usage.calls} call(s)")
    return 0 if outcome.quality.valid else 1


def _read_json(path: Path) -> Any:
    with open(path, encoding="utf-8") as f:
        return json.load(f)


def _load_events(path: Path) -> list[dict[str, Any]]:
    """Events file is either a JSON array or ``{"events": [...]}``."""
    data = _read_json(path)
    if isinstance(data, dict):
        data = data.get("events")
    if not isinstance(data, list):
        raise ValueError(f"{path}: expected a JSON array of events")
    return [e for e in data if isinstance(e, dict)]


def _build_user_prompt(events: list[dict[str, Any]], now: datetime, hints_block: str) -> str:
    prompt = (
        f"Today is {now:%A %Y-%m-%d}. Write today's featured blocks for these events:\n"
        f"{json.dumps(events, ensure_ascii=False, indent=1)}"
    )
    if hints_block:
        prompt += f"\n\n{hints_block}"
    return prompt


def _setup_logging(settings: Any, verbose: bool) -> None:
    """Configure logging from settings; -v forces DEBUG."""
    from sportsync.logging.logger import setup_logging

    setup_logging(
        level="DEBUG" if verbose else settings.log_level,
        log_format=settings.log_format,
        log_file=str(settings.log_file) if settings.log_file else None,
        rotation=settings.log_rotation,
        retention=settings.log_retention,
    )


if __name__ == "__main__":
    sys.exit(main())
