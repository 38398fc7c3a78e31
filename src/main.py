# src/main.py - v2
"""CLI entry point: run, forensics, tiers commands.

Usage:
    visionnarrate run <config.json> [options]
    visionnarrate forensics <logs.jsonl>
    visionnarrate tiers
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path

from visionnarrate.version import __version__

logger = logging.getLogger(__name__)


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    if not hasattr(args, "func"):
        parser.print_help()
        return 1

    try:
        _setup_logging(args.verbose)
        return asyncio.run(args.func(args))
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        return 130
    except Exception as exc:
        logger.error("Fatal error: %s", exc, exc_info=args.verbose)
        return 1


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="visionnarrate",
        description=f"VisionNarrate v{__version__}: long-form product video pipeline",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")

    subparsers = parser.add_subparsers(dest="command")

    # --- run ---
    p_run = subparsers.add_parser("run", help="Generate a video from a pipeline config")
    p_run.add_argument("config", type=Path, help="Path to PipelineConfig JSON")
    p_run.add_argument(
        "-o", "--output", type=Path, default=None,
        help="Run output root (default: OUTPUT_ROOT setting)",
    )
    p_run.add_argument("--resume-run", default=None, help="Run ID to resume from its checkpoint")
    p_run.add_argument(
        "--strategy", choices=["chain", "per_chapter"], default=None,
        help="Synthesis strategy (default: SYNTHESIS_STRATEGY setting)",
    )
    p_run.add_argument(
        "--download", action="store_true",
        help="Download the final video into the run directory",
    )
    p_run.set_defaults(func=_cmd_run)

    # --- forensics ---
    p_forensics = subparsers.add_parser("forensics", help="Explain a failed run from its log export")
    p_forensics.add_argument("logs", type=Path, help="Path to logs.jsonl")
    p_forensics.set_defaults(func=_cmd_forensics)

    # --- tiers ---
    p_tiers = subparsers.add_parser("tiers", help="Show the model tier catalogue")
    p_tiers.set_defaults(func=_cmd_tiers)

    return parser


async def _cmd_run(args: argparse.Namespace) -> int:
    """Execute one pipeline run."""
    from visionnarrate.api.facade import load_config, run_pipeline
    from visionnarrate.config.settings import load_settings
    from visionnarrate.pipeline.errors import PipelineRunError

    if not args.config.exists():
        logger.error("Config not found: %s", args.config)
        return 1

    overrides: dict[str, object] = {}
    if args.output is not None:
        overrides["output_root"] = args.output
    if args.download:
        overrides["download_artifacts"] = True
    settings = load_settings(**overrides)
    config = load_config(args.config)

    def on_progress(stage, message, percent, entry=None) -> None:
        print(f"[{percent:3d}%] {stage.value:<10} {message}", file=sys.stderr)

    try:
        result = await run_pipeline(
            config,
            on_progress=on_progress,
            settings=settings,
            resume_run_id=args.resume_run,
            strategy=args.strategy,
        )
    except PipelineRunError as e:
        print(f"\nRun {e.run_id} failed: {e}")
        print(f"  Logs: {settings.run_root / e.run_id / 'logs.jsonl'}")
        return 2

    _print_result_summary(result)
    return 0


async def _cmd_forensics(args: argparse.Namespace) -> int:
    """Print a diagnostic narrative for a saved log export."""
    from visionnarrate.api.facade import forensic_analysis
    from visionnarrate.tracking.logbook import load_entries

    if not args.logs.exists():
        logger.error("Log file not found: %s", args.logs)
        return 1
    entries = load_entries(args.logs)
    print(await forensic_analysis(entries))
    return 0


async def _cmd_tiers(args: argparse.Namespace) -> int:
    """List the tiers the router will walk, most capable first."""
    from visionnarrate.config.settings import load_settings
    from visionnarrate.llm.config import resolve_tiers

    for tier in resolve_tiers(load_settings()):
        print(f"  {tier.label:<7} {tier.provider:<7} {tier.model_id} ({tier.display_name})")
    return 0


def _print_result_summary(result: object) -> None:
    from visionnarrate.pipeline.orchestrator import chapter_summary

    print("\nRun complete:")
    print(f"  Run ID:      {result.run_id}")
    print(f"  Strategy:    {result.strategy}")
    print(f"  Duration:    {result.total_duration_s:.0f}s (target reached: {result.target_reached})")
    print(f"  Video:       {result.final_video_uri}")
    print(f"  Audio:       {'yes' if result.final_audio_uri else 'none'}")
    print(f"  Recoveries:  {result.recoveries_applied}")
    print(f"  Final tier:  {result.active_tier}")
    print("  Chapters:")
    print(chapter_summary(result.chapters))


def _setup_logging(verbose: bool) -> None:
    """Configure logging for CLI usage from settings."""
    from visionnarrate.config.settings import load_settings
    from visionnarrate.logging.logger import setup_logging

    settings = load_settings()
    setup_logging(
        level="DEBUG" if verbose else settings.log_level,
        log_format=settings.log_format,
        log_file=settings.log_file,
        rotation=settings.log_rotation,
        retention=settings.log_retention,
    )
    # Quiet noisy libraries
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)


if __name__ == "__main__":
    sys.exit(main())
