# src/reelextract/main.py — v1
"""CLI entry point: extract, runs, show commands.

Usage:
    reelextract extract <video> [options]
    reelextract runs [--limit N]
    reelextract show <run_id>
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path

from reelextract.config.settings import Settings, load_settings
from reelextract.logging.logger import setup_logging
from reelextract.version import __version__

logger = logging.getLogger(__name__)


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    if not hasattr(args, "func"):
        parser.print_help()
        return 1

    try:
        settings = load_settings()
    except Exception as exc:
        print(f"Invalid configuration: {exc}", file=sys.stderr)
        return 2
    setup_logging(settings, verbose=args.verbose)

    try:
        return asyncio.run(args.func(args, settings))
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        return 130
    except Exception as exc:
        logger.error("Fatal error: %s", exc, exc_info=args.verbose)
        return 1


def _build_parser() -> argparse.ArgumentParser:
    """Build CLI argument parser."""
    parser = argparse.ArgumentParser(
        prog="reelextract",
        description=f"reelextract v{__version__}: restaurant facts from walkthrough videos",
    )
    parser.add_argument(
        "--version", action="version", version=f"%(prog)s {__version__}",
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true",
        help="Enable debug logging",
    )

    subparsers = parser.add_subparsers(dest="command")

    # --- extract ---
    p_extract = subparsers.add_parser(
        "extract", help="Extract facts from a restaurant video",
    )
    p_extract.add_argument("video", type=Path, help="Path to video file")
    p_extract.add_argument(
        "-o", "--output", type=Path, default=None,
        help="Frame output directory (default: FRAMES_OUTPUT_ROOT/<run_id>)",
    )
    p_extract.add_argument(
        "--no-fallback", action="store_true",
        help="Do not fall back to frame-based extraction on failure",
    )
    p_extract.add_argument(
        "--json", action="store_true",
        help="Print the full outcome as JSON",
    )
    p_extract.set_defaults(func=_cmd_extract)

    # --- runs ---
    p_runs = subparsers.add_parser(
        "runs", help="List recent extraction runs",
    )
    p_runs.add_argument(
        "-n", "--limit", type=int, default=20,
        help="Number of runs to show (default: 20)",
    )
    p_runs.set_defaults(func=_cmd_runs)

    # --- show ---
    p_show = subparsers.add_parser(
        "show", help="Print the full ledger record of a run",
    )
    p_show.add_argument("run_id", help="Run identifier")
    p_show.set_defaults(func=_cmd_show)

    return parser


async def _cmd_extract(args: argparse.Namespace, settings: Settings) -> int:
    """Execute single-video extraction."""
    from reelextract.api.facade import extract
    from reelextract.api.models import ExtractOptions

    video: Path = args.video
    if not video.is_file():
        logger.error("File not found: %s", video)
        return 1

    options = ExtractOptions(
        output_dir=args.output,
        use_fallback=False if args.no_fallback else None,
    )
    outcome = await extract(video, options, settings=settings)

    if args.json:
        print(outcome.model_dump_json(indent=2, by_alias=True))
        return 0

    result = outcome.result
    quality = outcome.quality
    print("\nExtraction complete:")
    print(f"  Run ID:       {outcome.run_id}")
    print(f"  Fallback:     {'yes' if outcome.used_fallback else 'no'}")
    print(f"  Restaurant:   {result.restaurant_info.name or '(unknown)'}"
          f" ({result.restaurant_info.cuisine_type})")
    print(f"  Menu items:   {len(result.menu.items)}"
          f" ({result.menu.needs_review_count} need review)")
    print(f"  Frames:       {len(result.frames)}")
    print(f"  Quality:      {quality.rating} ({quality.overall:.2f})")
    for issue in quality.issues:
        print(f"    [{issue.severity}] {issue.category}: {issue.message}")
    print(f"  Ledger:       {outcome.ledger_path}")
    return 0


async def _cmd_runs(args: argparse.Namespace, settings: Settings) -> int:
    """List recent runs, most recent first."""
    from reelextract.api.facade import list_recent_runs

    runs = await list_recent_runs(settings)
    if not runs:
        print("No runs recorded.")
        return 0

    for run in runs[: args.limit]:
        rating = run.quality.rating if run.quality else "-"
        marker = " (fallback)" if run.used_fallback else ""
        print(
            f"{run.run_id}  {run.status:<9}  {rating:<5}  "
            f"{run.video_path or ''}{marker}"
        )
    return 0


async def _cmd_show(args: argparse.Namespace, settings: Settings) -> int:
    """Print one run record as JSON."""
    from reelextract.api.facade import load_run
    from reelextract.ledger.run_ledger import RunNotFoundError

    try:
        run = await load_run(args.run_id, settings)
    except RunNotFoundError:
        logger.error("Run not found: %s", args.run_id)
        return 1
    print(run.model_dump_json(indent=2))
    return 0


if __name__ == "__main__":
    sys.exit(main())
