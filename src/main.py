# src/main.py - v2
"""CLI entry point: analyze, run, runs, show commands.

Usage:
    matrixmint analyze <rfp_file> <capability_file> [--mode MODE] [--model MODEL]
    matrixmint run <rfp_file> <capability_file> [--mode MODE] [--export-dir DIR]
    matrixmint runs [--limit N]
    matrixmint show <run_id> [--export FORMAT]
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Any

from matrixmint.version import __version__

logger = logging.getLogger(__name__)

_MODES = ("auto", "live", "cache", "offline")


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    if not hasattr(args, "func"):
        parser.print_help()
        return 1

    from matrixmint.config.settings import ConfigurationError, load_settings

    try:
        settings = load_settings()
    except ConfigurationError as exc:
        print(f"Configuration error: {exc}", file=sys.stderr)
        return 2

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
    """Build CLI argument parser."""
    parser = argparse.ArgumentParser(
        prog="matrixmint",
        description=f"MatrixMint v{__version__} - proof-locked RFP compliance analysis",
    )
    parser.add_argument(
        "--version", action="version", version=f"%(prog)s {__version__}",
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true",
        help="Enable debug logging",
    )

    subparsers = parser.add_subparsers(dest="command")

    # --- analyze ---
    p_analyze = subparsers.add_parser("analyze", help="Analyze an RFP against a capability brief")
    _add_input_arguments(p_analyze)
    p_analyze.set_defaults(func=_cmd_analyze)

    # --- run ---
    p_run = subparsers.add_parser("run", help="Analyze, build exports and store the run")
    _add_input_arguments(p_run)
    p_run.add_argument(
        "--export-dir", type=Path, default=None,
        help="Also write the five exports into this directory",
    )
    p_run.set_defaults(func=_cmd_run)

    # --- runs ---
    p_runs = subparsers.add_parser("runs", help="List stored runs, newest first")
    p_runs.add_argument("--limit", type=int, default=None, help="Max runs to list")
    p_runs.set_defaults(func=_cmd_runs)

    # --- show ---
    p_show = subparsers.add_parser("show", help="Show a stored run")
    p_show.add_argument("run_id", help="Run identifier")
    p_show.add_argument(
        "--export", default=None,
        help="Print one export instead of the bundle (proofpack_md, bidpacket_md, "
             "clarifications_email_md, risks_csv, proposal_draft_md, json)",
    )
    p_show.set_defaults(func=_cmd_show)

    return parser


def _add_input_arguments(p: argparse.ArgumentParser) -> None:
    p.add_argument("rfp_file", type=Path, help="RFP text file")
    p.add_argument("capability_file", type=Path, help="Capability brief text file")
    p.add_argument("--mode", choices=_MODES, default="auto", help="Execution lane (default: auto)")
    p.add_argument("--model", default=None, help="Model to request (default: configured default)")
    p.add_argument("--bust-cache", action="store_true", help="Skip the cache read")
    p.add_argument("--clear-cache", action="store_true", help="Clear the cache before running")


def _read_input(args: argparse.Namespace) -> Any:
    from matrixmint.api.models import AnalyzeInput

    return AnalyzeInput(
        rfp_text=args.rfp_file.read_text(encoding="utf-8"),
        capability_text=args.capability_file.read_text(encoding="utf-8"),
        model=args.model,
        mode=args.mode,
        bust_cache=args.bust_cache,
        clear_cache=args.clear_cache,
    )


def _check_files(args: argparse.Namespace) -> bool:
    for path in (args.rfp_file, args.capability_file):
        if not path.is_file():
            logger.error("File not found: %s", path)
            return False
    return True


async def _cmd_analyze(args: argparse.Namespace, settings: Any) -> int:
    """Execute a single analysis and print the JSON envelope."""
    from matrixmint.api.facade import analyze, build_services

    if not _check_files(args):
        return 1
    services = build_services(settings)
    response = await analyze(_read_input(args), services)
    _print_json(response.body)
    if "Retry-After" in response.headers:
        print(f"Retry after {response.headers['Retry-After']}s", file=sys.stderr)
    return 0 if response.ok else 1


async def _cmd_run(args: argparse.Namespace, settings: Any) -> int:
    """Execute a full run and print its summary."""
    from matrixmint.api.facade import build_services, run

    if not _check_files(args):
        return 1
    services = build_services(settings)
    response = await run(_read_input(args), services)
    body = response.body
    if not response.ok:
        _print_json(body)
        return 1

    orch = body["orchestrator"]
    summary = body["runSummary"]
    print("\nRun complete:")
    print(f"  Run ID:     {body['runId']}")
    print(f"  Lane:       {orch['ladderUsed']} (model {orch['modelUsed']})")
    print(f"  Coverage:   {summary['coveragePercent']}% "
          f"({summary['coveredCount']}/{summary['totalRequirements']} covered)")
    print(f"  Proof:      {summary['proofLabel']}")
    for warning in orch["warnings"]:
        print(f"  Warning:    {warning}")

    if args.export_dir is not None:
        _write_exports(args.export_dir, body["runId"], body["exports"])
    return 0


async def _cmd_runs(args: argparse.Namespace, settings: Any) -> int:
    """List stored runs."""
    from matrixmint.api.facade import build_services, list_runs

    services = build_services(settings)
    runs = await list_runs(services, args.limit)
    if not runs:
        print("No runs stored.")
        return 0
    for entry in runs:
        print(
            f"{entry.run_id}  {entry.created_at.isoformat()}  "
            f"{entry.orchestrator.ladder_used:7s}  "
            f"coverage {entry.run_summary.coverage_percent}%  "
            f"proof {entry.run_summary.proof_label}"
        )
    return 0


async def _cmd_show(args: argparse.Namespace, settings: Any) -> int:
    """Show a stored run bundle or one of its exports."""
    from matrixmint.api.facade import RunNotFoundError, build_services, export_result, get_run

    services = build_services(settings)
    try:
        bundle = await get_run(args.run_id, services)
    except RunNotFoundError as exc:
        logger.error("%s", exc)
        return 1

    if args.export is None:
        _print_json(bundle.to_wire())
        return 0

    response = export_result(bundle.result, args.export)
    if not response.ok:
        logger.error("%s", response.body)
        return 1
    print(response.body)
    return 0


def _write_exports(directory: Path, run_id: str, exports: dict[str, str]) -> None:
    directory.mkdir(parents=True, exist_ok=True)
    for key, content in exports.items():
        suffix = "csv" if key == "risksCsv" else "md"
        path = directory / f"{run_id}-{key}.{suffix}"
        path.write_text(content, encoding="utf-8")
        print(f"  Wrote:      {path}")


def _print_json(payload: Any) -> None:
    print(json.dumps(payload, indent=2, ensure_ascii=False))


def _setup_logging(settings: Any, verbose: bool) -> None:
    """Configure logging for CLI usage."""
    from matrixmint.logging.logger import setup_logging

    setup_logging(
        level="DEBUG" if verbose else settings.log_level,
        log_format=settings.log_format,
        log_file=settings.log_file,
        rotation=settings.log_rotation,
        retention=settings.log_retention,
    )
    # Quiet noisy libraries
    logging.getLogger("google").setLevel(logging.WARNING)
    logging.getLogger("urllib3").setLevel(logging.WARNING)


if __name__ == "__main__":
    sys.exit(main())
