"""
Command-line entry point: option resolution, operator prompts, banners.

Precedence for every scan setting: command-line flag, then YAML scan
profile, then environment (config.settings), then an interactive prompt
when stdin is a terminal, then the built-in default.
"""
from __future__ import annotations

import argparse
import getpass
import logging
import sys
from typing import Any, Sequence

from pydantic import ValidationError

from config import settings
from config.constants import (
    CERT_ERROR_HELP,
    EXIT_AUTH_FAILURE,
    EXIT_CERTIFICATE,
    EXIT_OK,
    EXIT_USAGE,
    INTRO_TEXT,
    REGIONS,
)
from libscan_platform.scanner.reconciler import ScanReport, report
from libscan_platform.scanner.runner import run_scan
from libscan_platform.scanner.session import AuthenticationError, open_session
from shared.models.scan import ScanConfig, ScanStrategy, now_ms
from shared.tools.graphql_transport import CertificateTrustError
from shared.utils.config import load_scan_profile
from shared.utils.env import env_value
from shared.utils.logging import setup_logging
from shared.utils.report_writer import write_report
from shared.utils.terminal_ui import Ansi, ProgressLine, print_panel

logger = logging.getLogger(__name__)


class UsageError(ValueError):
    """Invalid or missing scan settings."""


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="libscan",
        description="Inventory New Relic APM services that report a given library.",
    )
    parser.add_argument("--library", help="library name to search for (default: log4j-core)")
    parser.add_argument("--region", choices=sorted(REGIONS), type=str.lower, help="New Relic region")
    parser.add_argument("--language", help="only scan services reporting this language, e.g. java")
    parser.add_argument("--accounts", help="comma-separated account ids to scan (default: all accessible)")
    parser.add_argument("--csv", action="store_true", help="write findings as CSV (default)")
    parser.add_argument("--json", action="store_true", help="write findings as JSON")
    parser.add_argument(
        "--all-services",
        action="store_true",
        help="include services that do not report the library",
    )
    parser.add_argument(
        "--quick-scan",
        action="store_true",
        help="search per account instead of per service (faster, may miss services)",
    )
    parser.add_argument("--output-dir", help="directory for report files")
    parser.add_argument("--timeout", type=float, help="per-request timeout in seconds")
    parser.add_argument("--profile", help="YAML scan profile")
    parser.add_argument("--no-intro", action="store_true", help="skip the introduction text")
    parser.add_argument("-v", "--verbose", action="store_true", help="debug logging")
    return parser


def _prompt(question: str, default: str) -> str:
    answer = input(f"{question} (default: {default})? ").strip()
    return answer or default


def _parse_accounts(raw: Any) -> list[int] | None:
    if raw is None or raw == "":
        return None
    if isinstance(raw, str):
        raw = [part for part in raw.split(",") if part.strip()]
    try:
        return [int(str(part).strip()) for part in raw]
    except ValueError as exc:
        raise UsageError(f"Account ids must be numeric: {raw}") from exc


def resolve_config(
    args: argparse.Namespace,
    profile: dict[str, Any],
    *,
    interactive: bool,
) -> ScanConfig:
    """Merge flags, profile, environment and prompts into a ScanConfig.

    Raises UsageError for missing credentials or invalid values.
    """
    library = args.library or profile.get("library") or env_value("LIBSCAN_LIBRARY")
    if not library:
        library = (
            _prompt("\nWhat library shall I search for", settings.DEFAULT_LIBRARY)
            if interactive
            else settings.DEFAULT_LIBRARY
        )

    region = args.region or profile.get("region") or env_value("LIBSCAN_REGION")
    if not region:
        region = (
            _prompt(f"What region shall we examine (options: {' '.join(REGIONS)})", settings.DEFAULT_REGION)
            if interactive
            else settings.DEFAULT_REGION
        )

    api_key = settings.API_KEY
    if not api_key and interactive:
        api_key = getpass.getpass("\nWhat is your New Relic User API Key? ").strip()
    if not api_key:
        raise UsageError("No API key: set NEW_RELIC_API_KEY or run interactively.")

    accounts = _parse_accounts(args.accounts) if args.accounts else _parse_accounts(profile.get("accounts"))
    timeout = args.timeout
    if timeout is None:
        timeout = profile.get("timeout")
    if timeout is None:
        timeout = settings.REQUEST_TIMEOUT

    try:
        return ScanConfig(
            api_key=api_key,
            library_name=str(library),
            region=str(region),
            entity_language=args.language or profile.get("language") or settings.ENTITY_LANGUAGE,
            request_timeout=float(timeout),
            account_filter=accounts,
        )
    except ValidationError as exc:
        problems = "; ".join(
            f"{'.'.join(str(part) for part in error['loc'])}: {error['msg']}" for error in exc.errors()
        )
        raise UsageError(problems) from exc


def resolve_formats(args: argparse.Namespace, profile: dict[str, Any]) -> list[str]:
    formats: list[str] = []
    if args.csv:
        formats.append("csv")
    if args.json:
        formats.append("json")
    if not formats:
        formats = [str(fmt).lower() for fmt in profile.get("formats") or []]
    return formats or ["csv"]


def print_config_banner(config: ScanConfig, strategy: ScanStrategy, formats: list[str], include_all: bool) -> None:
    rows: list[tuple[str, Any]] = [
        ("Library", config.library_name),
        ("Region", config.region),
        ("API Endpoint", config.endpoint_url),
        ("Language", config.entity_language or "any"),
        ("Accounts", ", ".join(str(a) for a in config.account_filter) if config.account_filter else "all accessible"),
        ("Strategy", "per account (quick scan)" if strategy is ScanStrategy.ACCOUNT else "per service"),
        ("Report", f"{'/'.join(formats)}, {'all services' if include_all else 'matching services only'}"),
    ]
    print_panel("Scan Configuration", rows, Ansi.BLUE)


def print_conclusion(result: ScanReport, library_name: str, paths: list[str]) -> None:
    print(
        f"\nOK, scan took {result.duration_seconds} seconds. "
        f"Found {len(result.matched)} services with {library_name}."
    )
    rows: list[tuple[str, Any]] = [
        ("Duration", f"{result.duration_seconds}s"),
        ("Services Scanned", len(result.all_entities)),
        ("Services Matched", len(result.matched)),
        ("Rows Written", len(result.selected)),
    ]
    for index, path in enumerate(paths, start=1):
        rows.append((f"File {index}", path))
    print_panel("Conclusion Report", rows, Ansi.GREEN)


def main(argv: Sequence[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging("DEBUG" if args.verbose else None)

    if not args.no_intro:
        print(INTRO_TEXT)

    try:
        profile = load_scan_profile(args.profile) if args.profile else {}
        config = resolve_config(args, profile, interactive=sys.stdin.isatty())
    except ValueError as exc:
        print(f"ERROR: {exc}", file=sys.stderr)
        return EXIT_USAGE

    strategy = ScanStrategy.ACCOUNT if (args.quick_scan or profile.get("quick_scan")) else ScanStrategy.ENTITY
    include_all = bool(args.all_services or profile.get("all_services"))
    formats = resolve_formats(args, profile)
    output_dir = args.output_dir or profile.get("output_dir") or settings.OUTPUT_DIR
    print_config_banner(config, strategy, formats, include_all)

    started_at_ms = now_ms()
    progress = ProgressLine()
    current_phase: dict[str, str | None] = {"name": None}

    def on_progress(phase: str, done: int, total: int) -> None:
        if current_phase["name"] not in (None, phase):
            progress.finish()
        current_phase["name"] = phase
        progress.update(phase, done, total)

    try:
        print("\nChecking api key... ", end="", flush=True)
        session = open_session(config)
        print(f"OK, found {len(session.account_ids)} accounts.")
        state = run_scan(session, strategy, on_progress=on_progress, started_at_ms=started_at_ms)
        progress.finish()
    except AuthenticationError as exc:
        print(f"ERROR, {exc}")
        return EXIT_AUTH_FAILURE
    except CertificateTrustError as exc:
        progress.finish("aborted.")
        logger.error("scan_error step=transport reason=certificate_trust error=%s", exc)
        print(CERT_ERROR_HELP, file=sys.stderr)
        return EXIT_CERTIFICATE

    result = report(state, include_all=include_all)
    try:
        paths = write_report(
            result.selected,
            library_name=config.library_name,
            region=config.region,
            formats=formats,
            output_dir=output_dir,
        )
    except (OSError, ValueError) as exc:
        logger.error("scan_error step=write_report error=%s", exc)
        print(f"ERROR: could not write report: {exc}", file=sys.stderr)
        return EXIT_USAGE

    print_conclusion(result, config.library_name, [str(path) for path in paths])
    return EXIT_OK


def run() -> None:
    try:
        sys.exit(main())
    except KeyboardInterrupt:
        print("\nInterrupted.", file=sys.stderr)
        sys.exit(EXIT_USAGE)
    except Exception as exc:
        logger.exception("scan_error step=main error=%s", exc)
        print(f"Uncaught runtime error: {exc}", file=sys.stderr)
        sys.exit(EXIT_USAGE)


if __name__ == "__main__":
    run()
