# -*- coding: utf-8 -*-
"""Command line entry point: ``a11yscan URL [--crawl] [options]``."""

import argparse
import asyncio
import sys
import traceback
from typing import Any, Dict, List, Optional

from .browser.session import DEVICE_PROFILES


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="a11yscan", description="Accessibility audit of a page or a site")
    parser.add_argument("url", help="Page to scan, or crawl root")
    parser.add_argument("--crawl", action="store_true", help="Crawl the site instead of scanning one page")
    parser.add_argument("--max-pages", "-m", type=int, help="Maximum pages to scan (implies --crawl)")
    parser.add_argument("--deadline", type=float, help="Stop the crawl after this many seconds")
    parser.add_argument("--device", "-d", choices=sorted(DEVICE_PROFILES), help="Device profile")
    parser.add_argument("--config", "-c", help="Configuration file (.json, .yaml, key=value)")
    parser.add_argument("--output-dir", "-o", help="Base output directory")
    parser.add_argument("--no-screenshot", action="store_true", help="Skip the full-page screenshot")
    parser.add_argument("--no-links", action="store_true", help="Skip the broken-link check")
    parser.add_argument("--sitemap", action="store_true", help="Seed the crawl from /sitemap.xml")
    parser.add_argument("--excel", action="store_true", help="Also write an Excel workbook")
    parser.add_argument("--log-level", choices=["DEBUG", "INFO", "WARNING", "ERROR"], help="Log level")
    return parser


def cli_args_from(args: argparse.Namespace) -> Dict[str, Any]:
    """Convert parsed arguments into ConfigurationManager overrides."""
    cli_args: Dict[str, Any] = {}
    if args.device:
        cli_args["SCAN_DEVICE"] = args.device
    if args.output_dir:
        cli_args["OUTPUT_DIR"] = args.output_dir
    if args.max_pages:
        cli_args["CRAWLER_MAX_PAGES"] = args.max_pages
    if args.no_screenshot:
        cli_args["SCAN_CAPTURE_SCREENSHOT"] = False
    if args.no_links:
        cli_args["LINK_CHECK_ENABLED"] = False
    if args.sitemap:
        cli_args["CRAWLER_USE_SITEMAP"] = True
    if args.log_level:
        cli_args["LOG_LEVEL"] = args.log_level
    return cli_args


def print_summary(result) -> None:
    from .models import CrawlSummary

    if isinstance(result, CrawlSummary):
        print(f"Crawl of {result.root_url}: {result.pages_scanned} pages, {result.pages_failed} failed"
              f"{' (interrupted)' if result.interrupted else ''}")
        print(f"Average score: {result.average_score}")
        print(f"Violations: {result.total_violations} " + ", ".join(
            f"{level} {count}" for level, count in result.violations_by_severity.items()))
        for page in result.pages:
            status = f"score {page.score}" if page.ok else f"FAILED: {page.error}"
            print(f"  {page.url}: {status}")
        return

    print(f"{result.url} ({result.device}): score {result.score}")
    print(f"Violations: {result.stats.total_violations} (critical {result.stats.critical}, "
          f"serious {result.stats.serious}, moderate {result.stats.moderate}, minor {result.stats.minor})")
    for item in result.action_items[:5]:
        print(f"  [{item.severity}] {item.title} x{item.affected_count}: {item.suggestion}")
    if not result.diagnostics.engine_available:
        print(f"Warning: audit engine did not run ({result.diagnostics.engine_error})")


async def run(args: argparse.Namespace, config_manager) -> int:
    # Imported here so module loggers pick up the CLI configuration
    from .api import crawl_site, scan_page
    from .errors import NavigationError
    from .scanner.pipeline import ScanOptions
    from .storage.excel_export import export_excel_report
    from .storage.report_store import FileArtifactStore, FileReportStore
    from .utils.logging_config import get_logger
    from .utils.output_manager import OutputManager

    logger = get_logger("cli")
    output_manager = OutputManager(config_manager.get_path("OUTPUT_DIR"), args.url)
    options = ScanOptions.from_config(config_manager)
    collaborators = {
        "artifact_store": FileArtifactStore(output_manager),
        "config_manager": config_manager,
    }

    try:
        if args.crawl or args.max_pages:
            result = await crawl_site(args.url, options, max_pages=args.max_pages,
                                      deadline=args.deadline, **collaborators)
            report_id = "crawl_report"
        else:
            result = await scan_page(args.url, options, **collaborators)
            report_id = f"scan_{output_manager.page_slug(args.url, 40)}"
    except NavigationError as e:
        logger.error(f"Scan aborted: {e}")
        print(f"Could not load {args.url}: {e}", file=sys.stderr)
        return 2

    FileReportStore(output_manager).save(report_id, result)
    if args.excel:
        export_excel_report(result, output_manager.get_timestamped_path("reports", "accessibility_report", ".xlsx"))
    print_summary(result)
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    from .utils.config_manager import get_config_manager, reset_config_manager
    from .utils.logging_config import setup_logging

    reset_config_manager()
    config_manager = get_config_manager(config_file=args.config, cli_args=cli_args_from(args))
    log_config = config_manager.get_logging_config()
    setup_logging(
        log_level=log_config["level"],
        log_dir=log_config["log_dir"],
        console_output=log_config["console_output"],
        rotating_logs=log_config["rotating_logs"],
        max_bytes=log_config["max_bytes"],
        backup_count=log_config["backup_count"],
        log_format=log_config["format"],
        date_format=log_config["date_format"],
    )
    config_manager.log_config_summary()

    try:
        return asyncio.run(run(args, config_manager))
    except KeyboardInterrupt:
        print("Scan interrupted by the user")
        return 130
    except Exception as e:
        print(f"Unhandled error: {e}")
        print(traceback.format_exc())
        return 1


if __name__ == "__main__":
    sys.exit(main())
