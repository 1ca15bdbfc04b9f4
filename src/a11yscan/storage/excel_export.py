# -*- coding: utf-8 -*-
"""Excel export of scan results: a summary sheet plus one sheet per page."""

import re
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Union
from urllib.parse import urlparse

import openpyxl
import pandas as pd

from ..models import AuditReport, CrawlSummary
from ..utils.logging_config import get_logger

logger = get_logger("storage")

VIOLATION_COLUMNS = [
    "page_url", "violation_id", "impact", "source", "description",
    "help", "target", "html", "failure_summary", "wcag", "suggestion",
]

HEADER_MAPPING = {
    "target": "CSS selector",
    "html": "current html",
    "failure_summary": "failure_summary/action",
    "wcag": "WCAG criteria",
}

MAX_SHEET_NAME = 31


def violation_rows(report: AuditReport) -> List[Dict[str, str]]:
    """One row per affected node, or per violation when it has no nodes."""
    rows = []
    for violation in report.all_violations():
        base = {
            "page_url": report.url,
            "violation_id": violation.id,
            "impact": violation.severity,
            "source": violation.source.value,
            "description": violation.description,
            "help": violation.title,
            "wcag": ", ".join(violation.wcag),
            "suggestion": violation.suggestion or "",
        }
        if not violation.nodes:
            rows.append({**base, "target": "", "html": "", "failure_summary": ""})
        for node in violation.nodes:
            rows.append({
                **base,
                "target": ", ".join(node.target),
                "html": node.html,
                "failure_summary": node.failure_summary,
            })
    return rows


def sheet_name_for(url: str, used: Dict[str, int]) -> str:
    """Excel-safe, unique sheet name of at most 31 characters."""
    parsed = urlparse(url)
    domain = parsed.netloc.replace("www.", "")
    path = parsed.path.rstrip('/')
    last_segment = path.split('/')[-1] if path else "home"

    # Leave room for a counter suffix
    base_name = re.sub(r'[\\/*?:\[\]]', '_', f"{domain}_{last_segment}")[:MAX_SHEET_NAME - 3]
    if base_name in used:
        used[base_name] += 1
        return f"{base_name}_{used[base_name]}"[:MAX_SHEET_NAME]
    used[base_name] = 1
    return base_name


def summary_frame(reports: List[AuditReport]) -> pd.DataFrame:
    return pd.DataFrame([{
        "page_url": report.url,
        "device": report.device,
        "score": report.score if report.ok else None,
        "total": report.stats.total_violations,
        "critical": report.stats.critical,
        "serious": report.stats.serious,
        "moderate": report.stats.moderate,
        "minor": report.stats.minor,
        "broken_links": report.broken_links.broken_count if report.broken_links else None,
        "error": report.error or "",
    } for report in reports])


def rename_headers(path: Union[str, Path]) -> None:
    """Rewrite the first row of every sheet with readable header names."""
    wb = openpyxl.load_workbook(path)
    for ws in wb.worksheets:
        for cell in ws[1]:
            if cell.value in HEADER_MAPPING:
                cell.value = HEADER_MAPPING[cell.value]
    wb.save(path)


def export_excel_report(results: Union[CrawlSummary, AuditReport, Iterable[AuditReport]],
                        excel_path: Union[str, Path]) -> Optional[Path]:
    """
    Write the Excel workbook for a crawl, a single report or a list of reports.

    Returns:
        Path of the workbook, or None when nothing was written
    """
    if isinstance(results, CrawlSummary):
        reports = list(results.pages)
    elif isinstance(results, AuditReport):
        reports = [results]
    else:
        reports = list(results)

    if not reports:
        logger.warning("No results to export.")
        return None

    excel_path = Path(excel_path)
    try:
        excel_path.parent.mkdir(parents=True, exist_ok=True)
        used: Dict[str, int] = {}
        with pd.ExcelWriter(str(excel_path), engine="openpyxl") as writer:
            summary_frame(reports).to_excel(writer, sheet_name="Summary", index=False)
            for report in reports:
                sheet_name = sheet_name_for(report.url, used)
                rows = violation_rows(report)
                if rows:
                    df = pd.DataFrame(rows, columns=VIOLATION_COLUMNS)
                else:
                    description = report.error or "No issues detected"
                    df = pd.DataFrame([{"page_url": report.url, "violation_id": "N/A",
                                        "impact": "N/A", "description": description}],
                                      columns=VIOLATION_COLUMNS)
                df.to_excel(writer, sheet_name=sheet_name, index=False)
                logger.debug(f"Sheet '{sheet_name}' created for {report.url}")

        rename_headers(excel_path)
    except (OSError, ValueError) as e:
        logger.exception(f"Error generating Excel report: {e}")
        return None

    logger.info(f"Excel report generated: '{excel_path}' ({len(reports)} page sheets)")
    return excel_path
