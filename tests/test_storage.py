import json
from pathlib import Path

import openpyxl

from a11yscan.models import (
    AccessibilityViolation, AuditReport, CrawlSummary, ReportStats, ViolationNode, ViolationSource,
    empty_buckets,
)
from a11yscan.storage.excel_export import export_excel_report, sheet_name_for, violation_rows
from a11yscan.storage.report_store import FileArtifactStore, FileReportStore
from a11yscan.utils.output_manager import OutputManager


def sample_report(url="https://www.example.com/contact/"):
    buckets = empty_buckets()
    buckets["serious"] = [AccessibilityViolation(
        id="skip-link", title="Missing skip link", severity="serious", wcag=["2.4.1"],
        nodes=[ViolationNode(html="<body>", target=["body"], failure_summary="No skip link.")],
    )]
    buckets["minor"] = [AccessibilityViolation(
        id="document-title", title="Title", severity="minor", source=ViolationSource.ENGINE)]
    return AuditReport(url=url, timestamp="2024-01-01T00:00:00+00:00", score=96,
                       violations=buckets, stats=ReportStats(total_violations=2, serious=1, minor=1))


def manager(tmp_path):
    return OutputManager(tmp_path, "https://www.example.com", timestamp="20240101_000000")


def test_report_store_writes_json(tmp_path):
    store = FileReportStore(manager(tmp_path))
    assert store.save("scan_home", sample_report())

    path = tmp_path / "example_com" / "reports" / "scan_home_20240101_000000.json"
    data = json.loads(path.read_text(encoding="utf-8"))
    assert data["url"] == "https://www.example.com/contact/"
    assert data["violations"]["serious"][0]["id"] == "skip-link"


def test_report_store_saves_crawl_summaries(tmp_path):
    summary = CrawlSummary(root_url="https://www.example.com/")
    summary.add_report(sample_report())
    store = FileReportStore(manager(tmp_path))
    assert store.save("crawl_report", summary.finalize())
    assert store.path_for("crawl_report").exists()


def test_artifact_store_routes_by_suffix(tmp_path):
    store = FileArtifactStore(manager(tmp_path))
    png_url = store.put("example_com_contact.png", b"\x89PNG")
    html_url = store.put("example_com_contact.html", "<html></html>")

    assert png_url.startswith("file://")
    assert "/screenshots/" in png_url
    assert "/snapshots/" in html_url
    png_path = tmp_path / "example_com" / "screenshots" / "example_com_contact_20240101_000000.png"
    assert png_path.read_bytes() == b"\x89PNG"


def test_violation_rows_one_per_node():
    rows = violation_rows(sample_report())
    assert len(rows) == 2
    assert rows[0]["target"] == "body"
    assert rows[0]["wcag"] == "2.4.1"
    assert rows[1]["violation_id"] == "document-title"
    assert rows[1]["source"] == "engine"
    assert rows[1]["target"] == ""


def test_sheet_names_are_unique_and_short():
    used = {}
    first = sheet_name_for("https://www.example.com/contact/", used)
    second = sheet_name_for("https://example.com/contact", used)
    home = sheet_name_for("https://example.com/", used)
    long_name = sheet_name_for("https://a-very-long-subdomain.example.com/with/a-long-final-segment", used)

    assert first == "example.com_contact"
    assert second == "example.com_contact_2"
    assert home == "example.com_home"
    assert len(long_name) <= 31


def test_excel_export(tmp_path):
    summary = CrawlSummary(root_url="https://www.example.com/")
    summary.add_report(sample_report())
    summary.add_report(AuditReport.failed("https://www.example.com/down", "Navigation timed out"))

    path = export_excel_report(summary, tmp_path / "out" / "report.xlsx")
    assert path == Path(tmp_path / "out" / "report.xlsx")

    workbook = openpyxl.load_workbook(path)
    assert workbook.sheetnames == ["Summary", "example.com_contact", "example.com_down"]
    headers = [cell.value for cell in workbook["example.com_contact"][1]]
    assert "CSS selector" in headers
    assert "WCAG criteria" in headers
    assert workbook["example.com_down"]["E2"].value == "Navigation timed out"


def test_excel_export_without_results(tmp_path):
    assert export_excel_report([], tmp_path / "empty.xlsx") is None
    assert not (tmp_path / "empty.xlsx").exists()
