# -*- coding: utf-8 -*-
"""
Persistence of reports and binary artifacts.

The scan pipeline only sees the ``ArtifactStore`` and ``ReportStore``
interfaces; the file-system implementations write under the
``OutputManager`` directory tree.
"""

import json
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Union

from ..models import AuditReport, CrawlSummary
from ..utils.logging_config import get_logger
from ..utils.output_manager import OutputManager


class ArtifactStore(ABC):

    @abstractmethod
    def put(self, key: str, data: Union[bytes, str]) -> str:
        """Store ``data`` under ``key`` and return a URL where it can be fetched."""


class ReportStore(ABC):

    @abstractmethod
    def save(self, report_id: str, report: Union[AuditReport, CrawlSummary]) -> bool:
        """Persist a report; True on success."""


class FileArtifactStore(ArtifactStore):
    """Screenshots and HTML snapshots in the output tree, returned as ``file://`` URLs."""

    COMPONENT_BY_SUFFIX = {".png": "screenshots", ".html": "snapshots"}

    def __init__(self, output_manager: OutputManager, logger=None):
        self.output_manager = output_manager
        self.logger = logger or get_logger("storage")

    def put(self, key: str, data: Union[bytes, str]) -> str:
        component = self.COMPONENT_BY_SUFFIX.get(Path(key).suffix.lower(), "temp")
        path = self.output_manager.get_timestamped_path(component, Path(key).stem, Path(key).suffix)
        if not self.output_manager.safe_write_file(path, data):
            raise OSError(f"Could not write artifact {path}")
        self.logger.debug(f"Stored artifact {key} at {path}")
        return path.resolve().as_uri()


class FileReportStore(ReportStore):
    """JSON reports under ``<output>/<domain>/reports``."""

    def __init__(self, output_manager: OutputManager, indent: int = 2, logger=None):
        self.output_manager = output_manager
        self.indent = indent
        self.logger = logger or get_logger("storage")

    def path_for(self, report_id: str) -> Path:
        return self.output_manager.get_timestamped_path("reports", report_id, ".json")

    def save(self, report_id: str, report: Union[AuditReport, CrawlSummary]) -> bool:
        payload: Any = report.to_dict()
        try:
            content = json.dumps(payload, indent=self.indent, ensure_ascii=False)
        except (TypeError, ValueError) as e:
            self.logger.error(f"Report {report_id} is not serializable: {e}")
            return False

        path = self.path_for(report_id)
        ok = self.output_manager.safe_write_file(path, content)
        if ok:
            self.logger.info(f"Report saved to {path}")
        return ok
