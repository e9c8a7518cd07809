"""
Auxiliary feeds published next to the plan sheet.

    report feed     design workload per project (ANN / NEW), header row 0,
                    project name in column 2
    documents feed  long-text documents; cells are quoted and may span
                    lines, name in column 0, description in column 1

Both are refreshed after each plan sync pass. A failing feed keeps the
rows from its last successful read.
"""

from __future__ import annotations

import logging
import threading

from plansync.core.exceptions import SyncError
from plansync.models.project import Document, ReportItem
from plansync.services.tabular_parser import parse_quoted_tsv, parse_tsv

logger = logging.getLogger(__name__)


def parse_reports(text: str, planning_year: int) -> list[ReportItem]:
    items = []
    for row in parse_tsv(text)[1:]:
        if len(row) <= 2 or not row[2].strip():
            continue
        project_name = row[2].strip()
        raw_type = row[0].strip().upper()
        items.append(ReportItem(
            type="ANN" if "ANN" in raw_type else "NEW",
            designer=row[1].strip(),
            project_name=project_name,
            status=row[3].strip() if len(row) > 3 else "",
            year=2025 if "2025" in project_name else planning_year,
        ))
    return items


def parse_documents(text: str) -> list[Document]:
    docs = []
    for idx, row in enumerate(parse_quoted_tsv(text)[1:]):
        name = row[0].strip() if row else ""
        if not name:
            continue
        docs.append(Document(
            id=f"doc-{idx}",
            name=name,
            description=row[1].strip() if len(row) > 1 else "",
        ))
    return docs


class AuxiliaryFeeds:
    """Holds the latest report and document rows."""

    def __init__(self, gateway, *, report_url: str, documents_url: str, planning_year: int) -> None:
        self.gateway = gateway
        self.report_url = report_url
        self.documents_url = documents_url
        self.planning_year = planning_year
        self._lock = threading.Lock()
        self._reports: list[ReportItem] = []
        self._documents: list[Document] = []

    def refresh(self) -> dict:
        """Re-read both feeds. Returns per-feed row counts or error text."""
        summary = {}
        if self.report_url:
            try:
                reports = parse_reports(self.gateway.fetch_feed(self.report_url), self.planning_year)
                with self._lock:
                    self._reports = reports
                summary["reports"] = len(reports)
            except SyncError as exc:
                logger.warning("Report feed refresh failed: %s", exc)
                summary["reports"] = str(exc)
        if self.documents_url:
            try:
                documents = parse_documents(self.gateway.fetch_feed(self.documents_url))
                with self._lock:
                    self._documents = documents
                summary["documents"] = len(documents)
            except SyncError as exc:
                logger.warning("Documents feed refresh failed: %s", exc)
                summary["documents"] = str(exc)
        return summary

    def reports(self, year: int | None = None) -> list[ReportItem]:
        with self._lock:
            items = list(self._reports)
        if year is not None:
            items = [r for r in items if r.year == year]
        return items

    def documents(self) -> list[Document]:
        with self._lock:
            return list(self._documents)
