"""
Plan Sync Service
Record normalization — raw feed rows → canonical ProjectRecords.

Inclusion filter (row kept iff):
    description non-empty
    AND (description is not a stray header label
         OR code is non-empty and not the "Total" footer)

Field derivation:
    code      mapped cell, else str(row_index + 1)
    type      keyword tables, default New
    status    Vietnamese table, then English table; first hit wins;
              default is the configured DEFAULT_STATUS (Planning)
    quarter   "Q1".."Q4" token, else a standalone digit 1-4, else 1
    year      first of 2025, 2024, 2026 with any signal in release/handoff/
              quarter text ("YYYY", "/YY", or bare "YY" in the quarter),
              else PLANNING_YEAR
    others    trimmed cell or ""

The feed has no reliable year column, so the date-like free text is the
only signal for year.
"""

from __future__ import annotations

import logging
import re
from typing import Callable, Iterable

from plansync.models.project import ProjectRecord, ProjectStatus, ProjectType
from plansync.services.schema_inference import ColumnMap
from plansync.utils.text import fold, keyword_in

logger = logging.getLogger(__name__)

DEFAULT_PLANNING_YEAR = 2026
DEFAULT_DEPARTMENT = "General"
TOTAL_ROW_CODE = "total"

# Header labels that re-appear inside the data region when staff paste
# sections from other tabs.
HEADER_LITERALS = frozenset(fold(s) for s in (
    "Issue Description", "Description", "Project Name", "Name",
    "Mô tả", "Tên dự án", "Nội dung",
))

# ── Status tables (order matters: specific phrases before generic ones) ──

STATUS_KEYWORDS_VI: tuple[tuple[ProjectStatus, tuple[str, ...]], ...] = (
    (ProjectStatus.IOS_DONE, ("xong ios", "hoàn thành ios", "ios xong")),
    (ProjectStatus.ANDROID_DONE, ("xong android", "hoàn thành android", "android xong")),
    (ProjectStatus.NOT_STARTED, ("chưa bắt đầu", "chưa làm", "chưa triển khai")),
    (ProjectStatus.RE_OPEN, ("mở lại",)),
    (ProjectStatus.CANCELLED, ("đã hủy", "hủy bỏ", "hủy", "huỷ")),
    (ProjectStatus.HAND_OFF, ("bàn giao",)),
    (ProjectStatus.PENDING, ("tạm dừng", "tạm hoãn", "chờ duyệt", "đang chờ")),
    (ProjectStatus.IN_PROGRESS, ("đang làm", "đang thực hiện", "đang triển khai", "đang phát triển")),
    (ProjectStatus.PLANNING, ("lên kế hoạch", "kế hoạch", "dự kiến")),
    (ProjectStatus.DONE, ("hoàn thành", "đã xong", "xong")),
)

STATUS_KEYWORDS_EN: tuple[tuple[ProjectStatus, tuple[str, ...]], ...] = (
    (ProjectStatus.IOS_DONE, ("ios done",)),
    (ProjectStatus.ANDROID_DONE, ("android done",)),
    (ProjectStatus.NOT_STARTED, ("not started", "not start", "todo", "to do")),
    (ProjectStatus.RE_OPEN, ("re-open", "reopen", "re open")),
    (ProjectStatus.HAND_OFF, ("hand-off", "handoff", "hand off", "handover")),
    (ProjectStatus.CANCELLED, ("cancel",)),
    (ProjectStatus.PENDING, ("pending", "on hold", "hold", "blocked")),
    (ProjectStatus.IN_PROGRESS, ("in progress", "progress", "doing", "ongoing", "wip")),
    (ProjectStatus.PLANNING, ("planning", "plan")),
    (ProjectStatus.DONE, ("done", "completed", "complete", "finished", "released")),
)

TYPE_KEYWORDS: tuple[tuple[ProjectType, tuple[str, ...]], ...] = (
    (ProjectType.ANNUAL, ("thường niên", "hằng năm", "hàng năm", "annual", "ann")),
    (ProjectType.STRATEGIC, ("chiến lược", "strategic", "strategy")),
    (ProjectType.NEW, ("mới", "new")),
)

# Years recognised in date-like free text, in precedence order.
KNOWN_YEARS = (2025, 2024, 2026)

_QUARTER_TOKEN = re.compile(r"Q\s*([1-4])(?!\d)")
_QUARTER_DIGIT = re.compile(r"(?<!\d)([1-4])(?!\d)")


def _lookup(text: str, table) -> object | None:
    folded = fold(text)
    if not folded:
        return None
    for value, keywords in table:
        if any(keyword_in(folded, kw) for kw in keywords):
            return value
    return None


def classify_status(raw: str, default: ProjectStatus = ProjectStatus.PLANNING) -> ProjectStatus:
    """Map free-text status (vi/en, any case, any diacritics) to ProjectStatus."""
    hit = _lookup(raw, STATUS_KEYWORDS_VI) or _lookup(raw, STATUS_KEYWORDS_EN)
    return hit or default


def classify_type(raw: str) -> ProjectType:
    return _lookup(raw, TYPE_KEYWORDS) or ProjectType.NEW


def extract_quarter(raw: str) -> int:
    text = (raw or "").upper()
    m = _QUARTER_TOKEN.search(text) or _QUARTER_DIGIT.search(text)
    return int(m.group(1)) if m else 1


def infer_year(
    release_date: str,
    tech_handoff_date: str,
    quarter_raw: str,
    planning_year: int = DEFAULT_PLANNING_YEAR,
) -> int:
    """Infer a record's year from date-like text.

    Years are tried in KNOWN_YEARS order. A year matches on any of its
    signals: the four-digit form anywhere, a "/YY" suffix anywhere, or a
    bare "YY" in the quarter text. So a 2025 handoff wins over a 2026
    release date.
    """
    signal = f"{release_date or ''} {tech_handoff_date or ''} {quarter_raw or ''}".upper()
    quarter_text = (quarter_raw or "").upper()

    for year in KNOWN_YEARS:
        yy = f"{year % 100:02d}"
        if (
            str(year) in signal
            or re.search(rf"/{yy}(?!\d)", signal)
            or re.search(rf"(?<!\d){yy}(?!\d)", quarter_text)
        ):
            return year
    return planning_year


def is_included(description: str, code: str) -> bool:
    if not description:
        return False
    if fold(description) not in HEADER_LITERALS:
        return True
    return bool(code) and code.strip().lower() != TOTAL_ROW_CODE


def default_id_factory(row_index: int) -> str:
    return f"p-{row_index}"


class RecordNormalizer:
    """Turns post-header feed rows into ProjectRecords.

    Args:
        planning_year:      year assigned when no date signal is present.
        default_status:     status for blank or unrecognised text.
        default_department: department label for blank cells.
        id_factory:         row index → record id; deterministic by default.
    """

    def __init__(
        self,
        *,
        planning_year: int = DEFAULT_PLANNING_YEAR,
        default_status: ProjectStatus | str = ProjectStatus.PLANNING,
        default_department: str = DEFAULT_DEPARTMENT,
        id_factory: Callable[[int], str] = default_id_factory,
    ) -> None:
        self.planning_year = planning_year
        self.default_status = ProjectStatus(default_status)
        self.default_department = default_department
        self.id_factory = id_factory

    def normalize_row(self, row: list[str], row_index: int, cmap: ColumnMap) -> ProjectRecord | None:
        """Return a record for one data row, or None when the row is excluded.

        ``row_index`` is the position among data rows (0 = first row after
        the header); the code fallback is ``row_index + 1``.
        """
        description = cmap.cell(row, "description")
        code = cmap.cell(row, "code")
        if not is_included(description, code):
            return None

        quarter_raw = cmap.cell(row, "quarter")
        release_date = cmap.cell(row, "release_date")
        tech_handoff = cmap.cell(row, "tech_handoff_date")

        return ProjectRecord(
            id=self.id_factory(row_index),
            code=code or str(row_index + 1),
            year=infer_year(release_date, tech_handoff, quarter_raw, self.planning_year),
            description=description,
            type=classify_type(cmap.cell(row, "type")),
            department=cmap.cell(row, "department") or self.default_department,
            status=classify_status(cmap.cell(row, "status"), self.default_status),
            phase=cmap.cell(row, "phase"),
            quarter=extract_quarter(quarter_raw),
            tech_handoff_date=tech_handoff,
            release_date=release_date,
            pm=cmap.cell(row, "pm"),
            designer=cmap.cell(row, "designer"),
            request_owner=cmap.cell(row, "request_owner"),
            kpi=cmap.cell(row, "kpi"),
            dashboard_url=cmap.cell(row, "dashboard_url"),
            notes=cmap.cell(row, "notes"),
        )

    def normalize(self, rows: Iterable[list[str]], cmap: ColumnMap) -> list[ProjectRecord]:
        data_rows = list(rows)[cmap.data_start:]
        records = []
        for idx, row in enumerate(data_rows):
            record = self.normalize_row(row, idx, cmap)
            if record is not None:
                records.append(record)
        logger.debug("Normalized %d/%d data rows", len(records), len(data_rows))
        return records
