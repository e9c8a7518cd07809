"""
Plan Sync Service
Schema inference for the published plan feed.

The sheet is edited by non-technical staff: columns get inserted, renamed,
translated and reordered between revisions. Instead of trusting a fixed
column contract, every sync re-derives a ColumnMap from the rows:

    1. Scan at most HEADER_SCAN_LIMIT rows.
    2. The header is the first row holding a title-ish cell AND an
       owner-ish cell (keyword groups below).
    3. Each header cell is matched against every field's keyword set; a
       match assigns that column index to the field. Later cells overwrite
       earlier ones for the same field.
    4. No qualifying row → POSITIONAL_SCHEMA, header assumed at row 0.
    5. Description still unmapped → DESCRIPTION_FALLBACK_INDEX.

infer_column_map() is pure: same rows in, same map out.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from plansync.utils.text import fold, keyword_in

logger = logging.getLogger(__name__)

HEADER_SCAN_LIMIT = 20
DESCRIPTION_FALLBACK_INDEX = 1

# ── Header detection groups ──────────────────────────────────────────────

TITLE_KEYWORDS = (
    "name", "description", "issue", "summary",
    "tên", "mô tả", "nội dung",
)
OWNER_KEYWORDS = (
    "pm", "owner", "request", "manager",
    "người yêu cầu", "phụ trách", "quản lý",
)

# ── Field keyword sets ───────────────────────────────────────────────────

FIELD_KEYWORDS: dict[str, tuple[str, ...]] = {
    "code": ("project no", "no.", "code", "index", "stt", "mã", "số hiệu"),
    "type": ("type", "loại", "phân loại"),
    "description": (
        "description", "issue", "summary", "name",
        "mô tả", "tên dự án", "nội dung",
    ),
    "phase": ("phase", "giai đoạn"),
    "department": ("department", "dept", "phòng ban", "bộ phận", "khối"),
    "request_owner": ("request", "owner", "po", "người yêu cầu"),
    "tech_handoff_date": ("handoff", "hand-off", "hand off", "tech", "bàn giao"),
    "release_date": ("release", "go live", "golive", "phát hành", "ra mắt"),
    "quarter": ("quarter", "quý"),
    "pm": ("pm", "manager", "phụ trách", "quản lý"),
    "designer": ("designer", "design", "thiết kế"),
    "status": ("status", "trạng thái", "tình trạng"),
    "kpi": ("kpi", "mục tiêu", "target"),
    "dashboard_url": ("dashboard", "link", "url"),
    "notes": ("note", "ghi chú", "comment"),
}

# Most recent known layout of the plan sheet.
POSITIONAL_SCHEMA: dict[str, int] = {
    "code": 0,
    "description": 1,
    "type": 2,
    "department": 3,
    "status": 4,
    "phase": 5,
    "quarter": 6,
    "tech_handoff_date": 7,
    "release_date": 8,
    "pm": 9,
    "designer": 10,
    "request_owner": 11,
    "kpi": 12,
    "dashboard_url": 13,
    "notes": 14,
}


@dataclass
class ColumnMap:
    """Logical field → column index for the current feed shape.

    Attributes:
        columns:       field name → 0-based column index.
        header_index:  row holding the labels; data starts right after it.
        inferred:      False when the positional fallback was used.
    """

    columns: dict[str, int] = field(default_factory=dict)
    header_index: int = 0
    inferred: bool = False

    @property
    def data_start(self) -> int:
        return self.header_index + 1

    def index_of(self, name: str) -> int | None:
        return self.columns.get(name)

    def cell(self, row: list[str], name: str) -> str:
        """Trimmed cell for a field, or "" when unmapped or out of range."""
        idx = self.columns.get(name)
        if idx is None or idx >= len(row):
            return ""
        return (row[idx] or "").strip()

    def to_dict(self) -> dict:
        return {
            "columns": dict(self.columns),
            "header_index": self.header_index,
            "inferred": self.inferred,
        }


def _cell_matches(folded_cell: str, keywords: tuple[str, ...]) -> bool:
    return any(keyword_in(folded_cell, kw) for kw in keywords)


def is_header_row(row: list[str]) -> bool:
    folded = [fold(c) for c in row]
    has_title = any(_cell_matches(c, TITLE_KEYWORDS) for c in folded)
    has_owner = any(_cell_matches(c, OWNER_KEYWORDS) for c in folded)
    return has_title and has_owner


def build_column_map(header: list[str]) -> dict[str, int]:
    """Assign every header cell to each field whose keyword set it matches."""
    columns: dict[str, int] = {}
    for idx, raw in enumerate(header):
        folded = fold(raw)
        if not folded:
            continue
        for name, keywords in FIELD_KEYWORDS.items():
            if _cell_matches(folded, keywords):
                columns[name] = idx
    return columns


def infer_column_map(rows: list[list[str]]) -> ColumnMap:
    """Locate the header row and build the ColumnMap. Never raises."""
    for idx, row in enumerate(rows[:HEADER_SCAN_LIMIT]):
        if not is_header_row(row):
            continue
        columns = build_column_map(row)
        if "description" not in columns:
            columns["description"] = DESCRIPTION_FALLBACK_INDEX
        logger.debug("Header found at row %d: %s", idx, columns)
        return ColumnMap(columns=columns, header_index=idx, inferred=True)

    logger.info(
        "No header row in first %d rows; using positional schema", HEADER_SCAN_LIMIT,
    )
    return ColumnMap(columns=dict(POSITIONAL_SCHEMA), header_index=0, inferred=False)
