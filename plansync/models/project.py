"""
Plan Sync Service
Read-model types for the mirrored plan sheet.

Types:
    - ProjectStatus / ProjectType: canonical vocabularies free text is normalized into
    - ProjectRecord: one project row as published to API consumers
    - ReportItem: one row of the design workload report feed
    - Document: one row of the long-text documents feed
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, fields
from enum import Enum

LOCAL_ID_PREFIX = "local-"


class ProjectStatus(str, Enum):
    NOT_STARTED = "NotStarted"
    IN_PROGRESS = "InProgress"
    DONE = "Done"
    PENDING = "Pending"
    RE_OPEN = "ReOpen"
    IOS_DONE = "IosDone"
    ANDROID_DONE = "AndroidDone"
    CANCELLED = "Cancelled"
    HAND_OFF = "HandOff"
    PLANNING = "Planning"


class ProjectType(str, Enum):
    STRATEGIC = "Strategic"
    ANNUAL = "Annual"
    NEW = "New"


# Status groupings used by dashboard aggregates
DONE_STATUSES = {ProjectStatus.DONE, ProjectStatus.HAND_OFF}
PENDING_STATUSES = {ProjectStatus.PENDING, ProjectStatus.PLANNING}
ACTIVE_STATUSES = {ProjectStatus.IN_PROGRESS, ProjectStatus.RE_OPEN}


@dataclass
class ProjectRecord:
    """Canonical project row.

    ``id`` is assigned locally: ``p-<row>`` for rows read from the feed,
    ``local-<hex>`` for records staged through the mutation reconciler.
    """

    id: str
    code: str
    year: int
    description: str
    type: ProjectType = ProjectType.NEW
    department: str = ""
    status: ProjectStatus = ProjectStatus.PLANNING
    phase: str = ""
    quarter: int = 1
    tech_handoff_date: str = ""
    release_date: str = ""
    pm: str = ""
    designer: str = ""
    request_owner: str = ""
    kpi: str = ""
    dashboard_url: str = ""
    notes: str = ""

    @property
    def is_local(self) -> bool:
        return self.id.startswith(LOCAL_ID_PREFIX)

    def to_dict(self) -> dict:
        data = asdict(self)
        data["type"] = self.type.value
        data["status"] = self.status.value
        return data

    @classmethod
    def from_dict(cls, data: dict) -> ProjectRecord:
        """Rebuild a record from ``to_dict()`` output (cache payloads).

        Unknown keys are ignored so older cache entries keep loading after
        a field is added.
        """
        known = {f.name for f in fields(cls)}
        values = {k: v for k, v in data.items() if k in known}
        values["type"] = ProjectType(values.get("type", ProjectType.NEW.value))
        values["status"] = ProjectStatus(values.get("status", ProjectStatus.PLANNING.value))
        values["year"] = int(values.get("year", 0))
        values["quarter"] = int(values.get("quarter", 1))
        return cls(**values)


@dataclass
class ReportItem:
    """Design workload report row (ANN = annual, NEW = everything else)."""

    type: str
    designer: str
    project_name: str
    status: str
    year: int

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class Document:
    id: str
    name: str
    description: str

    def to_dict(self) -> dict:
        return asdict(self)
