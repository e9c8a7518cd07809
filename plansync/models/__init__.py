"""
Plan Sync Service
Read-model package.
"""

from plansync.models.project import (  # noqa: F401
    Document,
    ProjectRecord,
    ProjectStatus,
    ProjectType,
    ReportItem,
)
