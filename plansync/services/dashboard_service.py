"""
Aggregates over the current project list for the dashboard and member views.
"""

from __future__ import annotations

from collections import Counter

from plansync.models.project import (
    ACTIVE_STATUSES,
    DONE_STATUSES,
    PENDING_STATUSES,
    ProjectRecord,
    ProjectStatus,
    ProjectType,
)

UNASSIGNED = "Unassigned"


def designer_load(projects: list[ProjectRecord]) -> list[dict]:
    """Project count per designer, busiest first."""
    counts = Counter(p.designer.strip() or UNASSIGNED for p in projects)
    return [
        {"name": name, "count": count}
        for name, count in sorted(counts.items(), key=lambda kv: (-kv[1], kv[0]))
    ]


def summarize(projects: list[ProjectRecord]) -> dict:
    annual = [p for p in projects if p.type == ProjectType.ANNUAL]
    new = [p for p in projects if p.type in (ProjectType.NEW, ProjectType.STRATEGIC)]
    return {
        "stats": {
            "total": len(projects),
            "done": sum(1 for p in projects if p.status in DONE_STATUSES),
            "in_progress": sum(1 for p in projects if p.status == ProjectStatus.IN_PROGRESS),
            "pending": sum(1 for p in projects if p.status in PENDING_STATUSES),
        },
        "types": {
            "annual_count": len(annual),
            "new_count": len(new),
            "annual_designers": designer_load(annual),
            "new_designers": designer_load(new),
        },
    }


def member_stats(projects: list[ProjectRecord]) -> list[dict]:
    """Involvement per person named as PM, designer or request owner.

    ``total`` counts distinct projects, so someone who is both PM and
    designer on one project counts it once.
    """
    people: dict[str, dict] = {}

    def entry(name: str) -> dict:
        return people.setdefault(name, {
            "name": name, "total": 0, "active": 0, "pm_count": 0, "po_count": 0,
        })

    for project in projects:
        roles = {
            "pm": project.pm.strip(),
            "designer": project.designer.strip(),
            "po": project.request_owner.strip(),
        }
        for name in {n for n in roles.values() if n}:
            stats = entry(name)
            stats["total"] += 1
            if project.status in ACTIVE_STATUSES:
                stats["active"] += 1
        if roles["pm"]:
            entry(roles["pm"])["pm_count"] += 1
        if roles["po"]:
            entry(roles["po"])["po_count"] += 1

    return sorted(people.values(), key=lambda s: (-s["total"], s["name"]))
