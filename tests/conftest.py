"""
Shared pytest fixtures for the Plan Sync Service test suite.

Provides:
    - app: Flask application (session-scoped)
    - gateway: FakeGateway serving canned feed text (function-scoped)
    - engine: fresh SyncEngine per test wired to the fake gateway (autouse)
    - client: Flask test client (function-scoped)
    - plan_tsv / report_tsv / documents_tsv: canned feed bodies
"""

import pytest

from plansync import create_app
from plansync.core.exceptions import WriteForwardError
from plansync.services.cache_service import MemoryStore
from plansync.services.sync_engine import SyncEngine, init_sync_engine

PLAN_URL = "https://sheets.test/plan?output=tsv"
REPORT_URL = "https://sheets.test/report?output=tsv"
DOCUMENTS_URL = "https://sheets.test/documents?output=tsv"
WRITE_URL = "https://script.test/exec"

PLAN_HEADER = [
    "STT", "Mô tả", "Loại", "Phòng ban", "Trạng thái", "Giai đoạn", "Quý",
    "Bàn giao Tech", "Release", "PM", "Designer", "PO", "KPI",
]


def tsv(rows):
    """Join rows of cells into feed text (CRLF line endings like the sheet export)."""
    return "\r\n".join("\t".join(row) for row in rows)


def plan_rows():
    return [
        ["Kế hoạch sản phẩm 2026"],
        PLAN_HEADER,
        ["VNE-01", "Tech Awards 2026", "Thường niên", "Công nghệ", "Đang làm", "Thiết kế", "Q1",
         "15/03/2026", "01/04/2026", "HieuNT", "AnhTH", "MinhLQ", "10M Traffic"],
        ["VNE-02", "Launch App", "New", "", "Hoàn thành", "", "Q4",
         "", "12/25", "HieuNT", "", "MinhLQ", ""],
        ["", "Mô tả", "", "", "", "", "", "", "", "", "", "", ""],
        ["Total", "", "", "", "", "", "", "", "", "", "", "", ""],
        ["", "Event hub", "Chiến lược", "", "", "", "2",
         "", "", "LanNT", "AnhTH", "", ""],
    ]


class FakeGateway:
    """Stands in for SheetGateway: canned feed bodies, recorded writes.

    A feed value that is an exception instance is raised instead of returned.
    Unknown URLs return "" (parses to no rows).
    """

    def __init__(self, feeds=None):
        self.feeds = dict(feeds or {})
        self.fetch_calls = []
        self.writes = []
        self.write_error = None

    def fetch_feed(self, url):
        self.fetch_calls.append(url)
        outcome = self.feeds.get(url, "")
        if isinstance(outcome, Exception):
            raise outcome
        return outcome

    def forward_write(self, url, payload):
        if self.write_error:
            raise WriteForwardError(payload.get("action", "unknown"), self.write_error)
        self.writes.append((url, payload))


def run_inline(fn):
    """Runner that executes the write forward synchronously."""
    fn()


# ── App fixtures ─────────────────────────────────────────────────────────


@pytest.fixture(scope="session")
def app():
    """Create the Flask application once per test session."""
    return create_app("testing")


@pytest.fixture()
def plan_tsv():
    return tsv(plan_rows())


@pytest.fixture()
def report_tsv():
    return tsv([
        ["Loại", "Designer", "Dự án", "Trạng thái"],
        ["ANN", "AnhTH", "Tech Awards 2025", "Done"],
        ["New", "LanNT", "Event hub", "In progress"],
        ["ANN", "AnhTH", "", "ignored"],
    ])


@pytest.fixture()
def documents_tsv():
    return 'Name\tDescription\n"Guide"\t"Line one\nLine ""two"""\n\tno name\n'


@pytest.fixture()
def gateway():
    return FakeGateway()


@pytest.fixture(autouse=True)
def engine(app, gateway):
    """Per-test: replace the app's engine with one on the fake gateway."""
    eng = SyncEngine.from_config(app.config, gateway=gateway, store=MemoryStore(), runner=run_inline)
    init_sync_engine(app, eng)
    yield eng
    eng.scheduler.stop()


@pytest.fixture()
def client(app):
    return app.test_client()


@pytest.fixture()
def live_feeds(gateway, plan_tsv, report_tsv, documents_tsv):
    """Serve all three feeds successfully."""
    gateway.feeds.update({
        PLAN_URL: plan_tsv,
        REPORT_URL: report_tsv,
        DOCUMENTS_URL: documents_tsv,
    })
    return gateway
