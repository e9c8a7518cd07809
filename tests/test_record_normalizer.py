"""Unit tests for plansync.services.record_normalizer.

Covers the inclusion filter, status/type vocabularies, quarter and year
inference, and determinism of a full normalize() pass.
"""

import pytest

from conftest import plan_rows

from plansync.models.project import ProjectStatus, ProjectType
from plansync.services.record_normalizer import (
    RecordNormalizer,
    classify_status,
    classify_type,
    extract_quarter,
    infer_year,
    is_included,
)
from plansync.services.schema_inference import POSITIONAL_SCHEMA, ColumnMap, infer_column_map


@pytest.fixture()
def positional():
    return ColumnMap(columns=dict(POSITIONAL_SCHEMA))


class TestInclusion:
    def test_row_without_description_is_excluded(self, positional):
        assert RecordNormalizer().normalize_row(["5", "", "New"], 0, positional) is None

    def test_row_with_description_is_included(self, positional):
        record = RecordNormalizer().normalize_row(["5", "Launch App", "New"], 0, positional)
        assert record is not None
        assert record.code == "5"
        assert record.description == "Launch App"
        assert record.type == ProjectType.NEW

    def test_repeated_header_without_code_is_excluded(self):
        assert not is_included("Mô tả", "")
        assert not is_included("Issue Description", "")

    def test_repeated_header_with_total_code_is_excluded(self):
        assert not is_included("Description", "Total")
        assert not is_included("Description", " total ")

    def test_header_literal_with_real_code_is_kept(self):
        assert is_included("Description", "VNE-09")

    def test_ordinary_description_is_kept_without_code(self):
        assert is_included("Event hub", "")


class TestStatus:
    @pytest.mark.parametrize("raw, expected", [
        ("Hoàn thành", ProjectStatus.DONE),
        ("hoan thanh", ProjectStatus.DONE),
        ("Đang làm", ProjectStatus.IN_PROGRESS),
        ("Tạm dừng", ProjectStatus.PENDING),
        ("Bàn giao", ProjectStatus.HAND_OFF),
        ("Đã hủy", ProjectStatus.CANCELLED),
        ("Chưa bắt đầu", ProjectStatus.NOT_STARTED),
        ("Mở lại", ProjectStatus.RE_OPEN),
        ("Xong iOS", ProjectStatus.IOS_DONE),
        ("In Progress", ProjectStatus.IN_PROGRESS),
        ("DONE", ProjectStatus.DONE),
        ("On hold", ProjectStatus.PENDING),
        ("Android done", ProjectStatus.ANDROID_DONE),
        ("Re-open", ProjectStatus.RE_OPEN),
        ("Cancelled", ProjectStatus.CANCELLED),
    ])
    def test_vocabulary(self, raw, expected):
        assert classify_status(raw) == expected

    def test_blank_defaults_to_planning(self):
        assert classify_status("") == ProjectStatus.PLANNING

    def test_unknown_uses_configured_default(self):
        assert classify_status("???", ProjectStatus.NOT_STARTED) == ProjectStatus.NOT_STARTED


class TestType:
    @pytest.mark.parametrize("raw, expected", [
        ("Thường niên", ProjectType.ANNUAL),
        ("ANN", ProjectType.ANNUAL),
        ("Annual", ProjectType.ANNUAL),
        ("Chiến lược", ProjectType.STRATEGIC),
        ("Strategic", ProjectType.STRATEGIC),
        ("Mới", ProjectType.NEW),
        ("", ProjectType.NEW),
        ("Channel", ProjectType.NEW),
    ])
    def test_vocabulary(self, raw, expected):
        assert classify_type(raw) == expected


class TestQuarter:
    @pytest.mark.parametrize("raw, expected", [
        ("Q3", 3),
        ("q2/2026", 2),
        ("Quý 4", 4),
        ("2", 2),
        ("", 1),
        ("Q7", 1),
    ])
    def test_extract(self, raw, expected):
        assert extract_quarter(raw) == expected


class TestYear:
    def test_two_digit_suffix_in_release(self):
        assert infer_year("12/25", "", "") == 2025

    def test_blanks_default_to_planning_year(self):
        assert infer_year("", "", "") == 2026
        assert infer_year("", "", "", planning_year=2030) == 2030

    def test_explicit_year_in_handoff(self):
        assert infer_year("", "2024-11-30", "") == 2024

    def test_2025_signal_in_any_field_wins(self):
        """A 2025 handoff beats a 2026 release date; "/25" and "2025" weigh the same."""
        assert infer_year("2026-04-01", "12/25", "") == 2025
        assert infer_year("01/04/2026", "", "Q4 25") == 2025
        assert infer_year("2026-04-01", "2025-12-15", "") == 2025

    def test_2024_beats_2026(self):
        assert infer_year("2026-01-10", "30/11/24", "") == 2024

    def test_bare_two_digit_year_in_quarter(self):
        assert infer_year("", "", "Q3 25") == 2025
        assert infer_year("", "", "Q1/26") == 2026

    def test_quarter_digit_alone_is_not_a_year(self):
        assert infer_year("", "", "Q2") == 2026


class TestNormalize:
    def test_full_pass(self):
        rows = plan_rows()
        records = RecordNormalizer().normalize(rows, infer_column_map(rows))

        assert [r.id for r in records] == ["p-0", "p-1", "p-4"]
        awards, launch, hub = records

        assert awards.code == "VNE-01"
        assert awards.type == ProjectType.ANNUAL
        assert awards.status == ProjectStatus.IN_PROGRESS
        assert awards.year == 2026
        assert awards.quarter == 1
        assert awards.pm == "HieuNT"
        assert awards.request_owner == "MinhLQ"

        assert launch.status == ProjectStatus.DONE
        assert launch.year == 2025
        assert launch.quarter == 4
        assert launch.department == "General"

        assert hub.code == "5"
        assert hub.type == ProjectType.STRATEGIC
        assert hub.status == ProjectStatus.PLANNING
        assert hub.quarter == 2

    def test_deterministic(self):
        rows = plan_rows()
        cmap = infer_column_map(rows)
        first = [r.to_dict() for r in RecordNormalizer().normalize(rows, cmap)]
        second = [r.to_dict() for r in RecordNormalizer().normalize(rows, cmap)]
        assert first == second

    def test_injected_defaults(self, positional):
        normalizer = RecordNormalizer(
            planning_year=2027,
            default_status="NotStarted",
            default_department="Newsroom",
            id_factory=lambda idx: f"row{idx}",
        )
        record = normalizer.normalize_row(["", "Podcast"], 3, positional)
        assert record.id == "row3"
        assert record.code == "4"
        assert record.year == 2027
        assert record.status == ProjectStatus.NOT_STARTED
        assert record.department == "Newsroom"
