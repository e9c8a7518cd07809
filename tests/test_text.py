"""Unit tests for plansync.utils.text."""

from plansync.utils.text import fold, keyword_in, matches_any


def test_fold_strips_diacritics_case_and_whitespace():
    assert fold("  Hoàn   Thành ") == "hoan thanh"
    assert fold("Đang làm") == "dang lam"
    assert fold(None) == ""


def test_short_keyword_matches_whole_word_only():
    assert matches_any("PM phụ trách", ("pm",))
    assert matches_any("(PO)", ("po",))
    assert not matches_any("Development", ("pm",))
    assert not matches_any("Report", ("po",))


def test_long_keyword_matches_substring():
    assert keyword_in(fold("Issue Description"), "description")
    assert keyword_in(fold("Ngày bàn giao"), "bàn giao")
