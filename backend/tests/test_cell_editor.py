from decimal import Decimal
from fractions import Fraction

import pytest

from cell_editor import CellEditor, coerce_score, normalize_comment, normalize_score
from grade_matrix import GradeMatrix
from models import ScoreScale


@pytest.mark.parametrize("raw,expected", [
    (7, 7.0),
    ("7.5", 7.5),
    ("7,5", 7.5),
    ("  3 ", 3.0),
    ("abc", None),
    ("", None),
    (None, None),
    (True, None),
    (float("nan"), None),
    ([1], None),
    (Decimal("6.5"), 6.5),
    (Fraction(15, 2), 7.5),
    (Decimal("NaN"), None),
])
def test_coerce_score(raw, expected):
    assert coerce_score(raw) == expected


def test_normalize_clamps_to_scale():
    scale = ScoreScale()
    assert normalize_score(12, scale) == 10.0
    assert normalize_score(-3, scale) == 1.0
    assert normalize_score("6.4", scale) == 6.4


def test_normalize_rounds_only_integer_scales():
    assert normalize_score(6.6, ScoreScale(0, 20, integer_only=True)) == 7.0
    assert normalize_score(6.6, ScoreScale(0, 20)) == 6.6


def test_normalize_comment_strips_and_drops_empty():
    assert normalize_comment("  good work ") == "good work"
    assert normalize_comment("   ") is None
    assert normalize_comment(None) is None


def test_edit_cell_stores_clamped_score():
    matrix = GradeMatrix()
    editor = CellEditor(matrix, ScoreScale())
    assert editor.edit_cell("S1", "T1", 12) == 10.0
    assert matrix.get("S1", "T1").score == 10.0


def test_non_numeric_edit_leaves_cell_absent():
    matrix = GradeMatrix()
    editor = CellEditor(matrix, ScoreScale())
    assert editor.edit_cell("S2", "T2", "abc") is None
    assert matrix.get("S2", "T2") is None


def test_non_numeric_edit_clears_existing_score():
    matrix = GradeMatrix()
    editor = CellEditor(matrix, ScoreScale())
    editor.edit_cell("S1", "T1", 8)
    editor.edit_comment("S1", "T1", "retake")
    editor.edit_cell("S1", "T1", "n/a")
    cell = matrix.get("S1", "T1")
    assert cell.score is None
    assert cell.comment == "retake"


def test_comment_only_cell_is_kept():
    matrix = GradeMatrix()
    editor = CellEditor(matrix, ScoreScale())
    assert editor.edit_comment("S1", "T1", "absent from exam") == "absent from exam"
    assert matrix.get("S1", "T1").score is None


def test_huge_numbers_are_clamped_not_rejected():
    matrix = GradeMatrix()
    editor = CellEditor(matrix, ScoreScale())
    assert editor.edit_cell("S1", "T1", 10 ** 400) == 10.0
    assert editor.edit_cell("S1", "T2", -(10 ** 400)) == 1.0
    assert editor.edit_cell("S2", "T1", Fraction(10 ** 400)) == 10.0
    assert editor.edit_cell("S2", "T2", "1e400") == 10.0


def test_integer_scale_rounds_halves_up():
    scale = ScoreScale(0, 20, integer_only=True)
    assert normalize_score(6.5, scale) == 7.0
    assert normalize_score(7.5, scale) == 8.0
    assert normalize_score("6,49", scale) == 6.0
