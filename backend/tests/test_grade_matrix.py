from grade_matrix import GradeMatrix
from models import GradeRow


def _rows():
    return [
        GradeRow(id="r1", student_id="S1", topic_id="T1", course_id="C1", score=8.0),
        GradeRow(id="r2", student_id="S1", topic_id="T2", course_id="C1", comment="late"),
        GradeRow(id="r3", student_id="S2", topic_id="T1", course_id="C1", score=4.5),
    ]


def test_seed_builds_cells_with_persisted_ids():
    matrix = GradeMatrix(_rows())
    assert len(matrix) == 3
    cell = matrix.get("S1", "T1")
    assert cell.score == 8.0
    assert cell.persisted_id == "r1"
    assert matrix.get("S2", "T2") is None


def test_seed_is_idempotent():
    matrix = GradeMatrix()
    matrix.seed(_rows())
    first = matrix.snapshot()
    matrix.seed(_rows())
    assert matrix.snapshot() == first


def test_seed_replaces_previous_content():
    matrix = GradeMatrix(_rows())
    matrix.set("S9", "T9", 5.0)
    matrix.seed(_rows()[:1])
    assert len(matrix) == 1
    assert ("S9", "T9") not in matrix


def test_seed_keeps_first_of_duplicate_rows():
    rows = _rows() + [GradeRow(id="dup", student_id="S1", topic_id="T1", course_id="C1", score=1.0)]
    matrix = GradeMatrix(rows)
    assert matrix.get("S1", "T1").persisted_id == "r1"
    assert matrix.get("S1", "T1").score == 8.0


def test_set_creates_new_cell_without_persisted_id():
    matrix = GradeMatrix()
    cell = matrix.set("S1", "T1", 7.0)
    assert cell.score == 7.0
    assert cell.persisted_id is None
    assert ("S1", "T1") in matrix


def test_set_keeps_comment_unless_given():
    matrix = GradeMatrix(_rows())
    matrix.set("S1", "T2", 6.0)
    assert matrix.get("S1", "T2").comment == "late"
    matrix.set("S1", "T2", 6.0, comment="")
    assert matrix.get("S1", "T2").comment is None


def test_clearing_unsaved_cell_removes_it():
    matrix = GradeMatrix()
    matrix.set("S1", "T1", 7.0)
    assert matrix.set("S1", "T1", None) is None
    assert len(matrix) == 0


def test_clearing_persisted_cell_keeps_it():
    matrix = GradeMatrix(_rows())
    cell = matrix.set("S1", "T1", None)
    assert cell is not None
    assert cell.score is None
    assert cell.persisted_id == "r1"


def test_all_cells_is_restartable():
    matrix = GradeMatrix(_rows())
    cells = matrix.all_cells()
    assert len(cells) == 3
    assert len(list(matrix)) == 3
    assert len(list(matrix)) == 3


def test_student_and_topic_scores_skip_absent():
    matrix = GradeMatrix(_rows())
    assert matrix.student_scores("S1") == [8.0]
    assert sorted(matrix.topic_scores("T1")) == [4.5, 8.0]
    assert matrix.topic_scores("T1", ["S2"]) == [4.5]
    assert matrix.student_scores("S1", ["T2"]) == []
