import uuid

import pytest
import storage
from errors import StaleIdentifierError, StorageError
from fastapi.testclient import TestClient
from main import app
from models import Course, GradeRow, Semester, Student, Topic
from routes.sessions import registry
from storage import GradeStore, get_store, write_table


class MemoryGradeStore(GradeStore):
    """In-memory GradeStore that records every write batch.

    Set ``fail_reads``, ``fail_updates`` or ``fail_inserts`` to make the
    matching call raise StorageError. ``on_update`` is awaited inside
    ``update_grade_rows`` before anything is written, ``on_read`` inside
    ``list_grade_rows`` before anything is read.
    """

    def __init__(self):
        self.courses = []
        self.semesters = []
        self.topics = []
        self.students = []
        self.enrollments = []
        self.rows = []
        self.update_batches = []
        self.insert_batches = []
        self.fail_reads = False
        self.fail_updates = False
        self.fail_inserts = False
        self.on_update = None
        self.on_read = None

    def _check_read(self):
        if self.fail_reads:
            raise StorageError("store unavailable")

    async def list_courses(self):
        self._check_read()
        return list(self.courses)

    async def get_course(self, course_id):
        self._check_read()
        return next((c for c in self.courses if c.id == course_id), None)

    async def list_semesters(self, course_id):
        self._check_read()
        return [s for s in self.semesters if s.course_id == course_id]

    async def list_topics(self, semester_id):
        self._check_read()
        return [t for t in self.topics if t.semester_id == semester_id]

    async def list_course_topics(self, course_id):
        self._check_read()
        return [t for t in self.topics if t.course_id == course_id]

    async def list_enrolled_students(self, course_id):
        self._check_read()
        ids = {s for c, s in self.enrollments if c == course_id}
        return [s for s in self.students if s.id in ids]

    async def list_grade_rows(self, course_id, topic_ids=None):
        if self.on_read is not None:
            await self.on_read()
        self._check_read()
        wanted = set(topic_ids) if topic_ids is not None else None
        return [
            GradeRow(**vars(r)) for r in self.rows
            if r.course_id == course_id and (wanted is None or r.topic_id in wanted)
        ]

    async def insert_grade_rows(self, rows):
        self.insert_batches.append([dict(r) for r in rows])
        if self.fail_inserts:
            raise StorageError("insert rejected")
        created = []
        for r in rows:
            row = GradeRow(id=uuid.uuid4().hex, student_id=r["student_id"],
                           topic_id=r["topic_id"], course_id=r["course_id"],
                           score=r["score"], comment=r["comment"])
            self.rows.append(row)
            created.append({"id": row.id})
        return created

    async def update_grade_rows(self, rows):
        self.update_batches.append([dict(r) for r in rows])
        if self.on_update is not None:
            await self.on_update()
        if self.fail_updates:
            raise StorageError("update rejected")
        by_id = {r.id: r for r in self.rows}
        stale = [r["id"] for r in rows if r["id"] not in by_id]
        if stale:
            raise StaleIdentifierError(stale)
        for r in rows:
            by_id[r["id"]].score = r["score"]
            by_id[r["id"]].comment = r["comment"]

    def add_row(self, row_id, student_id, topic_id, score=None, comment=None, course_id="C1"):
        self.rows.append(GradeRow(id=row_id, student_id=student_id, topic_id=topic_id,
                                  course_id=course_id, score=score, comment=comment))


def make_store():
    """Course C1 with two semesters, two students and one uncategorized topic."""
    store = MemoryGradeStore()
    store.courses = [Course(id="C1", name="Algebra"), Course(id="C2", name="biology")]
    store.semesters = [
        Semester(id="SEM2", course_id="C1", name="Spring", start_date="2024-02-01"),
        Semester(id="SEM1", course_id="C1", name="Fall", start_date="2023-09-01"),
    ]
    store.topics = [
        Topic(id="T2", course_id="C1", name="Vectors", order=2, semester_id="SEM1"),
        Topic(id="T1", course_id="C1", name="Sets", order=1, semester_id="SEM1"),
        Topic(id="T3", course_id="C1", name="Matrices", order=1, semester_id="SEM2"),
        Topic(id="T9", course_id="C1", name="Project", order=1, semester_id=None),
    ]
    store.students = [
        Student(id="S2", name="bob", student_number="002"),
        Student(id="S1", name="Alice", student_number="001"),
        Student(id="S3", name="Carol", student_number="003"),
    ]
    store.enrollments = [("C1", "S1"), ("C1", "S2"), ("C2", "S3")]
    return store


@pytest.fixture(autouse=True)
def tmp_data_dir(tmp_path, monkeypatch):
    """Redirect all storage reads/writes to a temporary directory."""
    monkeypatch.setattr(storage, 'DATA_DIR', str(tmp_path))
    return tmp_path


@pytest.fixture(autouse=True)
def clear_sessions():
    registry.clear()
    yield
    registry.clear()


@pytest.fixture()
def store():
    return make_store()


@pytest.fixture()
def client():
    return TestClient(app)


@pytest.fixture()
def json_tables(tmp_data_dir):
    """The make_store() fixture data written as JSON tables."""
    write_table("courses", [{"id": "C1", "name": "Algebra"}, {"id": "C2", "name": "biology"}])
    write_table("semesters", [
        {"id": "SEM2", "course_id": "C1", "name": "Spring", "start_date": "2024-02-01"},
        {"id": "SEM1", "course_id": "C1", "name": "Fall", "start_date": "2023-09-01"},
    ])
    write_table("topics", [
        {"id": "T2", "course_id": "C1", "name": "Vectors", "order": 2, "semester_id": "SEM1"},
        {"id": "T1", "course_id": "C1", "name": "Sets", "order": 1, "semester_id": "SEM1"},
        {"id": "T3", "course_id": "C1", "name": "Matrices", "order": 1, "semester_id": "SEM2"},
        {"id": "T9", "course_id": "C1", "name": "Project", "order": 1, "semester_id": None},
    ])
    write_table("students", [
        {"id": "S2", "name": "bob", "student_number": "002"},
        {"id": "S1", "name": "Alice", "student_number": "001"},
        {"id": "S3", "name": "Carol", "student_number": "003"},
    ])
    write_table("enrollments", [
        {"course_id": "C1", "student_id": "S1"},
        {"course_id": "C1", "student_id": "S2"},
        {"course_id": "C2", "student_id": "S3"},
    ])
    write_table("grades", [])
    return tmp_data_dir


@pytest.fixture()
def memory_client(store):
    """TestClient whose routes read and write the in-memory store."""
    app.dependency_overrides[get_store] = lambda: store
    yield TestClient(app)
    app.dependency_overrides.pop(get_store, None)
