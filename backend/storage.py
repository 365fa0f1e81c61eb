"""Tabular storage for courses, semesters, topics, enrollments and grades.

The engine only depends on the ``GradeStore`` contract. ``JsonGradeStore``
keeps one JSON file per table under ``DATA_DIR``.
"""
import json
import logging
import os
import uuid
from abc import ABC, abstractmethod
from typing import Dict, Iterable, List, Optional

from errors import StaleIdentifierError, StorageError
from models import Course, GradeRow, Semester, Student, Topic

logger = logging.getLogger(__name__)

DATA_DIR = os.environ.get("GRADEBOOK_DATA_DIR", "./data")


class GradeStore(ABC):
    """Read dimension records and read/write grade rows."""

    @abstractmethod
    async def list_courses(self) -> List[Course]:
        ...

    @abstractmethod
    async def get_course(self, course_id: str) -> Optional[Course]:
        ...

    @abstractmethod
    async def list_semesters(self, course_id: str) -> List[Semester]:
        ...

    @abstractmethod
    async def list_topics(self, semester_id: str) -> List[Topic]:
        ...

    @abstractmethod
    async def list_course_topics(self, course_id: str) -> List[Topic]:
        ...

    @abstractmethod
    async def list_enrolled_students(self, course_id: str) -> List[Student]:
        ...

    @abstractmethod
    async def list_grade_rows(self, course_id: str,
                              topic_ids: Optional[Iterable[str]] = None) -> List[GradeRow]:
        """All grade rows of the course, optionally restricted to *topic_ids*."""

    @abstractmethod
    async def insert_grade_rows(self, rows: List[dict]) -> List[dict]:
        """Insert rows {student_id, topic_id, course_id, score, comment}; return [{id}]."""

    @abstractmethod
    async def update_grade_rows(self, rows: List[dict]) -> None:
        """Update rows {id, score, comment} in place by id."""


# ── JSON tables ───────────────────────────────────────────────────────────────

def _table_path(data_dir: str, table: str) -> str:
    return os.path.join(data_dir, f"{table}.json")


def read_table(table: str, data_dir: Optional[str] = None) -> List[dict]:
    path = _table_path(data_dir or DATA_DIR, table)
    if not os.path.exists(path):
        return []
    try:
        with open(path, "r", encoding="utf-8") as f:
            return json.load(f)
    except (OSError, ValueError) as e:
        raise StorageError(f"Failed to read table {table}: {e}")


def write_table(table: str, rows: List[dict], data_dir: Optional[str] = None) -> None:
    data_dir = data_dir or DATA_DIR
    try:
        os.makedirs(data_dir, exist_ok=True)
        with open(_table_path(data_dir, table), "w", encoding="utf-8") as f:
            json.dump(rows, f, indent=2)
    except OSError as e:
        raise StorageError(f"Failed to write table {table}: {e}")


def _course(item: dict) -> Course:
    return Course(id=str(item["id"]), name=item["name"], code=item.get("code"))


def _semester(item: dict) -> Semester:
    return Semester(
        id=str(item["id"]),
        course_id=str(item["course_id"]),
        name=item["name"],
        start_date=item.get("start_date"),
        end_date=item.get("end_date"),
    )


def _topic(item: dict) -> Topic:
    semester_id = item.get("semester_id")
    return Topic(
        id=str(item["id"]),
        course_id=str(item["course_id"]),
        name=item["name"],
        order=int(item.get("order", 0)),
        semester_id=str(semester_id) if semester_id is not None else None,
    )


def _student(item: dict) -> Student:
    return Student(
        id=str(item["id"]),
        name=item["name"],
        student_number=str(item.get("student_number", "")).strip(),
    )


class JsonGradeStore(GradeStore):
    """GradeStore over JSON files. Row order on disk is insertion order."""

    def __init__(self, data_dir: Optional[str] = None):
        self._data_dir = data_dir

    @property
    def data_dir(self) -> str:
        # Resolved on every call so tests can redirect DATA_DIR.
        return self._data_dir or DATA_DIR

    def _read(self, table: str) -> List[dict]:
        return read_table(table, self.data_dir)

    def _write(self, table: str, rows: List[dict]) -> None:
        write_table(table, rows, self.data_dir)

    async def list_courses(self) -> List[Course]:
        return [_course(c) for c in self._read("courses")]

    async def get_course(self, course_id: str) -> Optional[Course]:
        for item in self._read("courses"):
            if str(item["id"]) == course_id:
                return _course(item)
        return None

    async def list_semesters(self, course_id: str) -> List[Semester]:
        return [
            _semester(s) for s in self._read("semesters")
            if str(s["course_id"]) == course_id
        ]

    async def list_topics(self, semester_id: str) -> List[Topic]:
        return [
            _topic(t) for t in self._read("topics")
            if t.get("semester_id") is not None and str(t["semester_id"]) == semester_id
        ]

    async def list_course_topics(self, course_id: str) -> List[Topic]:
        return [_topic(t) for t in self._read("topics") if str(t["course_id"]) == course_id]

    async def list_enrolled_students(self, course_id: str) -> List[Student]:
        enrolled = {
            str(e["student_id"]) for e in self._read("enrollments")
            if str(e["course_id"]) == course_id
        }
        return [_student(s) for s in self._read("students") if str(s["id"]) in enrolled]

    async def list_grade_rows(self, course_id: str,
                              topic_ids: Optional[Iterable[str]] = None) -> List[GradeRow]:
        wanted = set(topic_ids) if topic_ids is not None else None
        rows = []
        for item in self._read("grades"):
            if str(item["course_id"]) != course_id:
                continue
            if wanted is not None and str(item["topic_id"]) not in wanted:
                continue
            rows.append(GradeRow.from_dict(item))
        return rows

    async def insert_grade_rows(self, rows: List[dict]) -> List[dict]:
        grades = self._read("grades")
        created = []
        for row in rows:
            new_id = str(uuid.uuid4())
            grades.append({
                "id": new_id,
                "student_id": row["student_id"],
                "topic_id": row["topic_id"],
                "course_id": row["course_id"],
                "score": row.get("score"),
                "comment": row.get("comment"),
            })
            created.append({"id": new_id})
        self._write("grades", grades)
        logger.info("insert_grade_rows: inserted %d rows", len(created))
        return created

    async def update_grade_rows(self, rows: List[dict]) -> None:
        grades = self._read("grades")
        by_id: Dict[str, dict] = {str(g["id"]): g for g in grades}
        stale = [str(r["id"]) for r in rows if str(r["id"]) not in by_id]
        if stale:
            logger.warning("update_grade_rows: %d stale ids, nothing written", len(stale))
            raise StaleIdentifierError(stale)
        for row in rows:
            target = by_id[str(row["id"])]
            target["score"] = row.get("score")
            target["comment"] = row.get("comment")
        self._write("grades", grades)
        logger.info("update_grade_rows: updated %d rows", len(rows))


def get_store() -> GradeStore:
    """Store used by the HTTP routes (overridden in tests)."""
    return JsonGradeStore()
