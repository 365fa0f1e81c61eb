"""Read-only loading of the matrix axes: courses, semesters, topics, students."""
import logging
from typing import List, Optional

from errors import LoadFailure, StorageError
from models import Course, GradeRow, Semester, Student, Topic
from storage import GradeStore

logger = logging.getLogger(__name__)


class DimensionLoader:
    """Every method returns a finite, ordered list or raises LoadFailure."""

    def __init__(self, store: GradeStore):
        self.store = store

    async def load_courses(self) -> List[Course]:
        courses = await self._call("courses", self.store.list_courses())
        return sorted(courses, key=lambda c: c.name.lower())

    async def load_course(self, course_id: str) -> Optional[Course]:
        return await self._call(f"course {course_id}", self.store.get_course(course_id))

    async def load_semesters(self, course_id: str) -> List[Semester]:
        semesters = await self._call(
            f"semesters of course {course_id}", self.store.list_semesters(course_id))
        # Undated semesters go last, in store order.
        return sorted(semesters, key=lambda s: (s.start_date is None, s.start_date or ""))

    async def load_topics(self, semester_id: str) -> List[Topic]:
        topics = await self._call(
            f"topics of semester {semester_id}", self.store.list_topics(semester_id))
        return sorted(topics, key=lambda t: t.order)

    async def load_unassigned_topics(self, course_id: str) -> List[Topic]:
        """Topics of the course that belong to no semester."""
        topics = await self._call(
            f"topics of course {course_id}", self.store.list_course_topics(course_id))
        return sorted((t for t in topics if t.semester_id is None), key=lambda t: t.order)

    async def load_enrolled_students(self, course_id: str) -> List[Student]:
        students = await self._call(
            f"students of course {course_id}", self.store.list_enrolled_students(course_id))
        return sorted(students, key=lambda s: (s.name.lower(), s.student_number))

    async def load_grade_rows(self, course_id: str,
                              topic_ids: Optional[List[str]] = None) -> List[GradeRow]:
        """Persisted grade rows of the course, optionally only for *topic_ids*."""
        if topic_ids is not None and not topic_ids:
            return []
        return await self._call(
            f"grades of course {course_id}", self.store.list_grade_rows(course_id, topic_ids))

    async def _call(self, what: str, pending):
        try:
            return await pending
        except StorageError as e:
            logger.error("load %s failed: %s", what, e)
            raise LoadFailure(f"Failed to load {what}: {e.message}", {"what": what})
