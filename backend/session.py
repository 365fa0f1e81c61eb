"""Editing session: one course, one selected semester, one grade matrix."""
import asyncio
import dataclasses
import logging
import time
import uuid
from typing import Any, Dict, List, Optional, Tuple

import grade_stats
from cell_editor import CellEditor
from dimensions import DimensionLoader
from errors import GradebookError, NotFoundError, SaveInProgressError, SessionNotFoundError
from grade_matrix import GradeMatrix
from models import GradeRow, ScoreScale, SeverityBand, Student, Topic
from reconcile import GradeReconciler, SaveResult
from storage import GradeStore

logger = logging.getLogger(__name__)


class GradebookSession:
    """Owns the grade matrix of one editor.

    Saves and semester switches are serialized: either one requested while
    the other (or another save) is running raises SaveInProgressError.
    """

    def __init__(self, store: GradeStore, course_id: str,
                 scale: Optional[ScoreScale] = None):
        self.store = store
        self.course_id = course_id
        self.scale = scale or ScoreScale()
        self.loader = DimensionLoader(store)
        self.matrix = GradeMatrix()
        self.editor = CellEditor(self.matrix, self.scale)
        self.reconciler = GradeReconciler(store, course_id)
        self.semester_id: Optional[str] = None
        self.topics: List[Topic] = []
        self.students: List[Student] = []
        # Held by save() and select_semester(); they never overlap
        self._save_lock = asyncio.Lock()
        self._saving = False
        # Cell states edited while a save is in flight, re-applied after re-seeding
        self._late_edits: Dict[Tuple[str, str], Tuple[Optional[float], Optional[str]]] = {}

    @property
    def topic_ids(self) -> List[str]:
        return [t.id for t in self.topics]

    @property
    def student_ids(self) -> List[str]:
        return [s.id for s in self.students]

    @property
    def is_saving(self) -> bool:
        return self._saving

    # ── Loading ───────────────────────────────────────────────────────────────

    async def select_semester(self, semester_id: str) -> None:
        """Load the semester's axes and persisted grades, then replace the matrix.

        Nothing changes if any read fails.
        """
        if self._save_lock.locked():
            raise SaveInProgressError("Cannot switch semester while a save is running")
        async with self._save_lock:
            await self._load_semester(semester_id)

    async def _load_semester(self, semester_id: str) -> None:
        semesters = await self.loader.load_semesters(self.course_id)
        if semester_id not in {s.id for s in semesters}:
            raise NotFoundError(
                f"Semester {semester_id} does not belong to course {self.course_id}",
                {"semester_id": semester_id},
            )
        topics = await self.loader.load_topics(semester_id)
        students = await self.loader.load_enrolled_students(self.course_id)
        rows = await self._read_rows([t.id for t in topics])

        self.semester_id = semester_id
        self.topics = topics
        self.students = students
        self.matrix.seed(rows)
        logger.info(
            "select_semester: course %s, semester %s, %d students x %d topics, %d cells",
            self.course_id, semester_id, len(students), len(topics), len(self.matrix),
        )

    async def _read_rows(self, topic_ids: List[str]) -> List[GradeRow]:
        return await self.loader.load_grade_rows(self.course_id, topic_ids)

    # ── Editing ───────────────────────────────────────────────────────────────

    def _check_cell(self, student_id: str, topic_id: str) -> None:
        if self.semester_id is None:
            raise GradebookError("No semester selected")
        if topic_id not in self.topic_ids:
            raise NotFoundError(f"Topic {topic_id} is not in the selected semester",
                                {"topic_id": topic_id})
        if student_id not in self.student_ids:
            raise NotFoundError(f"Student {student_id} is not enrolled in course {self.course_id}",
                                {"student_id": student_id})

    def edit_cell(self, student_id: str, topic_id: str, raw: Any) -> Optional[float]:
        self._check_cell(student_id, topic_id)
        score = self.editor.edit_cell(student_id, topic_id, raw)
        self._note_late_edit(student_id, topic_id)
        return score

    def edit_comment(self, student_id: str, topic_id: str, raw: Any) -> Optional[str]:
        self._check_cell(student_id, topic_id)
        comment = self.editor.edit_comment(student_id, topic_id, raw)
        self._note_late_edit(student_id, topic_id)
        return comment

    def _note_late_edit(self, student_id: str, topic_id: str) -> None:
        if not self.is_saving:
            return
        cell = self.matrix.get(student_id, topic_id)
        self._late_edits[(student_id, topic_id)] = (
            (cell.score, cell.comment) if cell is not None else (None, None)
        )

    # ── Statistics ────────────────────────────────────────────────────────────

    def average_for(self, student_id: str) -> grade_stats.Average:
        return grade_stats.average_for(self.matrix, student_id, self.topic_ids)

    def severity_band(self, score: float) -> SeverityBand:
        return grade_stats.severity_band(score, self.scale)

    def snapshot(self) -> Dict[str, Dict[str, dict]]:
        return self.matrix.snapshot()

    # ── Saving ────────────────────────────────────────────────────────────────

    async def save(self) -> SaveResult:
        if self.semester_id is None:
            raise GradebookError("No semester selected")
        if self._save_lock.locked():
            raise SaveInProgressError("A save or semester switch is already running")
        async with self._save_lock:
            self._saving = True
            try:
                result = await self._save()
            finally:
                self._saving = False
                self._late_edits = {}
        logger.info("save: course %s semester %s: %s", self.course_id, self.semester_id,
                    result.as_dict())
        return result

    async def _save(self) -> SaveResult:
        self._late_edits = {}
        cells = [dataclasses.replace(cell) for cell in self.matrix.all_cells()]
        # SaveFailure leaves the matrix untouched so the edits can be retried.
        result = await self.reconciler.save(cells)
        rows = await self._read_rows(self.topic_ids)
        self.matrix.seed(rows)
        for (student_id, topic_id), (score, comment) in self._late_edits.items():
            self.matrix.set(student_id, topic_id, score, comment)
        return result


# Sessions untouched for this long are dropped on the next open or lookup
DEFAULT_MAX_IDLE = 8 * 60 * 60


class SessionRegistry:
    """Open sessions of this process, by generated id."""

    def __init__(self, max_idle: float = DEFAULT_MAX_IDLE, clock=time.monotonic):
        self.max_idle = max_idle
        self._clock = clock
        self._sessions: Dict[str, GradebookSession] = {}
        self._last_used: Dict[str, float] = {}

    def open(self, session: GradebookSession) -> str:
        self.expire_idle()
        session_id = uuid.uuid4().hex
        self._sessions[session_id] = session
        self._last_used[session_id] = self._clock()
        return session_id

    def get(self, session_id: str) -> GradebookSession:
        self.expire_idle()
        session = self._sessions.get(session_id)
        if session is None:
            raise SessionNotFoundError(f"Unknown session {session_id}")
        self._last_used[session_id] = self._clock()
        return session

    def close(self, session_id: str) -> None:
        if self._sessions.pop(session_id, None) is None:
            raise SessionNotFoundError(f"Unknown session {session_id}")
        self._last_used.pop(session_id, None)

    def expire_idle(self) -> List[str]:
        """Drop sessions idle for longer than ``max_idle``; a saving session is kept."""
        now = self._clock()
        expired = [
            session_id for session_id, used in self._last_used.items()
            if now - used > self.max_idle and not self._sessions[session_id].is_saving
        ]
        for session_id in expired:
            del self._sessions[session_id]
            del self._last_used[session_id]
        if expired:
            logger.info("expire_idle: closed %d idle sessions, %d open",
                        len(expired), len(self._sessions))
        return expired

    def clear(self) -> None:
        self._sessions.clear()
        self._last_used.clear()

    def __len__(self) -> int:
        return len(self._sessions)
