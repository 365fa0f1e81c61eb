"""In-memory grade matrix: { student_id: { topic_id: GradeCell } }."""
import logging
from typing import Dict, Iterable, Iterator, List, Optional

from models import GradeCell, GradeRow

logger = logging.getLogger(__name__)

# Sentinel for "leave the comment as it is" in GradeMatrix.set()
KEEP = object()


class GradeMatrix:
    """Score/comment grid for one (course, semester) view.

    The matrix never talks to storage. ``seed`` replaces it wholesale from
    persisted rows; ``set`` and ``set_comment`` mutate single cells.
    """

    def __init__(self, rows: Optional[Iterable[GradeRow]] = None):
        self._cells: Dict[str, Dict[str, GradeCell]] = {}
        if rows is not None:
            self.seed(rows)

    # ── Seeding ───────────────────────────────────────────────────────────────

    def seed(self, rows: Iterable[GradeRow]) -> None:
        cells: Dict[str, Dict[str, GradeCell]] = {}
        count = 0
        for row in rows:
            by_topic = cells.setdefault(row.student_id, {})
            if row.topic_id in by_topic:
                logger.warning(
                    "seed: duplicate grade rows for student %s / topic %s, keeping %s and ignoring %s",
                    row.student_id, row.topic_id, by_topic[row.topic_id].persisted_id, row.id,
                )
                continue
            by_topic[row.topic_id] = GradeCell(
                student_id=row.student_id,
                topic_id=row.topic_id,
                score=row.score,
                comment=row.comment or None,
                persisted_id=row.id,
            )
            count += 1
        self._cells = cells
        logger.debug("seed: %d cells for %d students", count, len(cells))

    # ── Cell access ───────────────────────────────────────────────────────────

    def get(self, student_id: str, topic_id: str) -> Optional[GradeCell]:
        return self._cells.get(student_id, {}).get(topic_id)

    def set(self, student_id: str, topic_id: str, score: Optional[float],
            comment=KEEP) -> Optional[GradeCell]:
        """Overwrite or create the cell; returns it, or None if it became absent."""
        cell = self.get(student_id, topic_id)
        if cell is None:
            cell = GradeCell(student_id=student_id, topic_id=topic_id)
        cell.score = score
        if comment is not KEEP:
            cell.comment = comment or None
        return self._store(cell)

    def set_comment(self, student_id: str, topic_id: str,
                    comment: Optional[str]) -> Optional[GradeCell]:
        cell = self.get(student_id, topic_id)
        if cell is None:
            cell = GradeCell(student_id=student_id, topic_id=topic_id)
        cell.comment = comment or None
        return self._store(cell)

    def _store(self, cell: GradeCell) -> Optional[GradeCell]:
        # A blank cell that was never saved is the same as no cell at all.
        if cell.is_blank() and cell.persisted_id is None:
            self._discard(cell.student_id, cell.topic_id)
            return None
        self._cells.setdefault(cell.student_id, {})[cell.topic_id] = cell
        return cell

    def _discard(self, student_id: str, topic_id: str) -> None:
        by_topic = self._cells.get(student_id)
        if by_topic is None:
            return
        by_topic.pop(topic_id, None)
        if not by_topic:
            del self._cells[student_id]

    # ── Enumeration ───────────────────────────────────────────────────────────

    def all_cells(self) -> List[GradeCell]:
        """Every cell currently held. A fresh list, so it can be walked again."""
        return [cell for by_topic in self._cells.values() for cell in by_topic.values()]

    def __iter__(self) -> Iterator[GradeCell]:
        return iter(self.all_cells())

    def __len__(self) -> int:
        return sum(len(by_topic) for by_topic in self._cells.values())

    def __contains__(self, key) -> bool:
        student_id, topic_id = key
        return self.get(student_id, topic_id) is not None

    def student_scores(self, student_id: str,
                       topic_ids: Optional[Iterable[str]] = None) -> List[float]:
        by_topic = self._cells.get(student_id, {})
        wanted = set(topic_ids) if topic_ids is not None else None
        return [
            cell.score for topic_id, cell in by_topic.items()
            if cell.score is not None and (wanted is None or topic_id in wanted)
        ]

    def topic_scores(self, topic_id: str,
                     student_ids: Optional[Iterable[str]] = None) -> List[float]:
        wanted = set(student_ids) if student_ids is not None else None
        scores = []
        for student_id, by_topic in self._cells.items():
            if wanted is not None and student_id not in wanted:
                continue
            cell = by_topic.get(topic_id)
            if cell is not None and cell.score is not None:
                scores.append(cell.score)
        return scores

    def snapshot(self) -> Dict[str, Dict[str, dict]]:
        return {
            student_id: {topic_id: cell.as_dict() for topic_id, cell in by_topic.items()}
            for student_id, by_topic in self._cells.items()
        }
