"""Diff the in-memory grade matrix against persisted rows and write the deltas.

The store hands out opaque row ids only after a first insert, so there is no
upsert by (student_id, topic_id). Every save therefore re-reads the persisted
rows, maps the natural key to the row id, and splits pending cells into an
update batch (key already stored) and an insert batch (key never stored).
"""
import logging
from dataclasses import dataclass, field
from typing import Callable, Dict, Generic, Hashable, Iterable, List, Tuple, TypeVar

from errors import SaveFailure, StaleIdentifierError, StaleIdentifierSaveFailure, StorageError
from models import GradeCell, GradeRow
from storage import GradeStore

logger = logging.getLogger(__name__)

P = TypeVar("P")   # pending item
R = TypeVar("R")   # persisted record
K = TypeVar("K", bound=Hashable)


@dataclass
class Partition(Generic[P, R]):
    updates: List[Tuple[P, R]] = field(default_factory=list)
    inserts: List[P] = field(default_factory=list)
    unchanged: List[Tuple[P, R]] = field(default_factory=list)


def build_index(persisted: Iterable[R], key: Callable[[R], K]) -> Dict[K, R]:
    """Natural key -> persisted record. The first record seen for a key wins."""
    index: Dict[K, R] = {}
    for record in persisted:
        k = key(record)
        if k in index:
            logger.warning("build_index: duplicate persisted record for key %s", k)
            continue
        index[k] = record
    return index


def partition(pending: Iterable[P], persisted: Iterable[R],
              key: Callable[[P], K], persisted_key: Callable[[R], K],
              unchanged: Callable[[P, R], bool]) -> Partition:
    """Split *pending* into updates, inserts and no-ops against *persisted*.

    A key lands in exactly one of the three lists.
    """
    index = build_index(persisted, persisted_key)
    result: Partition = Partition()
    for item in pending:
        record = index.get(key(item))
        if record is None:
            result.inserts.append(item)
        elif unchanged(item, record):
            result.unchanged.append((item, record))
        else:
            result.updates.append((item, record))
    return result


# ── Grade-specific plan ───────────────────────────────────────────────────────

@dataclass
class SavePlan:
    updates: List[dict] = field(default_factory=list)   # {id, score, comment}
    inserts: List[dict] = field(default_factory=list)   # {student_id, topic_id, course_id, score, comment}
    unchanged: int = 0

    def is_empty(self) -> bool:
        return not self.updates and not self.inserts


@dataclass
class SaveResult:
    updated: int = 0
    inserted: int = 0
    unchanged: int = 0

    def as_dict(self) -> dict:
        return {"updated": self.updated, "inserted": self.inserted, "unchanged": self.unchanged}


def _cell_matches_row(cell: GradeCell, row: GradeRow) -> bool:
    return cell.score == row.score and (cell.comment or None) == (row.comment or None)


class GradeReconciler:
    def __init__(self, store: GradeStore, course_id: str):
        self.store = store
        self.course_id = course_id

    async def plan(self, cells: Iterable[GradeCell]) -> SavePlan:
        """Classify non-blank cells against a fresh read of the course's rows."""
        try:
            persisted = await self.store.list_grade_rows(self.course_id)
        except StorageError as e:
            raise SaveFailure(f"Could not read persisted grades: {e.message}", cause=e)

        pending = [cell for cell in cells if not cell.is_blank()]
        split = partition(
            pending, persisted,
            key=lambda cell: cell.key,
            persisted_key=lambda row: row.key,
            unchanged=_cell_matches_row,
        )
        plan = SavePlan(unchanged=len(split.unchanged))
        for cell, row in split.updates:
            plan.updates.append({"id": row.id, "score": cell.score, "comment": cell.comment})
        for cell in split.inserts:
            plan.inserts.append({
                "student_id": cell.student_id,
                "topic_id": cell.topic_id,
                "course_id": self.course_id,
                "score": cell.score,
                "comment": cell.comment,
            })
        logger.info(
            "plan: course %s, %d updates, %d inserts, %d unchanged",
            self.course_id, len(plan.updates), len(plan.inserts), plan.unchanged,
        )
        return plan

    async def apply(self, plan: SavePlan) -> SaveResult:
        """Send the update batch, then the insert batch. Stops at the first failure."""
        updates_applied = False
        if plan.updates:
            try:
                await self.store.update_grade_rows(plan.updates)
            except StaleIdentifierError as e:
                logger.error("apply: update batch refused, stale ids %s", e.stale_ids)
                raise StaleIdentifierSaveFailure(e.stale_ids, cause=e)
            except StorageError as e:
                logger.error("apply: update batch failed: %s", e)
                raise SaveFailure(f"Update batch failed: {e.message}", cause=e)
            updates_applied = True

        if plan.inserts:
            try:
                created = await self.store.insert_grade_rows(plan.inserts)
            except StorageError as e:
                logger.error("apply: insert batch failed after %s: %s",
                             "updates were applied" if updates_applied else "no writes", e)
                raise SaveFailure(
                    f"Insert batch failed: {e.message}",
                    updates_applied=updates_applied, cause=e,
                )
            if len(created) != len(plan.inserts):
                raise SaveFailure(
                    f"Insert batch returned {len(created)} ids for {len(plan.inserts)} rows",
                    updates_applied=updates_applied, inserts_applied=True,
                )

        return SaveResult(
            updated=len(plan.updates),
            inserted=len(plan.inserts),
            unchanged=plan.unchanged,
        )

    async def save(self, cells: Iterable[GradeCell]) -> SaveResult:
        return await self.apply(await self.plan(cells))
