"""Data models for the gradebook."""
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional


@dataclass
class Course:
    id: str
    name: str
    code: Optional[str] = None


@dataclass
class Student:
    id: str
    name: str
    student_number: str

    def display_name(self) -> str:
        return f"{self.name} (#{self.student_number})"


@dataclass
class Semester:
    id: str
    course_id: str
    name: str
    start_date: Optional[str] = None   # ISO date, used for ordering only
    end_date: Optional[str] = None


@dataclass
class Topic:
    id: str
    course_id: str
    name: str
    order: int = 0                      # column display order
    semester_id: Optional[str] = None   # None = uncategorized topic


@dataclass
class GradeRow:
    """One persisted grade record as the store returns it."""
    id: str
    student_id: str
    topic_id: str
    course_id: str
    score: Optional[float] = None
    comment: Optional[str] = None

    @classmethod
    def from_dict(cls, data: dict) -> "GradeRow":
        score = data.get("score")
        return cls(
            id=str(data["id"]),
            student_id=str(data["student_id"]),
            topic_id=str(data["topic_id"]),
            course_id=str(data.get("course_id", "")),
            score=float(score) if score is not None else None,
            comment=data.get("comment") or None,
        )

    @property
    def key(self) -> tuple:
        return (self.student_id, self.topic_id)


@dataclass
class GradeCell:
    """Editable score and comment for one (student, topic) pair."""
    student_id: str
    topic_id: str
    score: Optional[float] = None
    comment: Optional[str] = None
    persisted_id: Optional[str] = None  # id of the backing row, None until first saved

    @property
    def key(self) -> tuple:
        return (self.student_id, self.topic_id)

    def is_blank(self) -> bool:
        """True when there is nothing worth saving in this cell."""
        return self.score is None and not self.comment

    def as_dict(self) -> dict:
        return {
            "score": self.score,
            "comment": self.comment,
            "persisted_id": self.persisted_id,
        }


@dataclass
class ScoreScale:
    minimum: float = 1.0
    maximum: float = 10.0
    integer_only: bool = False   # round on every write when True

    @property
    def width(self) -> float:
        return self.maximum - self.minimum

    def clamp(self, value: float) -> float:
        return max(self.minimum, min(self.maximum, value))


class SeverityBand(str, Enum):
    EXCELLENT = "excellent"
    GOOD = "good"
    FAIR = "fair"
    POOR = "poor"


@dataclass
class SemesterTopics:
    """A semester together with its ordered topics (column axis)."""
    semester: Semester
    topics: List[Topic] = field(default_factory=list)

    def topic_ids(self) -> List[str]:
        return [t.id for t in self.topics]
