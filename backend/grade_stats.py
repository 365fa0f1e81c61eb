"""Averages and score bands derived from the grade matrix on demand."""
import math
from typing import Iterable, Optional, Union

from grade_matrix import GradeMatrix
from models import ScoreScale, SeverityBand

NO_DATA = "-"

# Lower bound of each band as a fraction of the scale width, best band first.
# On the 1-10 scale whole scores split at 9 / 6 / 3.
BAND_THRESHOLDS = (
    (SeverityBand.EXCELLENT, 0.85),
    (SeverityBand.GOOD, 0.5),
    (SeverityBand.FAIR, 0.2),
)

BAND_COLORS = {
    SeverityBand.EXCELLENT: "#4ade80",
    SeverityBand.GOOD: "#86efac",
    SeverityBand.FAIR: "#fdba74",
    SeverityBand.POOR: "#f87171",
}

Average = Union[float, str]


def round_for_display(value: float) -> float:
    """One decimal place, halves rounded up (7.25 -> 7.3)."""
    return math.floor(value * 10 + 0.5) / 10


def average_of(scores: Iterable[Optional[float]]) -> Average:
    present = [s for s in scores if s is not None]
    if not present:
        return NO_DATA
    return round_for_display(sum(present) / len(present))


def average_for(matrix: GradeMatrix, student_id: str,
                topic_ids: Optional[Iterable[str]] = None) -> Average:
    """Mean of the student's present scores; absent cells do not count as zero."""
    return average_of(matrix.student_scores(student_id, topic_ids))


def topic_average(matrix: GradeMatrix, topic_id: str,
                  student_ids: Optional[Iterable[str]] = None) -> Average:
    return average_of(matrix.topic_scores(topic_id, student_ids))


def class_average(matrix: GradeMatrix, student_ids: Optional[Iterable[str]] = None,
                  topic_ids: Optional[Iterable[str]] = None) -> Average:
    wanted_students = set(student_ids) if student_ids is not None else None
    wanted_topics = set(topic_ids) if topic_ids is not None else None
    scores = [
        cell.score for cell in matrix.all_cells()
        if cell.score is not None
        and (wanted_students is None or cell.student_id in wanted_students)
        and (wanted_topics is None or cell.topic_id in wanted_topics)
    ]
    return average_of(scores)


def severity_band(score: float, scale: ScoreScale) -> SeverityBand:
    if scale.width <= 0:
        return SeverityBand.EXCELLENT
    position = (scale.clamp(score) - scale.minimum) / scale.width
    for band, lower in BAND_THRESHOLDS:
        if position >= lower:
            return band
    return SeverityBand.POOR


def band_color(band: SeverityBand) -> str:
    return BAND_COLORS[band]
