"""Normalization of single-cell edits before they reach the grade matrix.

Malformed input is never an error here: text that is not a number becomes
"no entry" and numbers outside the scale are pulled back to its bounds.
"""
import math
import numbers
from decimal import Decimal
from typing import Any, Optional

from grade_matrix import GradeMatrix
from models import ScoreScale


def coerce_score(raw: Any) -> Optional[float]:
    """Turn raw user input into a float, or None when it is not a number."""
    if raw is None or isinstance(raw, bool):
        return None
    if isinstance(raw, (numbers.Real, Decimal)):
        try:
            value = float(raw)
        except OverflowError:
            # Too large for a float; clamping pulls it back to a bound
            value = math.inf if raw > 0 else -math.inf
        except ValueError:
            return None
    elif isinstance(raw, str):
        # Accept decimal comma ("7,5" -> "7.5")
        text = raw.strip().replace(",", ".")
        if not text:
            return None
        try:
            value = float(text)
        except ValueError:
            return None
    else:
        return None
    if math.isnan(value):
        return None
    return value


def normalize_score(raw: Any, scale: ScoreScale) -> Optional[float]:
    value = coerce_score(raw)
    if value is None:
        return None
    value = scale.clamp(value)
    if scale.integer_only:
        value = float(math.floor(value + 0.5))   # halves up, like display rounding
    return value


def normalize_comment(raw: Any) -> Optional[str]:
    if raw is None:
        return None
    text = str(raw).strip()
    return text or None


class CellEditor:
    def __init__(self, matrix: GradeMatrix, scale: ScoreScale):
        self.matrix = matrix
        self.scale = scale

    def edit_cell(self, student_id: str, topic_id: str, raw: Any) -> Optional[float]:
        """Store the normalized score and return it (None = cell has no score)."""
        score = normalize_score(raw, self.scale)
        self.matrix.set(student_id, topic_id, score)
        return score

    def edit_comment(self, student_id: str, topic_id: str, raw: Any) -> Optional[str]:
        comment = normalize_comment(raw)
        self.matrix.set_comment(student_id, topic_id, comment)
        return comment
