"""View data for the two gradebook screens.

``build_admin_grid`` feeds the editable instructor grid, ``build_student_report``
the read-only per-student view where comments show up on hover.
"""
from typing import Dict, List, Optional

import grade_stats
from dimensions import DimensionLoader
from errors import NotFoundError
from models import GradeRow, ScoreScale, SemesterTopics, Student, Topic
from session import GradebookSession
from storage import GradeStore

UNCATEGORIZED = "Uncategorized"


def _score_view(score: Optional[float], comment: Optional[str], scale: ScoreScale) -> dict:
    view = {"score": score, "comment": comment, "band": None, "color": None}
    if score is not None:
        band = grade_stats.severity_band(score, scale)
        view["band"] = band.value
        view["color"] = grade_stats.band_color(band)
    return view


def matches_search(student: Student, search: str) -> bool:
    text = search.strip().lower()
    if not text:
        return True
    return text in student.name.lower() or text in student.student_number.lower()


def build_admin_grid(session: GradebookSession, search: str = "") -> dict:
    students = [s for s in session.students if matches_search(s, search)]
    topic_ids = session.topic_ids
    student_ids = [s.id for s in students]

    rows = []
    for student in students:
        cells = {}
        for topic in session.topics:
            cell = session.matrix.get(student.id, topic.id)
            if cell is None:
                cells[topic.id] = _score_view(None, None, session.scale)
            else:
                cells[topic.id] = _score_view(cell.score, cell.comment, session.scale)
        rows.append({
            "student": {"id": student.id, "name": student.name,
                        "student_number": student.student_number},
            "cells": cells,
            "average": session.average_for(student.id),
        })

    return {
        "course_id": session.course_id,
        "semester_id": session.semester_id,
        "scale": {"minimum": session.scale.minimum, "maximum": session.scale.maximum,
                  "integer_only": session.scale.integer_only},
        "topics": [{"id": t.id, "name": t.name, "order": t.order} for t in session.topics],
        "rows": rows,
        "topic_averages": {
            t: grade_stats.topic_average(session.matrix, t, student_ids) for t in topic_ids
        },
        "class_average": grade_stats.class_average(session.matrix, student_ids, topic_ids),
        "saving": session.is_saving,
    }


def build_student_report(student: Student, semesters: List[SemesterTopics],
                         unassigned_topics: List[Topic], rows: List[GradeRow],
                         scale: ScoreScale) -> dict:
    by_topic: Dict[str, GradeRow] = {}
    for row in rows:
        if row.student_id == student.id:
            by_topic.setdefault(row.topic_id, row)

    def topic_entries(topics: List[Topic]) -> List[dict]:
        entries = []
        for topic in topics:
            row = by_topic.get(topic.id)
            entry = {"topic_id": topic.id, "topic_name": topic.name}
            entry.update(_score_view(row.score if row else None,
                                     row.comment if row else None, scale))
            entries.append(entry)
        return entries

    groups = []
    notes = []
    for st in semesters:
        groups.append({
            "semester_id": st.semester.id,
            "semester_name": st.semester.name,
            "topics": topic_entries(st.topics),
            "average": grade_stats.average_of(
                by_topic[t].score for t in st.topic_ids() if t in by_topic),
        })
        notes.extend(_notes(st.topics, by_topic, st.semester.name))

    uncategorized = topic_entries(unassigned_topics)
    notes.extend(_notes(unassigned_topics, by_topic, UNCATEGORIZED))

    return {
        "student": {"id": student.id, "name": student.name,
                    "student_number": student.student_number},
        "semesters": groups,
        "uncategorized": uncategorized,
        "overall_average": grade_stats.average_of(row.score for row in by_topic.values()),
        "notes": notes,
    }


def _notes(topics: List[Topic], by_topic: Dict[str, GradeRow], semester_name: str) -> List[dict]:
    return [
        {"topic_id": t.id, "topic_name": t.name, "semester_name": semester_name,
         "comment": by_topic[t.id].comment}
        for t in topics
        if t.id in by_topic and by_topic[t.id].comment
    ]


async def load_student_report(store: GradeStore, course_id: str, student_id: str,
                              scale: ScoreScale) -> dict:
    loader = DimensionLoader(store)
    students = await loader.load_enrolled_students(course_id)
    student = next((s for s in students if s.id == student_id), None)
    if student is None:
        raise NotFoundError(f"Student {student_id} is not enrolled in course {course_id}",
                            {"student_id": student_id})
    semesters = [
        SemesterTopics(semester=s, topics=await loader.load_topics(s.id))
        for s in await loader.load_semesters(course_id)
    ]
    unassigned = await loader.load_unassigned_topics(course_id)
    rows = await loader.load_grade_rows(course_id)
    return build_student_report(student, semesters, unassigned, rows, scale)
