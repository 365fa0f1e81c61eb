import asyncio

import pytest

from dimensions import DimensionLoader
from errors import LoadFailure


def test_courses_sorted_by_name(store):
    courses = asyncio.run(DimensionLoader(store).load_courses())
    assert [c.name for c in courses] == ["Algebra", "biology"]


def test_topics_sorted_by_order(store):
    topics = asyncio.run(DimensionLoader(store).load_topics("SEM1"))
    assert [t.id for t in topics] == ["T1", "T2"]


def test_unassigned_topics(store):
    topics = asyncio.run(DimensionLoader(store).load_unassigned_topics("C1"))
    assert [t.id for t in topics] == ["T9"]


def test_enrolled_students_sorted_case_insensitively(store):
    students = asyncio.run(DimensionLoader(store).load_enrolled_students("C1"))
    assert [s.name for s in students] == ["Alice", "bob"]


def test_empty_topic_filter_skips_the_store(store):
    store.fail_reads = True
    assert asyncio.run(DimensionLoader(store).load_grade_rows("C1", [])) == []


def test_storage_errors_become_load_failures(store):
    store.fail_reads = True
    with pytest.raises(LoadFailure) as exc:
        asyncio.run(DimensionLoader(store).load_semesters("C1"))
    assert "semesters of course C1" in exc.value.message
