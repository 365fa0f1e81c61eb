from fastapi import APIRouter, Depends, HTTPException
import logging
from typing import List

from dimensions import DimensionLoader
from errors import GradebookError
from routes.common import to_http
from schemas import CourseOut, SemesterOut, StudentOut, TopicOut
from storage import GradeStore, get_store

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/courses", response_model=List[CourseOut])
async def get_courses(store: GradeStore = Depends(get_store)):
    try:
        courses = await DimensionLoader(store).load_courses()
    except GradebookError as e:
        raise to_http(e)
    logger.info("GET /courses - %d courses", len(courses))
    return courses


async def _require_course(loader: DimensionLoader, course_id: str) -> None:
    if await loader.load_course(course_id) is None:
        logger.warning("unknown course %s", course_id)
        raise HTTPException(status_code=404, detail=f"Unknown course {course_id}")


@router.get("/courses/{course_id}/semesters", response_model=List[SemesterOut])
async def get_semesters(course_id: str, store: GradeStore = Depends(get_store)):
    loader = DimensionLoader(store)
    try:
        await _require_course(loader, course_id)
        semesters = await loader.load_semesters(course_id)
    except GradebookError as e:
        raise to_http(e)
    logger.info("GET /courses/%s/semesters - %d semesters", course_id, len(semesters))
    return semesters


@router.get("/courses/{course_id}/students", response_model=List[StudentOut])
async def get_students(course_id: str, store: GradeStore = Depends(get_store)):
    loader = DimensionLoader(store)
    try:
        await _require_course(loader, course_id)
        students = await loader.load_enrolled_students(course_id)
    except GradebookError as e:
        raise to_http(e)
    logger.info("GET /courses/%s/students - %d students", course_id, len(students))
    return students


@router.get("/semesters/{semester_id}/topics", response_model=List[TopicOut])
async def get_topics(semester_id: str, store: GradeStore = Depends(get_store)):
    try:
        topics = await DimensionLoader(store).load_topics(semester_id)
    except GradebookError as e:
        raise to_http(e)
    logger.info("GET /semesters/%s/topics - %d topics", semester_id, len(topics))
    return topics
