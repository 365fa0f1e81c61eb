from fastapi import APIRouter, Depends, HTTPException
import dataclasses
import logging

from dimensions import DimensionLoader
from errors import GradebookError
from presentation import build_admin_grid, load_student_report
from routes.common import to_http
from schemas import CellEdit, CellOut, SaveOut, SemesterSelect, SessionCreate, SessionOut
from session import GradebookSession, SessionRegistry
from settings import load_scale
from storage import GradeStore, get_store

logger = logging.getLogger(__name__)

router = APIRouter()

registry = SessionRegistry()


def _session_out(session_id: str, session: GradebookSession) -> SessionOut:
    return SessionOut(
        session_id=session_id,
        course_id=session.course_id,
        semester_id=session.semester_id,
        topics=[dataclasses.asdict(t) for t in session.topics],
        students=[dataclasses.asdict(s) for s in session.students],
        matrix=session.snapshot(),
        saving=session.is_saving,
    )


def _get_session(session_id: str) -> GradebookSession:
    try:
        return registry.get(session_id)
    except GradebookError as e:
        logger.warning("session lookup failed: %s", e)
        raise to_http(e)


@router.post("/sessions", response_model=SessionOut)
async def open_session(body: SessionCreate, store: GradeStore = Depends(get_store)):
    logger.info("POST /sessions - course: %s, semester: %s", body.course_id, body.semester_id)
    try:
        loader = DimensionLoader(store)
        if await loader.load_course(body.course_id) is None:
            raise HTTPException(status_code=404, detail=f"Unknown course {body.course_id}")
        session = GradebookSession(store, body.course_id, load_scale())
        semester_id = body.semester_id
        if semester_id is None:
            semesters = await loader.load_semesters(body.course_id)
            semester_id = semesters[0].id if semesters else None
        if semester_id is not None:
            await session.select_semester(semester_id)
    except GradebookError as e:
        logger.warning("POST /sessions - failed: %s", e)
        raise to_http(e)
    session_id = registry.open(session)
    logger.info("POST /sessions - opened %s (%d open)", session_id, len(registry))
    return _session_out(session_id, session)


@router.get("/sessions/{session_id}", response_model=SessionOut)
async def get_session(session_id: str):
    return _session_out(session_id, _get_session(session_id))


@router.put("/sessions/{session_id}/semester", response_model=SessionOut)
async def select_semester(session_id: str, body: SemesterSelect):
    session = _get_session(session_id)
    logger.info("PUT /sessions/%s/semester - %s", session_id, body.semester_id)
    try:
        await session.select_semester(body.semester_id)
    except GradebookError as e:
        logger.warning("PUT /sessions/%s/semester - failed: %s", session_id, e)
        raise to_http(e)
    return _session_out(session_id, session)


@router.put("/sessions/{session_id}/cells", response_model=CellOut)
async def edit_cell(session_id: str, body: CellEdit):
    session = _get_session(session_id)
    provided = body.model_fields_set
    logger.info("PUT /sessions/%s/cells - student: %s, topic: %s, fields: %s",
                session_id, body.student_id, body.topic_id, sorted(provided))
    try:
        if "score" in provided:
            session.edit_cell(body.student_id, body.topic_id, body.score)
        if "comment" in provided:
            session.edit_comment(body.student_id, body.topic_id, body.comment)
    except GradebookError as e:
        logger.warning("PUT /sessions/%s/cells - rejected: %s", session_id, e)
        raise to_http(e)

    cell = session.matrix.get(body.student_id, body.topic_id)
    score = cell.score if cell else None
    return CellOut(
        student_id=body.student_id,
        topic_id=body.topic_id,
        score=score,
        comment=cell.comment if cell else None,
        band=session.severity_band(score).value if score is not None else None,
        average=session.average_for(body.student_id),
    )


@router.get("/sessions/{session_id}/grid")
async def get_grid(session_id: str, search: str = ""):
    return build_admin_grid(_get_session(session_id), search)


@router.get("/sessions/{session_id}/averages/{student_id}")
async def get_average(session_id: str, student_id: str):
    session = _get_session(session_id)
    if student_id not in session.student_ids:
        raise HTTPException(status_code=404, detail=f"Unknown student {student_id}")
    return {"student_id": student_id, "average": session.average_for(student_id)}


@router.post("/sessions/{session_id}/save", response_model=SaveOut)
async def save_session(session_id: str):
    session = _get_session(session_id)
    logger.info("POST /sessions/%s/save - %d cells in matrix", session_id, len(session.matrix))
    try:
        result = await session.save()
    except GradebookError as e:
        logger.error("POST /sessions/%s/save - failed: %s", session_id, e)
        raise to_http(e)
    return SaveOut(status="ok", **result.as_dict())


@router.delete("/sessions/{session_id}")
async def close_session(session_id: str):
    try:
        registry.close(session_id)
    except GradebookError as e:
        raise to_http(e)
    logger.info("DELETE /sessions/%s - %d open", session_id, len(registry))
    return {"status": "ok"}


@router.get("/courses/{course_id}/students/{student_id}/report")
async def get_student_report(course_id: str, student_id: str,
                             store: GradeStore = Depends(get_store)):
    try:
        report = await load_student_report(store, course_id, student_id, load_scale())
    except GradebookError as e:
        logger.warning("GET report %s/%s - failed: %s", course_id, student_id, e)
        raise to_http(e)
    logger.info("GET /courses/%s/students/%s/report - %d semesters",
                course_id, student_id, len(report["semesters"]))
    return report
