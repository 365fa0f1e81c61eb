from pydantic import BaseModel
from typing import Any, Dict, List, Optional, Union


class ScaleSettings(BaseModel):
    minimum: float = 1.0
    maximum: float = 10.0
    integer_only: bool = False


class CourseOut(BaseModel):
    id: str
    name: str
    code: Optional[str] = None


class SemesterOut(BaseModel):
    id: str
    course_id: str
    name: str
    start_date: Optional[str] = None
    end_date: Optional[str] = None


class TopicOut(BaseModel):
    id: str
    course_id: str
    name: str
    order: int
    semester_id: Optional[str] = None


class StudentOut(BaseModel):
    id: str
    name: str
    student_number: str


class SessionCreate(BaseModel):
    course_id: str
    semester_id: Optional[str] = None


class SemesterSelect(BaseModel):
    semester_id: str


class CellEdit(BaseModel):
    student_id: str
    topic_id: str
    score: Any = None     # raw input, normalized server-side
    comment: Optional[str] = None


class CellOut(BaseModel):
    student_id: str
    topic_id: str
    score: Optional[float] = None
    comment: Optional[str] = None
    band: Optional[str] = None
    average: Union[float, str]


class SessionOut(BaseModel):
    session_id: str
    course_id: str
    semester_id: Optional[str] = None
    topics: List[TopicOut] = []
    students: List[StudentOut] = []
    matrix: Dict[str, Dict[str, Dict[str, Any]]] = {}
    saving: bool = False


class SaveOut(BaseModel):
    status: str
    updated: int
    inserted: int
    unchanged: int
