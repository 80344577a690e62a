"""
Request schemas for course content.

Clients speak camelCase JSON (`lectureNumber`, `isPublished`); models use
snake_case attributes with camelCase aliases and dump back to the wire shape
with `to_document()`. Unknown keys are ignored so clients cannot smuggle
server-owned fields (`id`, `createdAt`) into a document. Admin forms post `""`
for untouched number and date inputs; those arrive as `None`.
"""
from __future__ import annotations

import datetime as dt
from typing import Any, List, Literal, Optional, get_args
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel
from pydantic.functional_validators import field_validator


def _uuid_str(value: str) -> str:
    try:
        return str(UUID(str(value)))
    except (ValueError, TypeError):
        raise ValueError("must be a valid id") from None


def _blank_means_none(annotation: Any) -> bool:
    args = get_args(annotation)
    return type(None) in args and str not in args


class _Payload(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        str_strip_whitespace=True,
        extra="ignore",
    )

    @model_validator(mode="before")
    @classmethod
    def _blank_to_none(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        blanks = {}
        for name, info in cls.model_fields.items():
            if not _blank_means_none(info.annotation):
                continue
            for key in {info.alias or name, name}:
                value = data.get(key)
                if isinstance(value, str) and not value.strip():
                    blanks[key] = None
        return {**data, **blanks} if blanks else data

    def to_document(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)


class _CourseScoped(_Payload):
    course_id: str

    @field_validator("course_id")
    @classmethod
    def _course_id_uuid(cls, v: str) -> str:
        return _uuid_str(v)


def _lecture_ids(values: List[str]) -> List[str]:
    return [_uuid_str(v) for v in values]


# --- nested value objects -------------------------------------------------------

class Link(_Payload):
    title: str = ""
    url: str = ""


class LectureVideo(_Payload):
    title: str = ""
    url: str = ""
    platform: str = "YouTube"


class ReadingMaterial(_Payload):
    title: str = ""
    author: str = ""
    year: Optional[int] = None
    url: str = ""


class RubricItem(_Payload):
    criteria: str = ""
    points: Optional[float] = Field(default=None, ge=0)
    description: str = ""


class TutorialVideo(_Payload):
    title: str = ""
    url: str = ""
    duration: str = ""


class PracticeProblem(_Payload):
    title: str = ""
    url: str = ""
    solutions_url: str = ""


class ExamTime(_Payload):
    start: str = ""
    end: str = ""


class PrerequisiteResource(_Payload):
    title: str = ""
    url: str = ""
    type: Literal["Video", "Article", "Tutorial", "Book"] = "Video"


class Instructor(_Payload):
    name: str = ""
    email: str = ""
    office: str = ""
    office_hours: str = ""


# --- content kinds ----------------------------------------------------------------

class CourseIn(_Payload):
    course_code: str = Field(..., min_length=1, max_length=32)
    course_title: str = Field(..., min_length=1, max_length=200)
    description: str = ""
    semester: str = ""
    year: Optional[int] = Field(default=None, ge=1900, le=2100)
    credits: Optional[int] = Field(default=None, ge=0)
    level: Literal["Undergraduate", "Graduate", "PhD"] = "Undergraduate"
    max_students: Optional[int] = Field(default=None, ge=0)
    enrollment_status: Literal["Open", "Closed", "Waitlist"] = "Open"
    lecture_slot: str = ""
    lecture_location: str = ""
    instructor: Instructor = Field(default_factory=Instructor)
    is_active: bool = True

    @field_validator("course_code")
    @classmethod
    def _upper_code(cls, v: str) -> str:
        return v.upper()


class LectureIn(_CourseScoped):
    lecture_number: int = Field(..., ge=1)
    title: str = Field(..., min_length=1, max_length=200)
    description: str = ""
    date: Optional[dt.date] = None
    topics_covered: List[str] = Field(default_factory=list)
    slides: List[Link] = Field(default_factory=list)
    videos: List[LectureVideo] = Field(default_factory=list)
    reading_materials: List[ReadingMaterial] = Field(default_factory=list)
    is_published: bool = False


class AssignmentIn(_CourseScoped):
    assignment_number: int = Field(..., ge=1)
    title: str = Field(..., min_length=1, max_length=200)
    description: str = Field(..., min_length=1)
    learning_objectives: List[str] = Field(default_factory=list)
    requirements: List[str] = Field(default_factory=list)
    related_lectures: List[str] = Field(default_factory=list)
    release_date: dt.date
    due_date: dt.date
    total_points: float = Field(..., ge=0)
    status: Literal["Upcoming", "Active", "Graded", "Past Due"] = "Upcoming"
    submission_format: str = ""
    rubric: List[RubricItem] = Field(default_factory=list)
    is_published: bool = False

    @field_validator("related_lectures")
    @classmethod
    def _related_ids(cls, v: List[str]) -> List[str]:
        return _lecture_ids(v)


class TutorialIn(_CourseScoped):
    tutorial_number: int = Field(..., ge=1)
    title: str = Field(..., min_length=1, max_length=200)
    brief_summary: str = ""
    description: str = ""
    learning_objectives: List[str] = Field(default_factory=list)
    topics_covered: List[str] = Field(default_factory=list)
    covered_in_lectures: List[str] = Field(default_factory=list)
    why_it_matters: str = ""
    videos: List[TutorialVideo] = Field(default_factory=list)
    slides: List[Link] = Field(default_factory=list)
    practice_problems: List[PracticeProblem] = Field(default_factory=list)
    is_published: bool = False

    @field_validator("covered_in_lectures")
    @classmethod
    def _covered_ids(cls, v: List[str]) -> List[str]:
        return _lecture_ids(v)


class ExamIn(_CourseScoped):
    exam_type: Literal["Midterm", "End-Semester", "Quiz", "Final"]
    title: str = Field(..., min_length=1, max_length=200)
    date: dt.date
    time: ExamTime = Field(default_factory=ExamTime)
    location: str = Field(..., min_length=1)
    duration: str = ""
    total_marks: float = Field(..., ge=0)
    format: str = ""
    syllabus: List[str] = Field(default_factory=list)
    covered_lectures: List[str] = Field(default_factory=list)
    guidelines: List[str] = Field(default_factory=list)
    preparation_resources: List[Link] = Field(default_factory=list)
    is_published: bool = False

    @field_validator("covered_lectures")
    @classmethod
    def _covered_ids(cls, v: List[str]) -> List[str]:
        return _lecture_ids(v)


class PrerequisiteIn(_CourseScoped):
    title: str = Field(..., min_length=1, max_length=200)
    course_code: str = ""
    description: str = ""
    level: Literal["Beginner", "Intermediate", "Advanced"] = "Beginner"
    estimated_duration: str = ""
    resources: List[PrerequisiteResource] = Field(default_factory=list)
    order: int = 0


class ResourceIn(_CourseScoped):
    title: str = Field(..., min_length=1, max_length=200)
    description: str = ""
    url: str = ""
    category: str = Field(default="Books", min_length=1, max_length=64)
    author: str = ""
    publisher: str = ""
    year: Optional[int] = None
    tags: List[str] = Field(default_factory=list)
    is_premium: bool = False
    icon: str = ""
    order: int = 0
    is_active: bool = True

    @field_validator("tags")
    @classmethod
    def _drop_blank_tags(cls, v: List[str]) -> List[str]:
        return [t.strip() for t in v if t and t.strip()]


class TeachingAssistantIn(_CourseScoped):
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    email: str = Field(..., pattern=r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
    lab: str = ""
    office_hours: str = ""
    available_days: List[str] = Field(default_factory=list)
    responsibilities: List[str] = Field(default_factory=list)
    photo_url: str = ""
    contact_preference: Literal["Email", "Office Hours", "Slack"] = "Email"
    order: int = 0
    is_active: bool = True

    @field_validator("email")
    @classmethod
    def _lower_email(cls, v: str) -> str:
        return v.lower()


# --- feedback ---------------------------------------------------------------------

FEEDBACK_CATEGORIES = (
    "General",
    "Content",
    "Instructor",
    "Assignments",
    "Exams",
    "Resources",
    "Technical Issue",
    "Suggestion",
)

FeedbackCategory = Literal[
    "General",
    "Content",
    "Instructor",
    "Assignments",
    "Exams",
    "Resources",
    "Technical Issue",
    "Suggestion",
]


class FeedbackIn(_Payload):
    course: Optional[str] = None
    course_name: Optional[str] = Field(default=None, max_length=200)
    rating: Optional[int] = Field(default=None, ge=1, le=5)
    category: FeedbackCategory = "General"
    message: str = Field(..., min_length=10, max_length=2000)

    @field_validator("course", mode="before")
    @classmethod
    def _course_uuid(cls, v):
        if v in (None, ""):
            return None
        return _uuid_str(v)


class FeedbackNote(_Payload):
    admin_note: str = Field(default="", max_length=2000)


__all__ = [
    "CourseIn",
    "LectureIn",
    "AssignmentIn",
    "TutorialIn",
    "ExamIn",
    "PrerequisiteIn",
    "ResourceIn",
    "TeachingAssistantIn",
    "FeedbackIn",
    "FeedbackNote",
    "FEEDBACK_CATEGORIES",
]
