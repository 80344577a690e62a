"""
Course-scoped content kinds.

Each kind names its collection, the flag that controls public visibility,
its natural ordering and which fields reference lectures. The scoped
repository and the content router are instantiated once per entry in `KINDS`.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import FrozenSet, Optional, Tuple, Type

from coursehub.storage.ports import ASC, OrderBy

from .schemas import (
    AssignmentIn,
    ExamIn,
    LectureIn,
    PrerequisiteIn,
    ResourceIn,
    TeachingAssistantIn,
    TutorialIn,
    _Payload,
)

PUBLISHED = "isPublished"
ACTIVE = "isActive"


@dataclass(frozen=True)
class ContentKind:
    name: str
    label: str
    slug: str
    collection: str
    schema: Type[_Payload]
    order_by: OrderBy
    visibility_field: Optional[str] = PUBLISHED
    lecture_refs: Tuple[str, ...] = ()
    soft_delete: bool = False
    public_filters: FrozenSet[str] = field(default_factory=frozenset)


LECTURE = ContentKind(
    name="lecture",
    label="Lecture",
    slug="lectures",
    collection="lectures",
    schema=LectureIn,
    order_by=(("lectureNumber", ASC),),
)

ASSIGNMENT = ContentKind(
    name="assignment",
    label="Assignment",
    slug="assignments",
    collection="assignments",
    schema=AssignmentIn,
    order_by=(("assignmentNumber", ASC),),
    lecture_refs=("relatedLectures",),
)

TUTORIAL = ContentKind(
    name="tutorial",
    label="Tutorial",
    slug="tutorials",
    collection="tutorials",
    schema=TutorialIn,
    order_by=(("tutorialNumber", ASC),),
    lecture_refs=("coveredInLectures",),
)

EXAM = ContentKind(
    name="exam",
    label="Exam",
    slug="exams",
    collection="exams",
    schema=ExamIn,
    order_by=(("date", ASC),),
    lecture_refs=("coveredLectures",),
)

# Prerequisites carry no publication flag; every one is public.
PREREQUISITE = ContentKind(
    name="prerequisite",
    label="Prerequisite",
    slug="prerequisites",
    collection="prerequisites",
    schema=PrerequisiteIn,
    order_by=(("order", ASC),),
    visibility_field=None,
)

RESOURCE = ContentKind(
    name="resource",
    label="Resource",
    slug="resources",
    collection="resources",
    schema=ResourceIn,
    order_by=(("category", ASC), ("order", ASC)),
    visibility_field=ACTIVE,
    soft_delete=True,
    public_filters=frozenset({"category"}),
)

TEACHING_ASSISTANT = ContentKind(
    name="teaching_assistant",
    label="Teaching assistant",
    slug="teaching-assistants",
    collection="teaching_assistants",
    schema=TeachingAssistantIn,
    order_by=(("order", ASC), ("lastName", ASC)),
    visibility_field=ACTIVE,
    soft_delete=True,
)

KINDS: Tuple[ContentKind, ...] = (
    LECTURE,
    ASSIGNMENT,
    TUTORIAL,
    EXAM,
    PREREQUISITE,
    RESOURCE,
    TEACHING_ASSISTANT,
)

__all__ = [
    "ContentKind",
    "KINDS",
    "LECTURE",
    "ASSIGNMENT",
    "TUTORIAL",
    "EXAM",
    "PREREQUISITE",
    "RESOURCE",
    "TEACHING_ASSISTANT",
    "PUBLISHED",
    "ACTIVE",
]
