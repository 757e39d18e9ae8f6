"""
Pydantic schemas for course management, semester assignments and bulk updates.
"""

from pydantic import BaseModel, Field, field_validator
from typing import Any, List, Literal, Optional


DegreeType = Literal["Undergraduate", "Postgraduate", "Diploma", "Certificate"]
CourseStatus = Literal["Active", "Inactive", "Draft"]

COURSE_CODE_PATTERN = r"^[A-Za-z0-9]+$"


def _strip_required(value: str) -> str:
    value = value.strip()
    if not value:
        raise ValueError("must not be empty")
    return value


class CourseCreate(BaseModel):
    course_name: str = Field(min_length=3, max_length=100)
    course_code: str = Field(min_length=2, max_length=20, pattern=COURSE_CODE_PATTERN)
    description: Optional[str] = None
    duration: int = Field(ge=1, le=12)
    total_semesters: int = Field(ge=1, le=12)
    department: str
    degree_type: DegreeType
    academic_year: str
    # Teaching slot: which department teaches it, in which semester
    assigned_department: str
    assigned_semester: int = Field(ge=1, le=8)
    semester_credits: int = Field(default=3, ge=1, le=8)
    max_students: int = Field(default=0, ge=0)
    status: CourseStatus = "Active"

    @field_validator("course_code")
    @classmethod
    def upper_code(cls, v: str) -> str:
        return v.strip().upper()

    @field_validator("course_name", "department", "academic_year", "assigned_department")
    @classmethod
    def not_blank(cls, v: str) -> str:
        return _strip_required(v)


class CourseUpdate(BaseModel):
    course_name: Optional[str] = Field(default=None, min_length=3, max_length=100)
    course_code: Optional[str] = Field(default=None, min_length=2, max_length=20, pattern=COURSE_CODE_PATTERN)
    description: Optional[str] = None
    duration: Optional[int] = Field(default=None, ge=1, le=12)
    total_semesters: Optional[int] = Field(default=None, ge=1, le=12)
    department: Optional[str] = None
    degree_type: Optional[DegreeType] = None
    academic_year: Optional[str] = None
    assigned_department: Optional[str] = None
    assigned_semester: Optional[int] = Field(default=None, ge=1, le=8)
    semester_credits: Optional[int] = Field(default=None, ge=1, le=8)
    max_students: Optional[int] = Field(default=None, ge=0)
    status: Optional[CourseStatus] = None

    @field_validator("course_code")
    @classmethod
    def upper_code(cls, v: Optional[str]) -> Optional[str]:
        return v.strip().upper() if v is not None else v

    @field_validator("course_name", "department", "academic_year", "assigned_department")
    @classmethod
    def not_blank(cls, v: Optional[str]) -> Optional[str]:
        return _strip_required(v) if v is not None else v


class SemesterAssignmentCheck(BaseModel):
    assigned_department: str
    assigned_semester: int = Field(ge=1, le=8)
    exclude_course_id: Optional[str] = None

    @field_validator("assigned_department")
    @classmethod
    def not_blank(cls, v: str) -> str:
        return _strip_required(v)


class BulkCourseUpdate(BaseModel):
    course_ids: List[str]
    action: str
    value: Optional[Any] = None
