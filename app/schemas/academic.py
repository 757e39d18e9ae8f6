"""
Pydantic schemas for subjects and grades.
"""

from pydantic import BaseModel, Field, field_validator
from typing import List, Literal, Optional


# ---- Subject ----
class SubjectCreate(BaseModel):
    course_id: str
    subject_name: str = Field(min_length=1)
    subject_code: str = Field(min_length=1, max_length=20)
    semester: int = Field(ge=1, le=12)
    academic_year: str
    subject_type: Literal["Core", "Elective", "Practical", "Project", "Internship"]
    credits: int = Field(ge=0, le=10)
    theory_hours: int = Field(default=0, ge=0)
    practical_hours: int = Field(default=0, ge=0)
    description: Optional[str] = None
    prerequisites: List[str] = []

    @field_validator("subject_code")
    @classmethod
    def upper_code(cls, v: str) -> str:
        return v.strip().upper()


# ---- Grades ----
class GradeEntry(BaseModel):
    student_id: str
    marks: float = Field(ge=0)
    comments: Optional[str] = None
    grade_type: str = "Final"


class GradeUpload(BaseModel):
    course_id: str
    grades: List[GradeEntry] = Field(min_length=1)
