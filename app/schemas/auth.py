"""
Pydantic schemas for institute and student authentication.
"""

from datetime import date
from pydantic import BaseModel, Field, field_validator
from typing import Literal, Optional


EMAIL_PATTERN = r"^[^\s@]+@[^\s@]+\.[^\s@]+$"
PHONE_PATTERN = r"^[0-9]{10}$"

InstituteType = Literal["School", "College", "University", "Coaching Institute", "Technical Institute"]


class Address(BaseModel):
    street: str
    city: str
    state: str
    pincode: str = Field(pattern=r"^[0-9]{6}$")
    country: str = "India"


class Guardian(BaseModel):
    name: str
    relation: Literal["Father", "Mother", "Guardian"]
    phone: str = Field(pattern=PHONE_PATTERN)
    email: Optional[str] = Field(default=None, pattern=EMAIL_PATTERN)


# ---- Institute ----
class InstituteRegister(BaseModel):
    institute_name: str = Field(min_length=1, max_length=100)
    institute_code: str = Field(min_length=3, max_length=10, pattern=r"^[A-Za-z0-9]+$")
    email: str = Field(pattern=EMAIL_PATTERN)
    phone: str = Field(pattern=PHONE_PATTERN)
    address: Address
    institute_type: InstituteType
    admin_name: str
    admin_email: str = Field(pattern=EMAIL_PATTERN)
    admin_phone: str = Field(pattern=PHONE_PATTERN)
    password: str = Field(min_length=6)

    @field_validator("institute_code")
    @classmethod
    def upper_code(cls, v: str) -> str:
        return v.upper()

    @field_validator("email", "admin_email")
    @classmethod
    def lower_email(cls, v: str) -> str:
        return v.strip().lower()


class InstituteLogin(BaseModel):
    institute_code: str
    email: str
    password: str


# ---- Student ----
class StudentRegister(BaseModel):
    institute_code: str
    roll_number: str = Field(min_length=1)
    name: str = Field(min_length=1, max_length=50)
    email: str = Field(pattern=EMAIL_PATTERN)
    phone: str = Field(pattern=PHONE_PATTERN)
    course_id: str
    current_semester: int = Field(default=1, ge=1, le=8)
    admission_year: Optional[int] = None
    academic_year: Optional[str] = None
    date_of_birth: date
    gender: Literal["Male", "Female", "Other"]
    address: Address
    guardian: Guardian
    password: str = Field(min_length=6)

    @field_validator("email")
    @classmethod
    def lower_email(cls, v: str) -> str:
        return v.strip().lower()

    @field_validator("roll_number", "name")
    @classmethod
    def strip(cls, v: str) -> str:
        return v.strip()


class StudentLogin(BaseModel):
    institute_code: str
    roll_number: str
    password: str
