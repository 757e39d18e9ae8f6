"""
Campus Catalog - Test Configuration and Fixtures
"""
import os

import pytest
from faker import Faker
from fastapi.testclient import TestClient

# Set testing environment before settings are read
os.environ["JWT_SECRET_KEY"] = "test-jwt-secret-key-for-testing"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["HISTORICAL_REFERENCES_BLOCK_DELETE"] = "true"

from app.core import database
from app.core.security import get_password_hash, issue_admin_token, issue_student_token
from app.main import app
from app.services import course_service
from tests.fake_supabase import FakeSupabase

fake = Faker()

STUDENT_PASSWORD = "student123"
ADMIN_PASSWORD = "admin1234"


def course_fields(**overrides) -> dict:
    """Valid CourseCreate payload; override any field per test."""
    fields = {
        "course_name": "Data Structures",
        "course_code": "CS201",
        "description": "Core data structures",
        "duration": 4,
        "total_semesters": 8,
        "department": "Computer Science",
        "degree_type": "Undergraduate",
        "academic_year": "2024-25",
        "assigned_department": "CSE",
        "assigned_semester": 3,
        "semester_credits": 4,
        "max_students": 60,
        "status": "Active",
    }
    fields.update(overrides)
    return fields


def auth_headers(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def db(monkeypatch) -> FakeSupabase:
    """Fresh in-memory database installed as the Supabase client"""
    fake_db = FakeSupabase()
    monkeypatch.setattr(database, "_supabase_client", fake_db)
    return fake_db


@pytest.fixture
def client(db) -> TestClient:
    return TestClient(app)


def _seed_institute(db: FakeSupabase, code: str, status: str = "Active") -> dict:
    return db.seed(
        "institutes",
        name=f"{fake.company()} College",
        code=code,
        email=fake.unique.email().lower(),
        phone="9876543210",
        address={"street": fake.street_address(), "city": "Pune", "state": "MH", "pincode": "411001", "country": "India"},
        institute_type="College",
        status=status,
        admin_name=fake.name(),
        admin_email=fake.unique.email().lower(),
        admin_phone="9876543211",
        admin_password_hash=get_password_hash(ADMIN_PASSWORD),
        academic_year_start=7,
        max_semesters=8,
        grade_system="GPA",
    )


@pytest.fixture
def institute(db) -> dict:
    return _seed_institute(db, "DEMO01")


@pytest.fixture
def other_institute(db) -> dict:
    return _seed_institute(db, "OTHER02")


@pytest.fixture
def admin_headers(institute) -> dict:
    return auth_headers(issue_admin_token(institute))


@pytest.fixture
def other_admin_headers(other_institute) -> dict:
    return auth_headers(issue_admin_token(other_institute))


@pytest.fixture
def make_course(db, institute):
    """Create a course through the service so defaults and checks apply"""

    def _make(institute_id: str = None, **overrides) -> dict:
        return course_service.create_course(db, institute_id or institute["id"], course_fields(**overrides))

    return _make


@pytest.fixture
def make_student(db, institute):
    """Seed a student row directly"""

    def _make(institute_id: str = None, **overrides) -> dict:
        values = {
            "institute_id": institute_id or institute["id"],
            "roll_number": fake.unique.bothify("CS####"),
            "name": fake.name()[:50],
            "email": fake.unique.email().lower(),
            "phone": "9123456789",
            "course_id": None,
            "current_semester": 1,
            "admission_year": 2024,
            "graduation_year": 2028,
            "batch_name": "2024-2028",
            "academic_year": "2024-25",
            "academic_status": "Active",
            "is_verified": True,
            "password_hash": get_password_hash(STUDENT_PASSWORD),
        }
        values.update(overrides)
        return db.seed("students", **values)

    return _make


@pytest.fixture
def student_headers():
    def _headers(student: dict) -> dict:
        return auth_headers(issue_student_token(student))

    return _headers
