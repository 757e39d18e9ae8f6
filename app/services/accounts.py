"""
Institute and student accounts: registration, login, profiles.
"""

from datetime import datetime, timezone

from postgrest.exceptions import APIError
from supabase import Client

from app.core.database import violated_constraint
from app.core.exceptions import Duplicate, Forbidden, NotFound, Unauthenticated, ValidationFailed
from app.core.logging_config import get_logger
from app.core.security import (
    get_password_hash,
    issue_admin_token,
    issue_student_token,
    verify_password,
)
from app.core.config import settings
from app.utils.serializers import public_row

logger = get_logger(__name__)

INSTITUTE_INDEX_FIELDS = {
    "institutes_code_key": "institute_code",
    "institutes_email_key": "email",
}
STUDENT_INDEX_FIELDS = {
    "students_institute_roll_key": "roll_number",
    "students_institute_email_key": "email",
}


def _token_payload(token: str) -> dict:
    return {"token": token, "expires_in": settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60}


def _exists(db: Client, table: str, **filters) -> bool:
    query = db.table(table).select("id")
    for column, value in filters.items():
        query = query.eq(column, value)
    return bool(query.limit(1).execute().data)


# ═══════════════════════════════════════════════════════════
# INSTITUTES
# ═══════════════════════════════════════════════════════════

def register_institute(db: Client, body: dict) -> dict:
    code = body["institute_code"].upper()
    email = body["email"].lower()

    if _exists(db, "institutes", code=code) or _exists(db, "institutes", email=email):
        raise Duplicate("Institute with this code or email already exists.")

    record = {
        "name": body["institute_name"],
        "code": code,
        "email": email,
        "phone": body["phone"],
        "address": body["address"],
        "institute_type": body["institute_type"],
        "status": "Active",
        "admin_name": body["admin_name"],
        "admin_email": body["admin_email"].lower(),
        "admin_phone": body["admin_phone"],
        "admin_password_hash": get_password_hash(body["password"]),
        "academic_year_start": 7,
        "max_semesters": 8,
        "grade_system": "GPA",
    }
    try:
        result = db.table("institutes").insert(record).execute()
    except APIError as exc:
        constraint = violated_constraint(exc)
        if constraint is None:
            raise
        field = INSTITUTE_INDEX_FIELDS.get(constraint)
        raise Duplicate(f"Institute with this {field or 'code or email'} already exists.", field) from exc

    institute = result.data[0]
    logger.info(f"New institute registered: {institute['name']} ({institute['code']})")
    return {"institute": public_row(institute), **_token_payload(issue_admin_token(institute))}


def login_institute(db: Client, institute_code: str, email: str, password: str) -> dict:
    result = (
        db.table("institutes")
        .select("*")
        .eq("code", institute_code.strip().upper())
        .eq("admin_email", email.strip().lower())
        .eq("status", "Active")
        .limit(1)
        .execute()
    )
    if not result.data:
        raise Unauthenticated("Invalid institute code or admin email.")

    institute = result.data[0]
    if not verify_password(password, institute.get("admin_password_hash")):
        raise Unauthenticated("Invalid password.")

    logger.info(f"Institute admin logged in: {institute['name']}")
    return {"institute": public_row(institute), **_token_payload(issue_admin_token(institute))}


def get_institute_profile(db: Client, institute_id: str) -> dict:
    result = db.table("institutes").select("*").eq("id", institute_id).limit(1).execute()
    if not result.data:
        raise NotFound("Institute", institute_id)
    return public_row(result.data[0])


# ═══════════════════════════════════════════════════════════
# STUDENTS
# ═══════════════════════════════════════════════════════════

def _active_institute_by_code(db: Client, code: str) -> dict | None:
    result = (
        db.table("institutes")
        .select("id, name, code, institute_type")
        .eq("code", code.strip().upper())
        .eq("status", "Active")
        .limit(1)
        .execute()
    )
    return result.data[0] if result.data else None


def _institute_summary(institute: dict) -> dict:
    return {
        "name": institute["name"],
        "code": institute["code"],
        "type": institute.get("institute_type"),
    }


def register_student(db: Client, body: dict) -> dict:
    institute = _active_institute_by_code(db, body["institute_code"])
    if not institute:
        raise ValidationFailed(
            "Invalid institute code. Please check with your institute.",
            errors={"institute_code": "Unknown or inactive institute"},
        )
    institute_id = institute["id"]

    course = (
        db.table("courses")
        .select("id, academic_year")
        .eq("id", body["course_id"])
        .eq("institute_id", institute_id)
        .limit(1)
        .execute()
    )
    if not course.data:
        raise ValidationFailed(
            "Selected course does not belong to this institute.",
            errors={"course_id": "Unknown course"},
        )

    email = body["email"].lower()
    if (
        _exists(db, "students", institute_id=institute_id, roll_number=body["roll_number"])
        or _exists(db, "students", institute_id=institute_id, email=email)
    ):
        raise Duplicate("Student with this roll number or email already exists in this institute.")

    admission_year = body.get("admission_year") or datetime.now(timezone.utc).year
    graduation_year = admission_year + 4
    dob = body["date_of_birth"]
    record = {
        "institute_id": institute_id,
        "roll_number": body["roll_number"],
        "name": body["name"],
        "email": email,
        "phone": body["phone"],
        "course_id": body["course_id"],
        "current_semester": body.get("current_semester") or 1,
        "admission_year": admission_year,
        "graduation_year": graduation_year,
        "batch_name": f"{admission_year}-{graduation_year}",
        "academic_year": body.get("academic_year") or course.data[0].get("academic_year"),
        "date_of_birth": dob.isoformat() if hasattr(dob, "isoformat") else dob,
        "gender": body["gender"],
        "address": body["address"],
        "guardian": body["guardian"],
        "academic_status": "Active",
        "is_verified": False,
        "password_hash": get_password_hash(body["password"]),
    }
    try:
        result = db.table("students").insert(record).execute()
    except APIError as exc:
        constraint = violated_constraint(exc)
        if constraint is None:
            raise
        field = STUDENT_INDEX_FIELDS.get(constraint)
        raise Duplicate(
            "Student with this roll number or email already exists in this institute.", field
        ) from exc

    student = result.data[0]
    logger.info(f"New student registered: {student['name']} ({student['roll_number']}) at {institute['name']}")
    return {
        "student": public_row(student),
        "institute": _institute_summary(institute),
        **_token_payload(issue_student_token(student)),
    }


def login_student(db: Client, institute_code: str, roll_number: str, password: str) -> dict:
    institute = _active_institute_by_code(db, institute_code)
    if not institute:
        raise Unauthenticated("Invalid institute code.")

    result = (
        db.table("students")
        .select("*")
        .eq("institute_id", institute["id"])
        .eq("roll_number", roll_number.strip())
        .eq("academic_status", "Active")
        .limit(1)
        .execute()
    )
    if not result.data:
        raise Unauthenticated("Invalid roll number or student not found.")

    student = result.data[0]
    if not student.get("is_verified"):
        raise Forbidden(
            "Your account is pending verification by the institute. Please contact your administrator."
        )
    if not verify_password(password, student.get("password_hash")):
        raise Unauthenticated("Invalid password.")

    last_login = datetime.now(timezone.utc).isoformat()
    (
        db.table("students")
        .update({"last_login_at": last_login})
        .eq("id", student["id"])
        .eq("institute_id", institute["id"])
        .execute()
    )
    student["last_login_at"] = last_login

    logger.info(f"Student logged in: {student['name']} ({student['roll_number']}) at {institute['name']}")
    return {
        "student": public_row(student),
        "institute": _institute_summary(institute),
        **_token_payload(issue_student_token(student)),
    }


def get_student_profile(db: Client, institute_id: str, student_id: str) -> dict:
    result = (
        db.table("students")
        .select("*")
        .eq("id", student_id)
        .eq("institute_id", institute_id)
        .limit(1)
        .execute()
    )
    if not result.data:
        raise NotFound("Student", student_id)
    institute = (
        db.table("institutes")
        .select("id, name, code, institute_type")
        .eq("id", institute_id)
        .limit(1)
        .execute()
    ).data
    return {
        **public_row(result.data[0]),
        "institute": _institute_summary(institute[0]) if institute else None,
    }
