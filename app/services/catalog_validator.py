"""
Uniqueness validator for courses.

Two invariants hold per institute:
  - course_code is unique (compared uppercased)
  - (assigned_department, assigned_semester) maps to at most one course

These checks are read-only pre-checks that give early, friendly errors. They
are not race-free; the unique indexes on courses are the backstop, and
translate_unique_violation maps their failures onto the same errors.
"""

from typing import Optional

from postgrest.exceptions import APIError
from supabase import Client

from app.core.database import violated_constraint
from app.core.exceptions import DuplicateCourseCode, DuplicateSemesterAssignment
from app.core.logging_config import get_logger

logger = get_logger(__name__)

CONFLICT_COLUMNS = "id, course_name, course_code, assigned_department, assigned_semester"

COURSE_CODE_INDEX = "courses_institute_code_key"
ASSIGNMENT_INDEX = "courses_institute_assignment_key"


def _first(rows: list, exclude_id: Optional[str]) -> Optional[dict]:
    for row in rows:
        if exclude_id is None or row["id"] != exclude_id:
            return row
    return None


def check_course_code_conflict(
    db: Client,
    institute_id: str,
    course_code: str,
    exclude_id: Optional[str] = None,
) -> Optional[dict]:
    query = (
        db.table("courses")
        .select(CONFLICT_COLUMNS)
        .eq("institute_id", institute_id)
        .eq("course_code", course_code.strip().upper())
    )
    if exclude_id:
        query = query.neq("id", exclude_id)
    result = query.limit(1).execute()
    return _first(result.data or [], exclude_id)


def check_semester_assignment_conflict(
    db: Client,
    institute_id: str,
    assigned_department: str,
    assigned_semester: int,
    exclude_id: Optional[str] = None,
) -> Optional[dict]:
    query = (
        db.table("courses")
        .select(CONFLICT_COLUMNS)
        .eq("institute_id", institute_id)
        .eq("assigned_department", assigned_department)
        .eq("assigned_semester", int(assigned_semester))
    )
    if exclude_id:
        query = query.neq("id", exclude_id)
    result = query.limit(1).execute()
    return _first(result.data or [], exclude_id)


def ensure_course_is_unique(
    db: Client,
    institute_id: str,
    *,
    course_code: Optional[str] = None,
    assigned_department: Optional[str] = None,
    assigned_semester: Optional[int] = None,
    exclude_id: Optional[str] = None,
) -> None:
    """
    Raise DuplicateCourseCode / DuplicateSemesterAssignment if the candidate
    would collide with another course of the institute. A check whose inputs
    are None is skipped, so callers pass only what they intend to change.
    """
    if course_code is not None:
        existing = check_course_code_conflict(db, institute_id, course_code, exclude_id)
        if existing:
            logger.warning(
                f"Course code {course_code.upper()} already used by {existing['id']} "
                f"in institute {institute_id}"
            )
            raise DuplicateCourseCode(course_code.upper(), existing)

    if assigned_department is not None and assigned_semester is not None:
        existing = check_semester_assignment_conflict(
            db, institute_id, assigned_department, assigned_semester, exclude_id
        )
        if existing:
            logger.warning(
                f"{assigned_department} - Semester {assigned_semester} already taken by "
                f"{existing['id']} in institute {institute_id}"
            )
            raise DuplicateSemesterAssignment(assigned_department, int(assigned_semester), existing)


def validate_semester_assignment(
    db: Client,
    institute_id: str,
    assigned_department: str,
    assigned_semester: int,
    exclude_id: Optional[str] = None,
) -> dict:
    """Availability answer for forms; never raises on conflict."""
    existing = check_semester_assignment_conflict(
        db, institute_id, assigned_department, assigned_semester, exclude_id
    )
    if existing:
        return {
            "available": False,
            "message": (
                f"{assigned_department} - Semester {assigned_semester} is already assigned "
                f'to "{existing["course_name"]}"'
            ),
            "conflicting_course": {
                "id": existing["id"],
                "course_name": existing["course_name"],
                "course_code": existing["course_code"],
            },
        }
    return {
        "available": True,
        "message": f"{assigned_department} - Semester {assigned_semester} is available",
        "conflicting_course": None,
    }


def translate_unique_violation(
    exc: APIError,
    db: Client,
    institute_id: str,
    *,
    course_code: Optional[str] = None,
    assigned_department: Optional[str] = None,
    assigned_semester: Optional[int] = None,
    exclude_id: Optional[str] = None,
) -> Exception:
    """
    Map a unique-index rejection from a course write onto the domain error.
    Returns the exception to raise; non-unique errors are returned unchanged.
    """
    constraint = violated_constraint(exc)
    if constraint is None:
        return exc

    logger.warning(f"Unique index {constraint!r} rejected a course write in institute {institute_id}")

    if constraint == COURSE_CODE_INDEX and course_code is not None:
        existing = check_course_code_conflict(db, institute_id, course_code, exclude_id)
        return DuplicateCourseCode(course_code.upper(), existing)

    if assigned_department is not None and assigned_semester is not None:
        existing = check_semester_assignment_conflict(
            db, institute_id, assigned_department, assigned_semester, exclude_id
        )
        return DuplicateSemesterAssignment(assigned_department, int(assigned_semester), existing)

    if course_code is not None:
        return DuplicateCourseCode(course_code.upper())
    return exc
