"""
Bulk operation coordinator for courses and students.

Order of work for every batch:
  1. reject unknown actions and malformed values (no reads yet)
  2. fetch the ids scoped to the institute; any missing id fails the batch
  3. pre-flight conflict checks for actions touching the teaching slot
  4. a single UPDATE filtered by id list and institute

Nothing is written unless every member passes steps 1-3. Step 4 is one
statement, so it lands for all members or for none.
"""

from datetime import datetime, timezone
from typing import Any, Optional

from postgrest.exceptions import APIError
from supabase import Client

from app.core.database import violated_constraint
from app.core.exceptions import (
    Duplicate,
    DuplicateSemesterAssignment,
    InvalidAction,
    NotFound,
    ValidationFailed,
)
from app.core.logging_config import get_logger
from app.services.catalog_validator import CONFLICT_COLUMNS

logger = get_logger(__name__)

COURSE_ACTIONS = [
    "activate",
    "deactivate",
    "update_academic_year",
    "update_assigned_department",
    "update_semester_credits",
]

STUDENT_ACTIONS = ["verify", "unverify", "activate", "deactivate", "update_semester"]


# ---------------------------------------------------------------------------
# Value validation
# ---------------------------------------------------------------------------
def _int_in_range(value: Any, low: int, high: int, message: str) -> int:
    if isinstance(value, bool):
        raise ValidationFailed(message, errors={"value": message})
    if isinstance(value, str) and value.strip().isdigit():
        value = int(value.strip())
    if not isinstance(value, int) or not low <= value <= high:
        raise ValidationFailed(message, errors={"value": message})
    return value


def _non_empty_string(value: Any, message: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValidationFailed(message, errors={"value": message})
    return value.strip()


def _distinct_ids(ids: Optional[list], field: str, label: str) -> list[str]:
    if not ids:
        raise ValidationFailed(f"Please provide valid {label} IDs", errors={field: "At least one ID is required"})
    return list(dict.fromkeys(ids))


def _fetch_owned(db: Client, table: str, institute_id: str, ids: list[str], columns: str, label: str) -> list[dict]:
    rows = (
        db.table(table)
        .select(columns)
        .eq("institute_id", institute_id)
        .in_("id", ids)
        .execute()
    ).data or []
    if len(rows) != len(ids):
        found = {row["id"] for row in rows}
        missing = [i for i in ids if i not in found]
        raise NotFound(
            label.capitalize(),
            missing,
            message=f"Some {label}s not found or do not belong to your institute",
        )
    return rows


# ---------------------------------------------------------------------------
# Courses
# ---------------------------------------------------------------------------
def plan_course_update(action: str, value: Any) -> tuple[dict, str]:
    """Translate an action tag into the column changes it makes."""
    if action == "activate":
        return {"status": "Active"}, "activated"
    if action == "deactivate":
        return {"status": "Inactive"}, "deactivated"
    if action == "update_academic_year":
        year = _non_empty_string(value, "Academic year value is required")
        return {"academic_year": year}, f"academic year updated to {year}"
    if action == "update_assigned_department":
        department = _non_empty_string(value, "Assigned department value is required")
        return {"assigned_department": department}, f"assigned department updated to {department}"
    if action == "update_semester_credits":
        credits = _int_in_range(value, 1, 8, "Semester credits must be an integer between 1 and 8")
        return {"semester_credits": credits}, f"semester credits updated to {credits}"
    raise InvalidAction(action, COURSE_ACTIONS)


def check_department_reassignment(db: Client, institute_id: str, courses: list[dict], department: str) -> None:
    """
    Every course keeps its semester and takes the new department. Fail on the
    first pair that is already held by a course outside the batch, or that two
    batch members would end up sharing.
    """
    batch_ids = {c["id"] for c in courses}

    claimed: dict[int, dict] = {}
    for course in courses:
        semester = course["assigned_semester"]
        if semester in claimed:
            raise DuplicateSemesterAssignment(department, semester, claimed[semester])
        claimed[semester] = course

    occupants = (
        db.table("courses")
        .select(CONFLICT_COLUMNS)
        .eq("institute_id", institute_id)
        .eq("assigned_department", department)
        .in_("assigned_semester", sorted(claimed))
        .execute()
    ).data or []
    holders = {o["assigned_semester"]: o for o in occupants if o["id"] not in batch_ids}

    for course in courses:
        existing = holders.get(course["assigned_semester"])
        if existing:
            logger.warning(
                f"Bulk reassignment to {department} blocked: Semester {course['assigned_semester']} "
                f"held by {existing['id']}"
            )
            raise DuplicateSemesterAssignment(department, course["assigned_semester"], existing)


def bulk_update_courses(db: Client, institute_id: str, course_ids: list, action: str, value: Any = None) -> dict:
    if action not in COURSE_ACTIONS:
        raise InvalidAction(action, COURSE_ACTIONS)
    changes, action_message = plan_course_update(action, value)
    if action.startswith("update_"):
        # echo the value as written, e.g. "6" is stored and reported as 6
        value = next(iter(changes.values()))

    ids = _distinct_ids(course_ids, "course_ids", "course")
    courses = _fetch_owned(db, "courses", institute_id, ids, CONFLICT_COLUMNS, "course")

    if action == "update_assigned_department":
        check_department_reassignment(db, institute_id, courses, changes["assigned_department"])

    changes["updated_at"] = datetime.now(timezone.utc).isoformat()
    try:
        result = (
            db.table("courses")
            .update(changes)
            .eq("institute_id", institute_id)
            .in_("id", ids)
            .execute()
        )
    except APIError as exc:
        if violated_constraint(exc) is None:
            raise
        # Lost a race with a concurrent write; report it like the pre-flight would
        if action == "update_assigned_department":
            check_department_reassignment(db, institute_id, courses, changes["assigned_department"])
        raise Duplicate("Bulk update conflicts with another course") from exc

    affected = len(result.data or [])
    logger.info(f"Bulk {action}: {affected} courses {action_message} in institute {institute_id}")
    return {
        "affected": affected,
        "action": action,
        "value": value,
        "action_message": action_message,
    }


# ---------------------------------------------------------------------------
# Students
# ---------------------------------------------------------------------------
def plan_student_update(action: str, value: Any) -> tuple[dict, str]:
    if action == "verify":
        return {"is_verified": True}, "verified"
    if action == "unverify":
        return {"is_verified": False}, "unverified"
    if action == "activate":
        return {"academic_status": "Active"}, "activated"
    if action == "deactivate":
        return {"academic_status": "Inactive"}, "deactivated"
    if action == "update_semester":
        semester = _int_in_range(value, 1, 8, "Please provide a valid semester number (1-8)")
        return {"current_semester": semester}, f"semester updated to {semester}"
    raise InvalidAction(action, STUDENT_ACTIONS)


def bulk_update_students(db: Client, institute_id: str, student_ids: list, action: str, value: Any = None) -> dict:
    if action not in STUDENT_ACTIONS:
        raise InvalidAction(action, STUDENT_ACTIONS)
    changes, action_message = plan_student_update(action, value)
    if action.startswith("update_"):
        value = next(iter(changes.values()))

    ids = _distinct_ids(student_ids, "student_ids", "student")
    _fetch_owned(db, "students", institute_id, ids, "id", "student")
    logger.info(f"Bulk {action} requested for {len(ids)} students")

    changes["updated_at"] = datetime.now(timezone.utc).isoformat()
    result = (
        db.table("students")
        .update(changes)
        .eq("institute_id", institute_id)
        .in_("id", ids)
        .execute()
    )

    affected = len(result.data or [])
    logger.info(f"Bulk {action}: {affected} students {action_message} in institute {institute_id}")
    return {
        "affected": affected,
        "action": action,
        "value": value,
        "action_message": action_message,
    }
