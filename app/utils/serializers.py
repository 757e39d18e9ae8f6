"""
Row shaping for API output: derived course fields and secret stripping.
"""

from typing import Any, Optional

SECRET_FIELDS = ("password_hash", "admin_password_hash")


def public_row(row: Optional[dict]) -> Optional[dict]:
    if row is None:
        return None
    return {k: v for k, v in row.items() if k not in SECRET_FIELDS}


def semester_assignment_display(course: dict) -> str:
    return f"{course.get('assigned_department')} - Semester {course.get('assigned_semester')}"


def enrollment_status(course: dict) -> str:
    max_students = course.get("max_students") or 0
    if max_students == 0:
        return "Open"
    if (course.get("current_enrollment") or 0) >= max_students:
        return "Full"
    return "Available"


def enrollment_percentage(course: dict) -> int:
    max_students = course.get("max_students") or 0
    if max_students == 0:
        return 0
    return round((course.get("current_enrollment") or 0) / max_students * 100)


def course_view(course: dict, **extra: Any) -> dict:
    return {
        **course,
        "enrollment_status": enrollment_status(course),
        "enrollment_percentage": enrollment_percentage(course),
        "semester_assignment_display": semester_assignment_display(course),
        "total_credits": course.get("semester_credits"),
        **extra,
    }
