"""
Per-student operations: admin verification toggle and student self-service reads.
"""

from datetime import datetime, timezone

from supabase import Client

from app.core.exceptions import NotFound
from app.core.logging_config import get_logger
from app.utils.serializers import course_view

logger = get_logger(__name__)


def update_student_verification(db: Client, institute_id: str, student_id: str, is_verified: bool) -> dict:
    current = (
        db.table("students")
        .select("id, name, roll_number, is_verified")
        .eq("id", student_id)
        .eq("institute_id", institute_id)
        .limit(1)
        .execute()
    )
    if not current.data:
        raise NotFound("Student", student_id, message="Student not found.")
    student = current.data[0]

    updated_at = datetime.now(timezone.utc).isoformat()
    (
        db.table("students")
        .update({"is_verified": is_verified, "updated_at": updated_at})
        .eq("id", student_id)
        .eq("institute_id", institute_id)
        .execute()
    )

    logger.info(
        f"Student {student['name']} ({student['roll_number']}) "
        f"{'verified' if is_verified else 'unverified'} by admin"
    )
    return {
        "student_id": student_id,
        "name": student["name"],
        "roll_number": student["roll_number"],
        "is_verified": is_verified,
        "previous_status": student.get("is_verified", False),
        "updated_at": updated_at,
    }


def get_own_course(db: Client, institute_id: str, student_id: str) -> dict:
    student = (
        db.table("students")
        .select("course_id")
        .eq("id", student_id)
        .eq("institute_id", institute_id)
        .limit(1)
        .execute()
    ).data
    if not student or not student[0].get("course_id"):
        raise NotFound("Course", None, message="You are not enrolled in a course")

    course_id = student[0]["course_id"]
    course = (
        db.table("courses")
        .select("*")
        .eq("id", course_id)
        .eq("institute_id", institute_id)
        .limit(1)
        .execute()
    ).data
    if not course:
        raise NotFound("Course", course_id)

    subjects = (
        db.table("subjects")
        .select("id, subject_name, subject_code, semester, credits, subject_type")
        .eq("institute_id", institute_id)
        .eq("course_id", course_id)
        .order("semester")
        .order("subject_code")
        .execute()
    ).data or []
    return {"course": course_view(course[0]), "subjects": subjects}


def get_own_grades(db: Client, institute_id: str, student_id: str) -> list[dict]:
    grades = (
        db.table("grades")
        .select("*")
        .eq("institute_id", institute_id)
        .eq("student_id", student_id)
        .order("uploaded_at", desc=True)
        .execute()
    ).data or []
    course_ids = list({g["course_id"] for g in grades})
    names = {}
    if course_ids:
        rows = (
            db.table("courses")
            .select("id, course_name, course_code")
            .eq("institute_id", institute_id)
            .in_("id", course_ids)
            .execute()
        ).data or []
        names = {r["id"]: r for r in rows}
    return [
        {
            **g,
            "course_name": names.get(g["course_id"], {}).get("course_name"),
            "course_code": names.get(g["course_id"], {}).get("course_code"),
        }
        for g in grades
    ]
