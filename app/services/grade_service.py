"""
Grade upload. One grade per (student, course, grade_type); re-uploading
overwrites it.
"""

from datetime import datetime, timezone
from typing import Optional

from supabase import Client

from app.core.logging_config import get_logger
from app.services.course_service import get_course_row

logger = get_logger(__name__)


def upload_grades(
    db: Client,
    institute_id: str,
    course_id: str,
    grades: list[dict],
    uploaded_by: Optional[str] = None,
) -> dict:
    course = get_course_row(db, institute_id, course_id)

    requested = list(dict.fromkeys(g["student_id"] for g in grades))
    owned = (
        db.table("students")
        .select("id")
        .eq("institute_id", institute_id)
        .in_("id", requested)
        .execute()
    ).data or []
    owned_ids = {s["id"] for s in owned}

    now = datetime.now(timezone.utc).isoformat()
    # one row per conflict key, last entry wins
    records: dict[tuple, dict] = {}
    skipped = []
    for entry in grades:
        if entry["student_id"] not in owned_ids:
            skipped.append(entry["student_id"])
            continue
        grade_type = entry.get("grade_type") or "Final"
        records[(entry["student_id"], grade_type)] = {
            "institute_id": institute_id,
            "student_id": entry["student_id"],
            "course_id": course_id,
            "grade_type": grade_type,
            "marks": entry["marks"],
            "comments": entry.get("comments"),
            "uploaded_by": uploaded_by,
            "uploaded_at": now,
        }

    saved = []
    if records:
        saved = (
            db.table("grades")
            .upsert(list(records.values()), on_conflict="student_id,course_id,grade_type")
            .execute()
        ).data or []

    if skipped:
        logger.warning(f"Skipped {len(skipped)} grades for students outside institute {institute_id}")
    logger.info(f"{len(saved)} grades uploaded for {course['course_name']}")
    return {
        "course": course["course_name"],
        "grades_uploaded": len(saved),
        "students_affected": len({r["student_id"] for r in records.values()}),
        "skipped_students": skipped,
    }
