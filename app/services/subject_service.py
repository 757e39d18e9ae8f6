"""
Subjects hang off a course of the same institute. Prerequisites are weak
links to other subject ids of the institute, not ownership.
"""

from datetime import datetime, timezone
from typing import Optional

from postgrest.exceptions import APIError
from supabase import Client

from app.core.database import violated_constraint
from app.core.exceptions import Duplicate, NotFound, ValidationFailed
from app.core.logging_config import get_logger
from app.services.course_service import get_course_row

logger = get_logger(__name__)


def create_subject(db: Client, institute_id: str, fields: dict, created_by: Optional[str] = None) -> dict:
    course = get_course_row(db, institute_id, fields["course_id"])
    code = fields["subject_code"].strip().upper()

    clash = (
        db.table("subjects")
        .select("id")
        .eq("institute_id", institute_id)
        .eq("subject_code", code)
        .limit(1)
        .execute()
    )
    if clash.data:
        raise Duplicate("Subject code already exists in your institute", "subject_code")

    prerequisites = list(dict.fromkeys(fields.get("prerequisites") or []))
    if prerequisites:
        found = (
            db.table("subjects")
            .select("id")
            .eq("institute_id", institute_id)
            .in_("id", prerequisites)
            .execute()
        ).data or []
        missing = set(prerequisites) - {s["id"] for s in found}
        if missing:
            raise ValidationFailed(
                "Some prerequisites are not subjects of your institute",
                errors={"prerequisites": f"Unknown subject ids: {', '.join(sorted(missing))}"},
            )

    record = {
        **fields,
        "institute_id": institute_id,
        "subject_code": code,
        "prerequisites": prerequisites,
        "total_hours": (fields.get("theory_hours") or 0) + (fields.get("practical_hours") or 0),
        "status": "Active",
        "created_by": created_by,
    }
    try:
        result = db.table("subjects").insert(record).execute()
    except APIError as exc:
        if violated_constraint(exc) is None:
            raise
        raise Duplicate("Subject code already exists in your institute", "subject_code") from exc

    subject = result.data[0]
    logger.info(f"Subject created: {subject['subject_code']} for course {course['course_code']}")
    return subject


def list_subjects(db: Client, institute_id: str, course_id: Optional[str] = None, semester: Optional[int] = None) -> list[dict]:
    query = db.table("subjects").select("*").eq("institute_id", institute_id)
    if course_id:
        query = query.eq("course_id", course_id)
    if semester:
        query = query.eq("semester", semester)
    return query.order("semester").order("subject_code").execute().data or []


def delete_subject(db: Client, institute_id: str, subject_id: str) -> dict:
    result = (
        db.table("subjects")
        .select("id, subject_code, subject_name")
        .eq("id", subject_id)
        .eq("institute_id", institute_id)
        .limit(1)
        .execute()
    )
    if not result.data:
        raise NotFound("Subject", subject_id)
    subject = result.data[0]

    # drop dangling prerequisite links first
    dependents = (
        db.table("subjects")
        .select("id, prerequisites")
        .eq("institute_id", institute_id)
        .execute()
    ).data or []
    now = datetime.now(timezone.utc).isoformat()
    for dependent in dependents:
        links = dependent.get("prerequisites") or []
        if subject_id in links:
            (
                db.table("subjects")
                .update({"prerequisites": [p for p in links if p != subject_id], "updated_at": now})
                .eq("id", dependent["id"])
                .eq("institute_id", institute_id)
                .execute()
            )

    db.table("subjects").delete().eq("id", subject_id).eq("institute_id", institute_id).execute()
    logger.info(f"Subject deleted: {subject['subject_code']}")
    return subject
