"""
Conflict-aware course mutations.

Lifecycle per course: Draft -> Active <-> Inactive (a Draft may also be
shelved straight to Inactive), any of them -> deleted
once no subject or student references it. Every read and write here is
filtered by institute_id; a course id from another institute behaves exactly
like an unknown id.
"""

from collections import Counter, defaultdict
from datetime import datetime, timezone
from typing import Optional

from postgrest.exceptions import APIError
from supabase import Client

from app.core.config import settings
from app.core.exceptions import DeletionBlocked, NotFound, ValidationFailed
from app.core.logging_config import get_logger
from app.services.catalog_validator import (
    ensure_course_is_unique,
    translate_unique_violation,
)
from app.utils.serializers import course_view

logger = get_logger(__name__)

COURSE_DEFAULTS = {
    "semester_credits": 3,
    "status": "Active",
    "max_students": 0,
    "current_enrollment": 0,
}

NULLABLE_COURSE_FIELDS = {"description"}


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def get_course_row(db: Client, institute_id: str, course_id: str) -> dict:
    result = (
        db.table("courses")
        .select("*")
        .eq("id", course_id)
        .eq("institute_id", institute_id)
        .limit(1)
        .execute()
    )
    if not result.data:
        raise NotFound("Course", course_id)
    return result.data[0]


def create_course(db: Client, institute_id: str, fields: dict, created_by: Optional[str] = None) -> dict:
    data = {**COURSE_DEFAULTS, **{k: v for k, v in fields.items() if v is not None}}
    data["course_code"] = data["course_code"].strip().upper()
    data["institute_id"] = institute_id
    data["created_by"] = created_by

    ensure_course_is_unique(
        db,
        institute_id,
        course_code=data["course_code"],
        assigned_department=data["assigned_department"],
        assigned_semester=data["assigned_semester"],
    )

    try:
        result = db.table("courses").insert(data).execute()
    except APIError as exc:
        error = translate_unique_violation(
            exc,
            db,
            institute_id,
            course_code=data["course_code"],
            assigned_department=data["assigned_department"],
            assigned_semester=data["assigned_semester"],
        )
        if error is exc:
            raise
        raise error from exc

    course = result.data[0]
    logger.info(
        f"Course created: {course['course_name']} ({course['course_code']}) - "
        f"{course['assigned_department']} Semester {course['assigned_semester']}"
    )
    return course_view(course)


def update_course(db: Client, institute_id: str, course_id: str, fields: dict) -> dict:
    """
    Apply the fields the caller actually sent. An explicit None clears a
    nullable column (description); on any other column it is rejected.
    """
    current = get_course_row(db, institute_id, course_id)
    changes = dict(fields)
    cleared = [k for k, v in changes.items() if v is None and k not in NULLABLE_COURSE_FIELDS]
    if cleared:
        raise ValidationFailed(
            "Required course fields cannot be cleared",
            errors={k: "This field cannot be null" for k in cleared},
        )
    if not changes:
        return course_view(current)

    new_status = changes.get("status")
    if new_status == "Draft" and current.get("status") != "Draft":
        raise ValidationFailed(
            "A published course cannot return to Draft",
            errors={"status": f"Cannot change status from {current.get('status')} to Draft"},
        )

    check = {"exclude_id": course_id}
    if "course_code" in changes:
        changes["course_code"] = changes["course_code"].strip().upper()
        check["course_code"] = changes["course_code"]
    if "assigned_department" in changes or "assigned_semester" in changes:
        check["assigned_department"] = changes.get("assigned_department", current["assigned_department"])
        check["assigned_semester"] = changes.get("assigned_semester", current["assigned_semester"])

    ensure_course_is_unique(db, institute_id, **check)

    changes["updated_at"] = _now()
    try:
        result = (
            db.table("courses")
            .update(changes)
            .eq("id", course_id)
            .eq("institute_id", institute_id)
            .execute()
        )
    except APIError as exc:
        error = translate_unique_violation(exc, db, institute_id, **check)
        if error is exc:
            raise
        raise error from exc

    if not result.data:
        raise NotFound("Course", course_id)

    course = result.data[0]
    logger.info(
        f"Course updated: {course['course_name']} ({course['course_code']}) - "
        f"{course['assigned_department']} Semester {course['assigned_semester']}"
    )
    return course_view(course)


def _count(query) -> int:
    return query.execute().count or 0


def deletion_blockers(db: Client, institute_id: str, course: dict) -> dict:
    subjects = _count(
        db.table("subjects")
        .select("id", count="exact")
        .eq("institute_id", institute_id)
        .eq("course_id", course["id"])
    )
    total_students = _count(
        db.table("students")
        .select("id", count="exact")
        .eq("institute_id", institute_id)
        .eq("course_id", course["id"])
    )
    active_students = _count(
        db.table("students")
        .select("id", count="exact")
        .eq("institute_id", institute_id)
        .eq("course_id", course["id"])
        .eq("academic_status", "Active")
    )
    return {
        "subjects": subjects,
        "active_students": active_students,
        "total_students": total_students,
    }


def delete_course(
    db: Client,
    institute_id: str,
    course_id: str,
    historical_blocks: Optional[bool] = None,
) -> dict:
    """
    Hard-delete a course unless something still references it.

    Subjects and Active students, whatever their academic year, always block.
    Historical-only references (students exist, none of them Active) block when
    historical_blocks is on (default from settings), otherwise they come back
    as a warning on the successful result.
    """
    if historical_blocks is None:
        historical_blocks = settings.HISTORICAL_REFERENCES_BLOCK_DELETE

    course = get_course_row(db, institute_id, course_id)
    factors = deletion_blockers(db, institute_id, course)
    subjects = factors["subjects"]
    active = factors["active_students"]
    total = factors["total_students"]
    historical_only = total > 0 and active == 0

    reasons = []
    suggestions = []
    if subjects > 0:
        reasons.append(f"{subjects} subjects are associated with this course")
        suggestions.append("Delete all associated subjects first")
    if active > 0:
        reasons.append(f"{active} students are currently enrolled")
        suggestions.append("Transfer or graduate enrolled students")
    warnings = []
    if historical_only:
        note = f"{total} students have historical enrollment records"
        if historical_blocks:
            reasons.append(note)
            suggestions.append("Consider archiving instead of deleting")
        else:
            warnings.append(note)

    course_info = {
        "id": course["id"],
        "course_name": course["course_name"],
        "course_code": course["course_code"],
        "assigned_department": course["assigned_department"],
        "assigned_semester": course["assigned_semester"],
    }

    if reasons:
        logger.warning(f"Deletion of course {course_id} blocked: {'; '.join(reasons)}")
        raise DeletionBlocked(
            f'Cannot delete course "{course["course_name"]}". {" and ".join(reasons)}.',
            details={
                "course_info": course_info,
                "blocking_factors": factors,
                "suggestions": suggestions,
            },
        )

    db.table("courses").delete().eq("id", course_id).eq("institute_id", institute_id).execute()
    logger.info(
        f"Course deleted: {course['course_name']} ({course['course_code']}) - "
        f"{course['assigned_department']} Semester {course['assigned_semester']}"
    )
    return {"deleted_course": course_info, "warnings": warnings}


def get_course(db: Client, institute_id: str, course_id: str) -> dict:
    course = get_course_row(db, institute_id, course_id)

    subjects = (
        db.table("subjects")
        .select("*")
        .eq("institute_id", institute_id)
        .eq("course_id", course_id)
        .order("semester")
        .order("subject_code")
        .execute()
    ).data or []
    by_semester = defaultdict(list)
    for subject in subjects:
        by_semester[subject["semester"]].append(subject)

    enrolled = _count(
        db.table("students")
        .select("id", count="exact")
        .eq("institute_id", institute_id)
        .eq("course_id", course_id)
        .eq("academic_status", "Active")
    )

    # Should always be empty while the unique index holds
    conflicts = (
        db.table("courses")
        .select("id, course_name, course_code")
        .eq("institute_id", institute_id)
        .eq("assigned_department", course["assigned_department"])
        .eq("assigned_semester", course["assigned_semester"])
        .neq("id", course_id)
        .execute()
    ).data or []

    return {
        "course": course_view({**course, "current_enrollment": enrolled}),
        "subjects_by_semester": dict(by_semester),
        "total_subjects": len(subjects),
        "semester_assignment_info": {
            "department": course["assigned_department"],
            "semester": course["assigned_semester"],
            "credits": course.get("semester_credits"),
            "conflicts": conflicts,
        },
    }


def get_semester_assignments(db: Client, institute_id: str) -> dict:
    rows = (
        db.table("courses")
        .select("id, course_name, course_code, semester_credits, assigned_department, assigned_semester")
        .eq("institute_id", institute_id)
        .execute()
    ).data or []

    grouped: dict[tuple, dict] = {}
    for row in rows:
        key = (row["assigned_department"], row["assigned_semester"])
        slot = grouped.setdefault(key, {
            "department": key[0],
            "semester": key[1],
            "courses": [],
            "total_credits": 0,
        })
        slot["courses"].append({
            "course_id": row["id"],
            "course_name": row["course_name"],
            "course_code": row["course_code"],
            "credits": row.get("semester_credits") or 0,
        })
        slot["total_credits"] += row.get("semester_credits") or 0

    assignments = [grouped[key] for key in sorted(grouped)]
    department_view: dict = defaultdict(dict)
    semester_view: dict = defaultdict(dict)
    for slot in assignments:
        department_view[slot["department"]][slot["semester"]] = slot
        semester_view[slot["semester"]][slot["department"]] = slot

    return {
        "assignments": assignments,
        "department_view": dict(department_view),
        "semester_view": dict(semester_view),
        "total_assignments": len(assignments),
    }


def sync_course_enrollments(db: Client, institute_id: str) -> dict:
    courses = (
        db.table("courses")
        .select("id, current_enrollment")
        .eq("institute_id", institute_id)
        .execute()
    ).data or []
    active = (
        db.table("students")
        .select("course_id")
        .eq("institute_id", institute_id)
        .eq("academic_status", "Active")
        .execute()
    ).data or []
    counts = Counter(s["course_id"] for s in active)

    updated = 0
    for course in courses:
        enrolled = counts.get(course["id"], 0)
        if course.get("current_enrollment") != enrolled:
            (
                db.table("courses")
                .update({"current_enrollment": enrolled, "updated_at": _now()})
                .eq("id", course["id"])
                .eq("institute_id", institute_id)
                .execute()
            )
            updated += 1

    logger.info(f"Synced enrollments for {updated}/{len(courses)} courses in institute {institute_id}")
    return {"total_courses": len(courses), "updated_courses": updated}
