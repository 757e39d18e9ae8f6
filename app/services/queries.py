"""
Read-only views: filtered/sorted/paginated listings, filter statistics,
dashboard numbers and student export.

Statistics feed filter dropdowns and are best-effort: a failure there is
logged and replaced by empty defaults, never surfaced to the listing.
"""

import csv
import io
import math
from collections import Counter
from datetime import datetime, timedelta, timezone
from typing import Optional

from supabase import Client

from app.core.config import settings
from app.core.exceptions import ValidationFailed
from app.core.logging_config import get_logger
from app.utils.serializers import course_view, public_row

logger = get_logger(__name__)

COURSE_SEARCH_FIELDS = ["course_name", "course_code", "description", "department", "assigned_department"]
COURSE_SORT_FIELDS = {
    "created_at", "updated_at", "course_name", "course_code", "department",
    "degree_type", "status", "academic_year", "assigned_department",
    "assigned_semester", "semester_credits", "current_enrollment",
}

STUDENT_SEARCH_FIELDS = ["name", "roll_number", "email", "phone"]
STUDENT_SORT_FIELDS = {
    "created_at", "updated_at", "name", "roll_number", "email",
    "current_semester", "admission_year", "academic_status", "is_verified",
}
STUDENT_STATUS_FILTERS = {
    "verified": ("is_verified", True),
    "unverified": ("is_verified", False),
    "active": ("academic_status", "Active"),
    "inactive": ("academic_status", "Inactive"),
}

EMPTY_COURSE_STATS = {
    "available_departments": [],
    "available_degree_types": [],
    "available_academic_years": [],
    "available_assigned_departments": [],
    "status_counts": {"total": 0, "active": 0, "inactive": 0, "draft": 0},
}

EMPTY_STUDENT_STATS = {
    "available_courses": [],
    "available_semesters": [],
    "available_years": [],
    "status_counts": {"total": 0, "verified": 0, "unverified": 0, "active": 0, "inactive": 0},
}

EXPORT_HEADERS = [
    "Roll Number", "Name", "Email", "Phone", "Course", "Semester",
    "Admission Year", "Academic Status", "Verification Status", "Registration Date",
]


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------
def _clean_search(term: str) -> str:
    # PostgREST uses these as syntax inside or=(...)
    return "".join(ch for ch in term.strip() if ch not in ",()*%\\")


def _search_clause(term: str, fields: list[str]) -> Optional[str]:
    term = _clean_search(term)
    if not term:
        return None
    return ",".join(f"{field}.ilike.%{term}%" for field in fields)


def _page_window(page: int, limit: Optional[int]) -> tuple[int, int]:
    page = max(int(page or 1), 1)
    limit = min(max(int(limit or settings.DEFAULT_PAGE_SIZE), 1), settings.MAX_PAGE_SIZE)
    return page, limit


def _check_sort(sort_by: str, allowed: set) -> str:
    if sort_by not in allowed:
        raise ValidationFailed(
            "Validation failed",
            errors={"sort_by": f"Cannot sort by '{sort_by}'. Allowed: {', '.join(sorted(allowed))}"},
        )
    return sort_by


def _pagination(page: int, limit: int, total: int) -> dict:
    total_pages = math.ceil(total / limit) if total else 0
    return {
        "current_page": page,
        "total_pages": total_pages,
        "total": total,
        "has_more": page < total_pages,
    }


def distinct_values(db: Client, table: str, institute_id: str, field: str, reverse: bool = False) -> list:
    """Sorted distinct non-empty values of one column within an institute."""
    rows = db.table(table).select(field).eq("institute_id", institute_id).execute().data or []
    values = {row.get(field) for row in rows}
    return sorted((v for v in values if v not in (None, "")), reverse=reverse)


def course_names(db: Client, institute_id: str, course_ids) -> dict:
    ids = [i for i in set(course_ids) if i]
    if not ids:
        return {}
    rows = (
        db.table("courses")
        .select("id, course_name")
        .eq("institute_id", institute_id)
        .in_("id", ids)
        .execute()
    ).data or []
    return {row["id"]: row["course_name"] for row in rows}


# ---------------------------------------------------------------------------
# Courses
# ---------------------------------------------------------------------------
def course_filter_stats(db: Client, institute_id: str) -> dict:
    try:
        statuses = (
            db.table("courses").select("status").eq("institute_id", institute_id).execute()
        ).data or []
        counts = Counter(row.get("status") for row in statuses)
        return {
            "available_departments": distinct_values(db, "courses", institute_id, "department"),
            "available_degree_types": distinct_values(db, "courses", institute_id, "degree_type"),
            "available_academic_years": distinct_values(db, "courses", institute_id, "academic_year", reverse=True),
            "available_assigned_departments": distinct_values(db, "courses", institute_id, "assigned_department"),
            "status_counts": {
                "total": len(statuses),
                "active": counts.get("Active", 0),
                "inactive": counts.get("Inactive", 0),
                "draft": counts.get("Draft", 0),
            },
        }
    except Exception as e:
        logger.warning(f"Course stats unavailable for institute {institute_id}: {e}")
        return {**EMPTY_COURSE_STATS, "status_counts": dict(EMPTY_COURSE_STATS["status_counts"])}


def list_courses(
    db: Client,
    institute_id: str,
    *,
    page: int = 1,
    limit: Optional[int] = None,
    search: str = "",
    department: str = "",
    degree_type: str = "",
    status: str = "",
    academic_year: str = "",
    assigned_department: str = "",
    assigned_semester: Optional[int] = None,
    sort_by: str = "created_at",
    sort_order: str = "desc",
) -> dict:
    page, limit = _page_window(page, limit)
    _check_sort(sort_by, COURSE_SORT_FIELDS)

    query = db.table("courses").select("*", count="exact").eq("institute_id", institute_id)

    clause = _search_clause(search, COURSE_SEARCH_FIELDS)
    if clause:
        query = query.or_(clause)
    if department:
        query = query.ilike("department", f"%{_clean_search(department)}%")
    if degree_type:
        query = query.eq("degree_type", degree_type)
    if status:
        query = query.eq("status", status)
    if academic_year:
        query = query.eq("academic_year", academic_year)
    if assigned_department:
        query = query.ilike("assigned_department", f"%{_clean_search(assigned_department)}%")
    if assigned_semester:
        query = query.eq("assigned_semester", int(assigned_semester))

    start = (page - 1) * limit
    result = (
        query.order(sort_by, desc=sort_order != "asc")
        .range(start, start + limit - 1)
        .execute()
    )
    courses = result.data or []
    total = result.count or 0

    subject_counts: Counter = Counter()
    if courses:
        subjects = (
            db.table("subjects")
            .select("course_id")
            .eq("institute_id", institute_id)
            .in_("course_id", [c["id"] for c in courses])
            .execute()
        ).data or []
        subject_counts = Counter(s["course_id"] for s in subjects)

    logger.info(f"Fetched {len(courses)}/{total} courses for institute {institute_id}")
    return {
        "courses": [course_view(c, subject_count=subject_counts.get(c["id"], 0)) for c in courses],
        "pagination": _pagination(page, limit, total),
        "filters": course_filter_stats(db, institute_id),
        "query": {
            "search": search,
            "department": department,
            "degree_type": degree_type,
            "status": status,
            "academic_year": academic_year,
            "assigned_department": assigned_department,
            "assigned_semester": assigned_semester,
            "sort_by": sort_by,
            "sort_order": sort_order,
        },
    }


# ---------------------------------------------------------------------------
# Students
# ---------------------------------------------------------------------------
def _student_query(
    db: Client,
    institute_id: str,
    *,
    search: str = "",
    status: str = "",
    course_id: str = "",
    semester: Optional[int] = None,
    admission_year: Optional[int] = None,
    count: Optional[str] = None,
):
    query = db.table("students").select("*", count=count).eq("institute_id", institute_id)
    clause = _search_clause(search, STUDENT_SEARCH_FIELDS)
    if clause:
        query = query.or_(clause)
    if status in STUDENT_STATUS_FILTERS:
        column, value = STUDENT_STATUS_FILTERS[status]
        query = query.eq(column, value)
    if course_id:
        query = query.eq("course_id", course_id)
    if semester:
        query = query.eq("current_semester", int(semester))
    if admission_year:
        query = query.eq("admission_year", int(admission_year))
    return query


def student_filter_stats(db: Client, institute_id: str) -> dict:
    try:
        rows = (
            db.table("students")
            .select("is_verified, academic_status")
            .eq("institute_id", institute_id)
            .execute()
        ).data or []
        verified = sum(1 for r in rows if r.get("is_verified"))
        statuses = Counter(r.get("academic_status") for r in rows)
        names = course_names(db, institute_id, distinct_values(db, "students", institute_id, "course_id"))
        return {
            "available_courses": sorted(
                ({"id": cid, "course_name": name} for cid, name in names.items()),
                key=lambda c: c["course_name"],
            ),
            "available_semesters": distinct_values(db, "students", institute_id, "current_semester"),
            "available_years": distinct_values(db, "students", institute_id, "admission_year", reverse=True),
            "status_counts": {
                "total": len(rows),
                "verified": verified,
                "unverified": len(rows) - verified,
                "active": statuses.get("Active", 0),
                "inactive": statuses.get("Inactive", 0),
            },
        }
    except Exception as e:
        logger.warning(f"Student filter stats unavailable for institute {institute_id}: {e}")
        return {**EMPTY_STUDENT_STATS, "status_counts": dict(EMPTY_STUDENT_STATS["status_counts"])}


def list_students(
    db: Client,
    institute_id: str,
    *,
    page: int = 1,
    limit: Optional[int] = None,
    search: str = "",
    status: str = "",
    course_id: str = "",
    semester: Optional[int] = None,
    admission_year: Optional[int] = None,
    sort_by: str = "created_at",
    sort_order: str = "desc",
) -> dict:
    page, limit = _page_window(page, limit)
    _check_sort(sort_by, STUDENT_SORT_FIELDS)

    query = _student_query(
        db, institute_id,
        search=search, status=status, course_id=course_id,
        semester=semester, admission_year=admission_year, count="exact",
    )
    start = (page - 1) * limit
    result = (
        query.order(sort_by, desc=sort_order != "asc")
        .range(start, start + limit - 1)
        .execute()
    )
    students = result.data or []
    total = result.count or 0

    logger.info(f"Fetched {len(students)}/{total} students for institute {institute_id}")
    return {
        "students": [public_row(s) for s in students],
        "pagination": _pagination(page, limit, total),
        "filters": student_filter_stats(db, institute_id),
        "query": {
            "search": search,
            "status": status,
            "course_id": course_id,
            "semester": semester,
            "admission_year": admission_year,
            "sort_by": sort_by,
            "sort_order": sort_order,
        },
    }


def dashboard_stats(db: Client, institute_id: str) -> dict:
    rows = (
        db.table("students")
        .select("id, is_verified, course_id, created_at")
        .eq("institute_id", institute_id)
        .execute()
    ).data or []
    since = (datetime.now(timezone.utc) - timedelta(days=7)).isoformat()
    recent = (
        db.table("students")
        .select("id", count="exact")
        .eq("institute_id", institute_id)
        .gte("created_at", since)
        .execute()
    ).count or 0

    total = len(rows)
    verified = sum(1 for r in rows if r.get("is_verified"))
    top = Counter(r.get("course_id") for r in rows if r.get("course_id")).most_common(5)
    names = course_names(db, institute_id, [cid for cid, _ in top])

    return {
        "total_students": total,
        "verified_students": verified,
        "unverified_students": total - verified,
        "recent_registrations": recent,
        "verification_rate": round(verified / total * 100) if total else 0,
        "top_courses": [
            {"course_id": cid, "course_name": names.get(cid), "count": count}
            for cid, count in top
        ],
        "last_updated": datetime.now(timezone.utc).isoformat(),
    }


def export_students(db: Client, institute_id: str, **filters) -> list[dict]:
    rows = (
        _student_query(db, institute_id, **filters)
        .order("roll_number")
        .execute()
    ).data or []
    names = course_names(db, institute_id, [r.get("course_id") for r in rows])
    return [{**public_row(r), "course_name": names.get(r.get("course_id"))} for r in rows]


def students_to_csv(students: list[dict]) -> str:
    buffer = io.StringIO()
    writer = csv.writer(buffer, quoting=csv.QUOTE_ALL, lineterminator="\n")
    writer.writerow(EXPORT_HEADERS)
    for s in students:
        writer.writerow([
            s.get("roll_number"),
            s.get("name"),
            s.get("email"),
            s.get("phone") or "",
            s.get("course_name") or "",
            s.get("current_semester"),
            s.get("admission_year"),
            s.get("academic_status"),
            "Verified" if s.get("is_verified") else "Pending",
            (s.get("created_at") or "")[:10],
        ])
    return buffer.getvalue()
