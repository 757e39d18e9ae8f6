"""
Course Management router — Course CRUD, semester assignments, bulk updates.
All endpoints are admin-only and scoped to the caller's institute.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query

from app.core.database import get_supabase
from app.core.middleware import get_institute_id
from app.core.security import require_role
from app.schemas.course import BulkCourseUpdate, CourseCreate, CourseUpdate, SemesterAssignmentCheck
from app.services import bulk_operations, catalog_validator, course_service, queries
from app.utils.response import success_response

router = APIRouter(prefix="/api/institute/courses", tags=["Course Management"])


@router.get("")
async def list_courses(
    page: int = Query(1, ge=1),
    limit: Optional[int] = Query(None, ge=1),
    search: str = "",
    department: str = "",
    degree_type: str = "",
    status: str = "",
    academic_year: str = "",
    assigned_department: str = "",
    assigned_semester: Optional[int] = Query(None, ge=1, le=8),
    sort_by: str = "created_at",
    sort_order: str = "desc",
    user: dict = Depends(require_role(["admin"])),
):
    db = get_supabase()
    institute_id = get_institute_id(user)
    data = queries.list_courses(
        db,
        institute_id,
        page=page,
        limit=limit,
        search=search,
        department=department,
        degree_type=degree_type,
        status=status,
        academic_year=academic_year,
        assigned_department=assigned_department,
        assigned_semester=assigned_semester,
        sort_by=sort_by,
        sort_order=sort_order,
    )
    return success_response(data=data)


@router.post("", status_code=201)
async def create_course(
    body: CourseCreate,
    user: dict = Depends(require_role(["admin"])),
):
    db = get_supabase()
    institute_id = get_institute_id(user)
    course = course_service.create_course(db, institute_id, body.model_dump(), created_by=user.get("admin_id"))
    return success_response(data=course, message="Course created successfully")


# ═══════════════════════════════════════════════════════════
# SEMESTER ASSIGNMENTS
# ═══════════════════════════════════════════════════════════

@router.get("/semester-assignments")
async def semester_assignments(user: dict = Depends(require_role(["admin"]))):
    db = get_supabase()
    institute_id = get_institute_id(user)
    return success_response(data=course_service.get_semester_assignments(db, institute_id))


@router.post("/validate-assignment")
async def validate_assignment(
    body: SemesterAssignmentCheck,
    user: dict = Depends(require_role(["admin"])),
):
    """Check whether a department/semester slot is free (for form hints)."""
    db = get_supabase()
    institute_id = get_institute_id(user)
    result = catalog_validator.validate_semester_assignment(
        db,
        institute_id,
        body.assigned_department,
        body.assigned_semester,
        exclude_id=body.exclude_course_id,
    )
    return success_response(data=result, message=result["message"])


# ═══════════════════════════════════════════════════════════
# BULK OPERATIONS
# ═══════════════════════════════════════════════════════════

@router.put("/bulk-update")
async def bulk_update_courses(
    body: BulkCourseUpdate,
    user: dict = Depends(require_role(["admin"])),
):
    db = get_supabase()
    institute_id = get_institute_id(user)
    result = bulk_operations.bulk_update_courses(db, institute_id, body.course_ids, body.action, body.value)
    return success_response(
        data={"courses_affected": result["affected"], "action": result["action"], "value": result["value"]},
        message=f"{result['affected']} courses {result['action_message']} successfully",
    )


@router.post("/sync-enrollments")
async def sync_enrollments(user: dict = Depends(require_role(["admin"]))):
    db = get_supabase()
    institute_id = get_institute_id(user)
    result = course_service.sync_course_enrollments(db, institute_id)
    return success_response(data=result, message=f"{result['updated_courses']} courses synced successfully")


# ═══════════════════════════════════════════════════════════
# SINGLE COURSE
# ═══════════════════════════════════════════════════════════

@router.get("/{course_id}")
async def get_course(course_id: str, user: dict = Depends(require_role(["admin"]))):
    db = get_supabase()
    institute_id = get_institute_id(user)
    return success_response(data=course_service.get_course(db, institute_id, course_id))


@router.put("/{course_id}")
async def update_course(
    course_id: str,
    body: CourseUpdate,
    user: dict = Depends(require_role(["admin"])),
):
    db = get_supabase()
    institute_id = get_institute_id(user)
    course = course_service.update_course(db, institute_id, course_id, body.model_dump(exclude_unset=True))
    return success_response(data=course, message="Course updated successfully")


@router.delete("/{course_id}")
async def delete_course(course_id: str, user: dict = Depends(require_role(["admin"]))):
    db = get_supabase()
    institute_id = get_institute_id(user)
    result = course_service.delete_course(db, institute_id, course_id)
    return success_response(data=result, message="Course deleted successfully")
