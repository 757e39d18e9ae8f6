"""
Student Management router — admin listing, export, verification and bulk updates.
"""

from datetime import datetime, timezone
from typing import Optional

from fastapi import APIRouter, Depends, Query
from fastapi.responses import Response

from app.core.database import get_supabase
from app.core.middleware import get_institute_id
from app.core.security import require_role
from app.schemas.student import BulkStudentUpdate, VerificationUpdate
from app.services import bulk_operations, queries, student_service
from app.utils.response import success_response

router = APIRouter(prefix="/api/institute", tags=["Student Management"])


@router.get("/students")
async def list_students(
    page: int = Query(1, ge=1),
    limit: Optional[int] = Query(None, ge=1),
    search: str = "",
    status: str = "",
    course_id: str = "",
    semester: Optional[int] = Query(None, ge=1, le=8),
    admission_year: Optional[int] = None,
    sort_by: str = "created_at",
    sort_order: str = "desc",
    user: dict = Depends(require_role(["admin"])),
):
    db = get_supabase()
    institute_id = get_institute_id(user)
    data = queries.list_students(
        db,
        institute_id,
        page=page,
        limit=limit,
        search=search,
        status=status,
        course_id=course_id,
        semester=semester,
        admission_year=admission_year,
        sort_by=sort_by,
        sort_order=sort_order,
    )
    return success_response(data=data)


@router.get("/students/export")
async def export_students(
    format: str = Query("csv", pattern="^(csv|json)$"),
    search: str = "",
    status: str = "",
    course_id: str = "",
    semester: Optional[int] = Query(None, ge=1, le=8),
    admission_year: Optional[int] = None,
    user: dict = Depends(require_role(["admin"])),
):
    db = get_supabase()
    institute_id = get_institute_id(user)
    students = queries.export_students(
        db,
        institute_id,
        search=search,
        status=status,
        course_id=course_id,
        semester=semester,
        admission_year=admission_year,
    )

    if format == "json":
        return success_response(data={"students": students, "total": len(students)})

    filename = f"students_export_{datetime.now(timezone.utc).date().isoformat()}.csv"
    return Response(
        content=queries.students_to_csv(students),
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.put("/students/bulk-update")
async def bulk_update_students(
    body: BulkStudentUpdate,
    user: dict = Depends(require_role(["admin"])),
):
    db = get_supabase()
    institute_id = get_institute_id(user)
    result = bulk_operations.bulk_update_students(db, institute_id, body.student_ids, body.action, body.value)
    return success_response(
        data={"students_affected": result["affected"], "action": result["action"], "value": result["value"]},
        message=f"{result['affected']} students {result['action_message']} successfully",
    )


@router.patch("/students/{student_id}/verification")
async def update_verification(
    student_id: str,
    body: VerificationUpdate,
    user: dict = Depends(require_role(["admin"])),
):
    db = get_supabase()
    institute_id = get_institute_id(user)
    result = student_service.update_student_verification(db, institute_id, student_id, body.is_verified)
    return success_response(
        data=result,
        message=f"Student {'verified' if body.is_verified else 'unverified'} successfully.",
    )


@router.get("/dashboard/stats")
async def dashboard_stats(user: dict = Depends(require_role(["admin"]))):
    db = get_supabase()
    institute_id = get_institute_id(user)
    return success_response(data=queries.dashboard_stats(db, institute_id))
