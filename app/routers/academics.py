"""
Academics router — subjects per course and grade upload.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query

from app.core.database import get_supabase
from app.core.middleware import get_institute_id
from app.core.security import require_role
from app.schemas.academic import GradeUpload, SubjectCreate
from app.services import grade_service, subject_service
from app.utils.response import success_response

router = APIRouter(prefix="/api/institute", tags=["Academics"])


# ═══════════════════════════════════════════════════════════
# SUBJECTS
# ═══════════════════════════════════════════════════════════

@router.get("/subjects")
async def list_subjects(
    course_id: Optional[str] = None,
    semester: Optional[int] = Query(None, ge=1, le=12),
    user: dict = Depends(require_role(["admin"])),
):
    db = get_supabase()
    institute_id = get_institute_id(user)
    subjects = subject_service.list_subjects(db, institute_id, course_id=course_id, semester=semester)
    return success_response(data={"subjects": subjects, "total": len(subjects)})


@router.post("/subjects", status_code=201)
async def create_subject(
    body: SubjectCreate,
    user: dict = Depends(require_role(["admin"])),
):
    db = get_supabase()
    institute_id = get_institute_id(user)
    subject = subject_service.create_subject(db, institute_id, body.model_dump(), created_by=user.get("admin_id"))
    return success_response(data=subject, message="Subject created successfully")


@router.delete("/subjects/{subject_id}")
async def delete_subject(subject_id: str, user: dict = Depends(require_role(["admin"]))):
    db = get_supabase()
    institute_id = get_institute_id(user)
    subject = subject_service.delete_subject(db, institute_id, subject_id)
    return success_response(data=subject, message="Subject deleted successfully")


# ═══════════════════════════════════════════════════════════
# GRADES
# ═══════════════════════════════════════════════════════════

@router.post("/grades")
async def upload_grades(
    body: GradeUpload,
    user: dict = Depends(require_role(["admin"])),
):
    db = get_supabase()
    institute_id = get_institute_id(user)
    result = grade_service.upload_grades(
        db,
        institute_id,
        body.course_id,
        [g.model_dump() for g in body.grades],
        uploaded_by=user.get("admin_id"),
    )
    return success_response(data=result, message=f"{result['grades_uploaded']} grades uploaded successfully")
