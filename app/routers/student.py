"""
Student router — self-service views for a logged-in student.
"""

from fastapi import APIRouter, Depends

from app.core.database import get_supabase
from app.core.middleware import get_institute_id
from app.core.security import require_role
from app.services import accounts, student_service
from app.utils.response import success_response

router = APIRouter(prefix="/api/student", tags=["Student"])


@router.get("/me")
async def get_me(user: dict = Depends(require_role(["student"]))):
    db = get_supabase()
    institute_id = get_institute_id(user)
    return success_response(data=accounts.get_student_profile(db, institute_id, user["student_id"]))


@router.get("/course")
async def get_my_course(user: dict = Depends(require_role(["student"]))):
    db = get_supabase()
    institute_id = get_institute_id(user)
    return success_response(data=student_service.get_own_course(db, institute_id, user["student_id"]))


@router.get("/grades")
async def get_my_grades(user: dict = Depends(require_role(["student"]))):
    db = get_supabase()
    institute_id = get_institute_id(user)
    grades = student_service.get_own_grades(db, institute_id, user["student_id"])
    return success_response(data={"grades": grades, "total": len(grades)})
