"""
Auth router — Institute registration/login and Student registration/login.

Rules:
- Institutes register once; their single admin logs in with code + email
- Students register against an Active institute code
- Students can log in only after the institute admin verifies them
- Every successful login returns a signed Bearer token
"""

from fastapi import APIRouter, Depends

from app.core.database import get_supabase
from app.core.middleware import get_institute_id
from app.core.security import require_role
from app.schemas.auth import InstituteLogin, InstituteRegister, StudentLogin, StudentRegister
from app.services import accounts
from app.utils.response import success_response

router = APIRouter(prefix="/api/auth", tags=["Authentication"])


# ═══════════════════════════════════════════════════════════
# INSTITUTE
# ═══════════════════════════════════════════════════════════

@router.post("/institute/register", status_code=201)
async def register_institute(body: InstituteRegister):
    db = get_supabase()
    data = accounts.register_institute(db, body.model_dump())
    return success_response(data=data, message="Institute registered successfully.")


@router.post("/institute/login")
async def login_institute(body: InstituteLogin):
    db = get_supabase()
    data = accounts.login_institute(db, body.institute_code, body.email, body.password)
    return success_response(data=data, message="Login successful.")


@router.get("/institute/profile")
async def institute_profile(user: dict = Depends(require_role(["admin"]))):
    db = get_supabase()
    institute_id = get_institute_id(user)
    return success_response(data=accounts.get_institute_profile(db, institute_id))


# ═══════════════════════════════════════════════════════════
# STUDENT
# ═══════════════════════════════════════════════════════════

@router.post("/student/register", status_code=201)
async def register_student(body: StudentRegister):
    db = get_supabase()
    data = accounts.register_student(db, body.model_dump())
    return success_response(data=data, message="Student registered successfully.")


@router.post("/student/login")
async def login_student(body: StudentLogin):
    db = get_supabase()
    data = accounts.login_student(db, body.institute_code, body.roll_number, body.password)
    return success_response(data=data, message="Login successful.")


@router.get("/student/profile")
async def student_profile(user: dict = Depends(require_role(["student"]))):
    db = get_supabase()
    institute_id = get_institute_id(user)
    return success_response(data=accounts.get_student_profile(db, institute_id, user["student_id"]))
