"""
Security module — password hashing, signed session tokens, tenant resolution
and role guard.

Auth Flow:
1. Institute admin or student logs in with institute code + credentials
2. Backend issues a signed JWT carrying role and institute_id
3. Frontend sends the JWT as a Bearer token
4. get_current_user verifies signature, expiry and issuer
5. Backend checks: does the institute exist? is it Active?
6. Backend injects: institute_id, role, admin_id / student_id
7. Every service call is scoped by that institute_id

Any failure stops the request before a service runs.
"""

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

import bcrypt
from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import ExpiredSignatureError, JWTError, jwt

from app.core.config import settings
from app.core.database import get_supabase
from app.core.exceptions import Forbidden, TenantInactive, Unauthenticated
from app.core.logging_config import get_logger

logger = get_logger(__name__)

security_scheme = HTTPBearer(auto_error=False)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    if not hashed_password:
        return False
    try:
        return bcrypt.checkpw(
            plain_password.encode("utf-8")[:72],
            hashed_password.encode("utf-8"),
        )
    except ValueError:
        return False


def get_password_hash(password: str) -> str:
    salt = bcrypt.gensalt(rounds=settings.BCRYPT_ROUNDS)
    hashed = bcrypt.hashpw(password.encode("utf-8")[:72], salt)
    return hashed.decode("utf-8")


# ---------------------------------------------------------------------------
# Session tokens
# ---------------------------------------------------------------------------
def create_access_token(claims: Dict[str, Any], expires_delta: Optional[timedelta] = None) -> str:
    now = datetime.now(timezone.utc)
    expire = now + (expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES))
    to_encode = {
        **claims,
        "iss": settings.JWT_ISSUER,
        "iat": int(now.timestamp()),
        "exp": int(expire.timestamp()),
    }
    return jwt.encode(to_encode, settings.JWT_SECRET_KEY, algorithm=settings.JWT_ALGORITHM)


def decode_token(token: str) -> Dict[str, Any]:
    try:
        return jwt.decode(
            token,
            settings.JWT_SECRET_KEY,
            algorithms=[settings.JWT_ALGORITHM],
            issuer=settings.JWT_ISSUER,
        )
    except ExpiredSignatureError:
        raise Unauthenticated("Token expired.")
    except JWTError:
        raise Unauthenticated("Invalid token.")


def issue_admin_token(institute: Dict[str, Any]) -> str:
    return create_access_token({
        "sub": institute["id"],
        "role": "admin",
        "institute_id": institute["id"],
        # single admin account per institute
        "admin_id": institute["id"],
    })


def issue_student_token(student: Dict[str, Any]) -> str:
    return create_access_token({
        "sub": student["id"],
        "role": "student",
        "institute_id": student["institute_id"],
        "student_id": student["id"],
        "roll_number": student.get("roll_number"),
    })


# ---------------------------------------------------------------------------
# Tenant resolution: the core auth dependency
# ---------------------------------------------------------------------------
async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security_scheme),
) -> dict:
    """
    Validate the Bearer token and return the caller context.
    Enforces: token signature/expiry/issuer, institute exists and is Active.
    """
    if credentials is None or not credentials.credentials:
        raise Unauthenticated()

    claims = decode_token(credentials.credentials)
    institute_id = claims.get("institute_id")
    role = claims.get("role")
    if not institute_id or role not in ("admin", "student"):
        raise Unauthenticated("Invalid token.")

    db = get_supabase()
    result = (
        db.table("institutes")
        .select("id, name, code, status")
        .eq("id", institute_id)
        .limit(1)
        .execute()
    )
    institute = result.data[0] if result.data else None
    if not institute or institute.get("status") != "Active":
        logger.warning(f"Rejected token for missing or inactive institute {institute_id}")
        raise TenantInactive()

    user = {
        "institute_id": institute_id,
        "role": role,
        "institute_name": institute.get("name"),
        "institute_code": institute.get("code"),
    }

    if role == "admin":
        user["admin_id"] = claims.get("admin_id")
        return user

    student_id = claims.get("student_id")
    student = (
        db.table("students")
        .select("id")
        .eq("id", student_id)
        .eq("institute_id", institute_id)
        .limit(1)
        .execute()
    )
    if not student.data:
        raise Unauthenticated("Invalid student token.")
    user["student_id"] = student_id
    return user


# ---------------------------------------------------------------------------
# Role guard dependency
# ---------------------------------------------------------------------------
def require_role(allowed_roles: list[str]):
    """
    Usage:
        @router.get("/admin-only")
        async def endpoint(user=Depends(require_role(["admin"]))):
    """

    async def role_checker(
        user: dict = Depends(get_current_user),
    ) -> dict:
        if user["role"] not in allowed_roles:
            raise Forbidden(f"Role '{user['role']}' not authorized. Required: {allowed_roles}")
        return user

    return role_checker
