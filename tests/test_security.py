"""
Tests for password hashing, session tokens and tenant resolution.
"""
from datetime import timedelta

import pytest
from jose import jwt

from app.core.config import settings
from app.core.exceptions import TenantInactive, Unauthenticated
from app.core.security import (
    create_access_token,
    decode_token,
    get_password_hash,
    issue_admin_token,
    issue_student_token,
    verify_password,
)
from conftest import auth_headers


class TestPasswordHashing:
    """Tests for bcrypt helpers"""

    def test_hash_and_verify(self):
        hashed = get_password_hash("s3cret-pass")
        assert hashed != "s3cret-pass"
        assert verify_password("s3cret-pass", hashed) is True
        assert verify_password("wrong-pass", hashed) is False

    def test_verify_rejects_missing_or_malformed_hash(self):
        assert verify_password("anything", None) is False
        assert verify_password("anything", "not-a-bcrypt-hash") is False


class TestTokens:
    """Tests for JWT issue and decode"""

    def test_admin_token_carries_tenant(self, institute):
        claims = decode_token(issue_admin_token(institute))
        assert claims["role"] == "admin"
        assert claims["institute_id"] == institute["id"]
        assert claims["iss"] == settings.JWT_ISSUER

    def test_student_token_carries_student(self, institute, make_student):
        student = make_student()
        claims = decode_token(issue_student_token(student))
        assert claims["role"] == "student"
        assert claims["student_id"] == student["id"]
        assert claims["institute_id"] == institute["id"]

    def test_expired_token(self):
        token = create_access_token({"role": "admin", "institute_id": "x"}, timedelta(seconds=-10))
        with pytest.raises(Unauthenticated) as exc:
            decode_token(token)
        assert exc.value.message == "Token expired."

    def test_tampered_token(self):
        token = jwt.encode(
            {"role": "admin", "institute_id": "x", "iss": settings.JWT_ISSUER},
            "some-other-secret",
            algorithm="HS256",
        )
        with pytest.raises(Unauthenticated):
            decode_token(token)

    def test_wrong_issuer(self):
        token = jwt.encode(
            {"role": "admin", "institute_id": "x", "iss": "someone-else"},
            settings.JWT_SECRET_KEY,
            algorithm=settings.JWT_ALGORITHM,
        )
        with pytest.raises(Unauthenticated):
            decode_token(token)

    def test_error_kinds(self):
        assert Unauthenticated.status_code == 401
        assert TenantInactive.status_code == 401


class TestTenantResolution:
    """Tests for get_current_user through a protected endpoint"""

    def test_missing_token(self, client):
        response = client.get("/api/institute/courses")
        assert response.status_code == 401
        body = response.json()
        assert body["success"] is False
        assert body["data"]["code"] == "UNAUTHENTICATED"

    def test_garbage_token(self, client):
        response = client.get("/api/institute/courses", headers=auth_headers("not.a.jwt"))
        assert response.status_code == 401

    def test_unknown_institute(self, client):
        token = create_access_token({"role": "admin", "institute_id": "missing", "admin_id": "missing"})
        response = client.get("/api/institute/courses", headers=auth_headers(token))
        assert response.status_code == 401
        assert response.json()["data"]["code"] == "TENANT_INACTIVE"

    def test_inactive_institute(self, client, db, institute, admin_headers):
        db.table("institutes").update({"status": "Suspended"}).eq("id", institute["id"]).execute()
        response = client.get("/api/institute/courses", headers=admin_headers)
        assert response.status_code == 401
        assert response.json()["data"]["code"] == "TENANT_INACTIVE"

    def test_student_cannot_use_admin_routes(self, client, make_student, student_headers):
        student = make_student()
        response = client.get("/api/institute/courses", headers=student_headers(student))
        assert response.status_code == 403
        assert response.json()["data"]["code"] == "FORBIDDEN"

    def test_admin_cannot_use_student_routes(self, client, admin_headers):
        response = client.get("/api/student/me", headers=admin_headers)
        assert response.status_code == 403

    def test_deleted_student_token_rejected(self, client, db, make_student, student_headers):
        student = make_student()
        headers = student_headers(student)
        db.table("students").delete().eq("id", student["id"]).execute()
        response = client.get("/api/student/me", headers=headers)
        assert response.status_code == 401
