"""
Domain exceptions.

Services raise these; the handlers registered in app.main turn them into the
standard {success: false, message, data} envelope with the matching status
code. Validation and conflict errors are always raised before any write.
"""

from typing import Any, Dict, Optional


class CatalogError(Exception):
    """Base exception for all catalog errors"""

    status_code = 500

    def __init__(
        self,
        message: str,
        code: str = "UNEXPECTED",
        details: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.code = code
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        return {"code": self.code, **self.details}


# ---- Tenant context ----

class Unauthenticated(CatalogError):
    status_code = 401

    def __init__(self, message: str = "Access denied. No token provided."):
        super().__init__(message, code="UNAUTHENTICATED")


class TenantInactive(CatalogError):
    status_code = 401

    def __init__(self, message: str = "Institute not found or inactive."):
        super().__init__(message, code="TENANT_INACTIVE")


class Forbidden(CatalogError):
    status_code = 403

    def __init__(self, message: str = "Not authorized"):
        super().__init__(message, code="FORBIDDEN")


# ---- Input ----

class ValidationFailed(CatalogError):
    """Malformed input, reported per field."""

    status_code = 400

    def __init__(self, message: str = "Validation failed", errors: Optional[Dict[str, str]] = None):
        super().__init__(message, code="VALIDATION_FAILED", details={"errors": errors or {}})
        self.errors = errors or {}


class InvalidAction(CatalogError):
    status_code = 400

    def __init__(self, action: Any, supported: list[str]):
        super().__init__(
            f"Invalid action. Supported actions: {', '.join(supported)}",
            code="INVALID_ACTION",
            details={"action": action, "supported_actions": supported},
        )


# ---- Conflicts ----

class DuplicateCourseCode(CatalogError):
    status_code = 400

    def __init__(self, course_code: str, conflicting: Optional[Dict[str, Any]] = None):
        conflicting = conflicting or {}
        super().__init__(
            "Course code already exists in your institute",
            code="DUPLICATE_COURSE_CODE",
            details={
                "errors": {"course_code": "This course code is already in use"},
                "course_code": course_code,
                "conflicting_course": _course_identity(conflicting),
            },
        )


class DuplicateSemesterAssignment(CatalogError):
    status_code = 400

    def __init__(self, department: str, semester: int, conflicting: Optional[Dict[str, Any]] = None):
        conflicting = conflicting or {}
        name = conflicting.get("course_name")
        if name:
            message = (
                f'Another course "{name}" is already assigned to {department} '
                f"in Semester {semester}"
            )
            field_error = f'{department} - Semester {semester} is already taken by "{name}"'
        else:
            message = f"{department} - Semester {semester} is already assigned to another course"
            field_error = message
        super().__init__(
            message,
            code="DUPLICATE_SEMESTER_ASSIGNMENT",
            details={
                "errors": {"assigned_semester": field_error},
                "assigned_department": department,
                "assigned_semester": semester,
                "conflicting_course": _course_identity(conflicting),
            },
        )


class Duplicate(CatalogError):
    """Uniqueness violation on anything other than a course."""

    status_code = 400

    def __init__(self, message: str, field: Optional[str] = None):
        errors = {field: message} if field else {}
        super().__init__(message, code="DUPLICATE", details={"errors": errors})


# ---- Resources ----

class NotFound(CatalogError):
    status_code = 404

    def __init__(self, resource: str, resource_id: Any = None, message: Optional[str] = None):
        super().__init__(
            message or f"{resource} not found",
            code=f"{resource.upper()}_NOT_FOUND",
            details={"resource": resource, "resource_id": resource_id},
        )


class DeletionBlocked(CatalogError):
    status_code = 400

    def __init__(self, message: str, details: Dict[str, Any]):
        super().__init__(message, code="DELETION_BLOCKED", details=details)


class Unexpected(CatalogError):
    status_code = 500

    def __init__(self, message: str = "An unexpected error occurred"):
        super().__init__(message, code="UNEXPECTED")


def _course_identity(course: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    if not course:
        return None
    return {
        "id": course.get("id"),
        "course_name": course.get("course_name"),
        "course_code": course.get("course_code"),
        "assigned_department": course.get("assigned_department"),
        "assigned_semester": course.get("assigned_semester"),
    }
