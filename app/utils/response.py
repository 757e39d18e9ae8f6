"""
Standard API response envelope: {success, data, message}.
Failures carry the error code and structured details in data.
"""

from typing import Any, Optional

from fastapi.responses import JSONResponse

from app.core.exceptions import CatalogError


def success_response(data: Any = None, message: str = "Success") -> dict:
    return {"success": True, "data": data, "message": message}


def error_response(message: str = "Error", data: Optional[dict] = None) -> dict:
    return {"success": False, "data": data, "message": message}


def catalog_error_response(exc: CatalogError) -> JSONResponse:
    """Render a domain error with its own status code, e.g. 400 {code: DUPLICATE_COURSE_CODE, ...}."""
    return JSONResponse(
        status_code=exc.status_code,
        content=error_response(message=exc.message, data=exc.to_dict()),
    )
