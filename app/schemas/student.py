"""
Pydantic schemas for admin-side student management.
"""

from pydantic import BaseModel
from typing import Any, List, Optional


class VerificationUpdate(BaseModel):
    is_verified: bool


class BulkStudentUpdate(BaseModel):
    student_ids: List[str]
    action: str
    value: Optional[Any] = None
