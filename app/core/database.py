from postgrest.exceptions import APIError
from supabase import create_client, Client
from app.core.config import settings

_supabase_client: Client | None = None

# Postgres SQLSTATE raised when a unique index rejects a write
UNIQUE_VIOLATION = "23505"


def get_supabase() -> Client:
    global _supabase_client
    if _supabase_client is None:
        _supabase_client = create_client(
            settings.SUPABASE_URL,
            settings.SUPABASE_SERVICE_KEY or settings.SUPABASE_KEY,
        )
    return _supabase_client


def violated_constraint(exc: APIError) -> str | None:
    """
    Return the name of the unique index a write tripped over, or None when
    the error is not a unique violation.
    """
    if exc.code != UNIQUE_VIOLATION:
        return None
    text = f"{exc.message or ''} {exc.details or ''}"
    start = text.find('"')
    end = text.find('"', start + 1)
    if start == -1 or end == -1:
        return ""
    return text[start + 1:end]
