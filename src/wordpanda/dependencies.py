"""Shared FastAPI request helpers."""

from fastapi import HTTPException


def normalize_email(email: str) -> str:
    """Lowercase and trim; subscriber identity is case-insensitive."""
    email = email.strip().lower()
    if "@" not in email:
        raise HTTPException(status_code=400, detail="Valid email required")
    return email
