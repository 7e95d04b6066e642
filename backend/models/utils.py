"""Column defaults shared by ORM models."""

import uuid
from datetime import datetime, timezone


def generate_uuid() -> str:
    """Primary key default: a random UUID4 string."""
    return str(uuid.uuid4())


def utc_now() -> datetime:
    """Timestamp default: the current time in UTC."""
    return datetime.now(timezone.utc)
