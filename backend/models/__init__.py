"""SQLAlchemy ORM models."""

from .linked_institution import LinkedInstitution
from .utils import generate_uuid

__all__ = ["LinkedInstitution", "generate_uuid"]
