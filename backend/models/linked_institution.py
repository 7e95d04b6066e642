"""LinkedInstitution model - stores provider access tokens per linked institution."""

from sqlalchemy import Column, DateTime, String

from database import Base
from models.utils import generate_uuid, utc_now


class LinkedInstitution(Base):
    """A user's link to one financial institution via the provider.

    Each institution linked through Plaid Link gets its own Item and
    access_token. The token is rotated in place when the user
    re-authenticates; the row is deleted on unlink.
    """

    __tablename__ = "linked_institutions"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    owner_id = Column(String, index=True, nullable=False)
    item_id = Column(String, unique=True, index=True, nullable=True)
    access_token = Column(String, nullable=False)
    institution_name = Column(String, nullable=True)  # Cached display name
    created_at = Column(DateTime, default=utc_now)

    def __repr__(self) -> str:
        # access_token must never appear here
        return (
            f"LinkedInstitution(id={self.id!r}, owner_id={self.owner_id!r}, "
            f"item_id={self.item_id!r}, institution_name={self.institution_name!r})"
        )
