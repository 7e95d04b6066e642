"""Test fixtures and sample data."""
import pytest
from sqlalchemy.orm import Session

from models import LinkedInstitution
from tests.fixtures.mocks import (
    CHASE,
    SAMPLE_ACCOUNTS,
    SAMPLE_TRANSACTIONS,
    MockItem,
    MockProviderClient,
)

CHASE_TOKEN = "access-sandbox-00000000-chase"


def create_linked_institution(
    db: Session,
    owner_id: str = "user-1",
    access_token: str = CHASE_TOKEN,
    item_id: str | None = "item-chase",
    institution_name: str | None = "Chase",
) -> LinkedInstitution:
    """Add a linked institution row and flush it."""
    institution = LinkedInstitution(
        owner_id=owner_id,
        access_token=access_token,
        item_id=item_id,
        institution_name=institution_name,
    )
    db.add(institution)
    db.flush()
    return institution


@pytest.fixture
def linked_institution(db: Session) -> LinkedInstitution:
    """A linked Chase institution owned by user-1."""
    institution = create_linked_institution(db)
    db.commit()
    db.refresh(institution)
    return institution


@pytest.fixture
def mock_client() -> MockProviderClient:
    """Provider client serving the sample Chase item."""
    return MockProviderClient(
        items={
            CHASE_TOKEN: MockItem(
                institution_id="ins_chase",
                accounts=list(SAMPLE_ACCOUNTS),
                transactions=list(SAMPLE_TRANSACTIONS),
            ),
        },
        institutions={"ins_chase": CHASE},
    )
