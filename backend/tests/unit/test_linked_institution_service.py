"""Tests for LinkedInstitutionService."""

import pytest

from integrations.exceptions import ProviderAPIError
from integrations.provider_protocol import ExchangeResult
from models import LinkedInstitution
from services.linked_institution_service import LinkedInstitutionService
from tests.fixtures import CHASE_TOKEN, create_linked_institution


@pytest.fixture
def exchanging_client(mock_client):
    mock_client.exchange_results["public-sandbox-new"] = ExchangeResult(
        access_token="access-sandbox-22222222-new", item_id="item-new"
    )
    mock_client.exchange_results["public-sandbox-relink"] = ExchangeResult(
        access_token="access-sandbox-33333333-rotated", item_id="item-chase"
    )
    return mock_client


# ---------------------------------------------------------------------------
# link()
# ---------------------------------------------------------------------------


class TestLink:
    def test_link_creates_institution(self, db, exchanging_client):
        institution = LinkedInstitutionService.link(
            db, exchanging_client, "user-1", "public-sandbox-new", institution_name="Ally"
        )

        assert institution.id is not None
        assert institution.owner_id == "user-1"
        assert institution.item_id == "item-new"
        assert institution.access_token == "access-sandbox-22222222-new"
        assert institution.institution_name == "Ally"
        assert db.query(LinkedInstitution).count() == 1

    def test_relink_rotates_existing_token(self, db, linked_institution, exchanging_client):
        institution = LinkedInstitutionService.link(
            db, exchanging_client, "user-1", "public-sandbox-relink"
        )

        assert institution.id == linked_institution.id
        assert institution.access_token == "access-sandbox-33333333-rotated"
        # Name kept when none is given
        assert institution.institution_name == "Chase"
        assert db.query(LinkedInstitution).count() == 1

    def test_relink_by_other_owner_rejected(self, db, linked_institution, exchanging_client):
        with pytest.raises(ValueError, match="another user"):
            LinkedInstitutionService.link(db, exchanging_client, "user-2", "public-sandbox-relink")

        db.refresh(linked_institution)
        assert linked_institution.access_token == CHASE_TOKEN


# ---------------------------------------------------------------------------
# Queries
# ---------------------------------------------------------------------------


class TestQueries:
    def test_list_for_owner_oldest_first(self, db):
        first = create_linked_institution(db, access_token="access-a", item_id="item-a")
        second = create_linked_institution(db, access_token="access-b", item_id="item-b")
        create_linked_institution(db, owner_id="user-2", access_token="access-c", item_id="item-c")

        result = LinkedInstitutionService.list_for_owner(db, "user-1")

        assert [i.id for i in result] == [first.id, second.id]

    def test_list_for_unknown_owner_is_empty(self, db, linked_institution):
        assert LinkedInstitutionService.list_for_owner(db, "nobody") == []

    def test_get(self, db, linked_institution):
        assert LinkedInstitutionService.get(db, linked_institution.id) is linked_institution

    def test_get_missing_raises(self, db):
        with pytest.raises(ValueError, match="not found"):
            LinkedInstitutionService.get(db, "missing")


# ---------------------------------------------------------------------------
# Re-authentication and unlink
# ---------------------------------------------------------------------------


class TestRotateAccessToken:
    def test_rotates_token(self, db, linked_institution):
        LinkedInstitutionService.rotate_access_token(db, linked_institution.id, "access-sandbox-fresh")

        db.refresh(linked_institution)
        assert linked_institution.access_token == "access-sandbox-fresh"

    def test_empty_token_rejected(self, db, linked_institution):
        with pytest.raises(ValueError):
            LinkedInstitutionService.rotate_access_token(db, linked_institution.id, "")


class TestUnlink:
    def test_unlink_removes_remotely_and_locally(self, db, linked_institution, mock_client):
        LinkedInstitutionService.unlink(db, mock_client, linked_institution.id)

        assert mock_client.removed == [CHASE_TOKEN]
        assert db.query(LinkedInstitution).count() == 0

    def test_unlink_survives_remote_failure(self, db, linked_institution, mock_client):
        mock_client.remove_error = ProviderAPIError("gone", status_code=500)

        LinkedInstitutionService.unlink(db, mock_client, linked_institution.id)

        assert db.query(LinkedInstitution).count() == 0


# ---------------------------------------------------------------------------
# Model
# ---------------------------------------------------------------------------


class TestLinkedInstitutionModel:
    def test_repr_hides_access_token(self, linked_institution):
        assert CHASE_TOKEN not in repr(linked_institution)
        assert "item-chase" in repr(linked_institution)

    def test_created_at_set(self, linked_institution):
        assert linked_institution.created_at is not None
