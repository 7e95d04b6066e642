"""Linked institution service - stores and rotates provider access tokens."""

import logging

from sqlalchemy.orm import Session

from integrations.provider_protocol import ProviderClient
from models import LinkedInstitution

logger = logging.getLogger(__name__)


class LinkedInstitutionService:
    """Create, list, re-authenticate and unlink a user's institutions."""

    @staticmethod
    def link(
        db: Session,
        client: ProviderClient,
        owner_id: str,
        public_token: str,
        institution_name: str | None = None,
    ) -> LinkedInstitution:
        """Exchange a Link public token and store the resulting Item.

        Re-linking an Item the owner already has rotates its access token
        instead of creating a second row.

        Raises:
            ValueError: If the Item is already linked by a different owner.
        """
        result = client.exchange_public_token(public_token)

        existing = (
            db.query(LinkedInstitution)
            .filter(LinkedInstitution.item_id == result.item_id)
            .first()
        )
        if existing:
            if existing.owner_id != owner_id:
                raise ValueError(f"Item {result.item_id} is linked to another user")
            existing.access_token = result.access_token
            if institution_name:
                existing.institution_name = institution_name
            db.flush()
            logger.info("Rotated access token for item %s", result.item_id)
            return existing

        institution = LinkedInstitution(
            owner_id=owner_id,
            item_id=result.item_id,
            access_token=result.access_token,
            institution_name=institution_name,
        )
        db.add(institution)
        db.flush()
        logger.info("Linked item %s (%s) for owner %s", result.item_id, institution_name, owner_id)
        return institution

    @staticmethod
    def list_for_owner(db: Session, owner_id: str) -> list[LinkedInstitution]:
        """Return the owner's institutions, oldest link first."""
        return (
            db.query(LinkedInstitution)
            .filter(LinkedInstitution.owner_id == owner_id)
            .order_by(LinkedInstitution.created_at, LinkedInstitution.id)
            .all()
        )

    @staticmethod
    def get(db: Session, institution_id: str) -> LinkedInstitution:
        """Return one institution.

        Raises:
            ValueError: If no institution has this id.
        """
        institution = db.get(LinkedInstitution, institution_id)
        if institution is None:
            raise ValueError(f"Linked institution not found: {institution_id}")
        return institution

    @staticmethod
    def rotate_access_token(
        db: Session, institution_id: str, access_token: str
    ) -> LinkedInstitution:
        """Replace the stored access token after a re-authentication flow."""
        if not access_token:
            raise ValueError("access_token must not be empty")
        institution = LinkedInstitutionService.get(db, institution_id)
        institution.access_token = access_token
        db.flush()
        logger.info("Rotated access token for linked institution %s", institution_id)
        return institution

    @staticmethod
    def unlink(db: Session, client: ProviderClient, institution_id: str) -> None:
        """Revoke the Item with the provider, then delete it locally.

        The local row is removed even if the provider call fails.
        """
        institution = LinkedInstitutionService.get(db, institution_id)
        try:
            client.remove_item(institution.access_token)
        except Exception as e:
            logger.warning(
                "Failed to remove item %s remotely (removing locally anyway): %s",
                institution.item_id, e,
            )
        db.delete(institution)
        db.flush()
        logger.info("Unlinked institution %s (item %s)", institution_id, institution.item_id)
