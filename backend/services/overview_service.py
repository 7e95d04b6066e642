"""Overview service - consolidated financial overview for one user.

Aggregates every institution the user has linked and derives the net worth
series from the result. Nothing is cached; each call reflects the
provider's current state.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import Optional, Sequence

from sqlalchemy.orm import Session

from config import settings
from integrations.provider_protocol import ProviderClient
from models import LinkedInstitution
from services.institution_aggregator import (
    InstitutionAggregator,
    InstitutionOverview,
    LinkedInstitutionLike,
)
from services.linked_institution_service import LinkedInstitutionService
from services.net_worth_service import NetWorthPoint, derive_net_worth

logger = logging.getLogger(__name__)


@dataclass
class PortfolioOverview:
    """Every institution's overview plus the derived net worth series."""

    institutions: list[InstitutionOverview]
    net_worth_series: list[NetWorthPoint]


@dataclass(frozen=True)
class _Credential:
    """Detached copy of a linked institution, safe to hand to worker threads."""

    id: str
    access_token: str
    item_id: str | None
    institution_name: str | None

    def __repr__(self) -> str:
        return f"_Credential(id={self.id!r}, item_id={self.item_id!r})"


class OverviewService:
    """Builds a user's PortfolioOverview from their linked institutions."""

    def __init__(
        self,
        client: Optional[ProviderClient] = None,
        aggregator: Optional[InstitutionAggregator] = None,
        max_workers: Optional[int] = None,
    ):
        """Initialize with an optional provider client for dependency injection.

        Args:
            client: Provider client. If None, a PlaidClient is created on
                first use.
            aggregator: Pre-built institution aggregator (overrides client).
            max_workers: Institutions aggregated concurrently; 1 is sequential.
        """
        self._client = client
        self._aggregator = aggregator
        self._max_workers = max_workers if max_workers is not None else settings.OVERVIEW_MAX_WORKERS

    @property
    def client(self) -> ProviderClient:
        """Get the provider client, creating the Plaid client if not provided."""
        if self._client is None:
            from integrations.plaid_client import PlaidClient

            self._client = PlaidClient()
        return self._client

    @property
    def aggregator(self) -> InstitutionAggregator:
        if self._aggregator is None:
            self._aggregator = InstitutionAggregator(self.client)
        return self._aggregator

    def get_overview(
        self,
        db: Session,
        owner_id: str,
        today: date | None = None,
    ) -> PortfolioOverview:
        """Return the consolidated overview for ``owner_id``.

        Raises:
            ProviderError: Any unclassified provider failure; no partial
                overview is returned in that case.
        """
        linked = LinkedInstitutionService.list_for_owner(db, owner_id)
        credentials = [
            _Credential(
                id=inst.id,
                access_token=inst.access_token,
                item_id=inst.item_id,
                institution_name=inst.institution_name,
            )
            for inst in linked
        ]
        overview = self.build_overview(credentials, today=today)
        self._refresh_cached_names(db, linked, overview.institutions)
        logger.info(
            "Overview for owner %s: %d institutions (%d with errors), %d net worth points",
            owner_id,
            len(overview.institutions),
            sum(1 for inst in overview.institutions if inst.error),
            len(overview.net_worth_series),
        )
        return overview

    @staticmethod
    def _refresh_cached_names(
        db: Session,
        linked: Sequence[LinkedInstitution],
        results: Sequence[InstitutionOverview],
    ) -> None:
        """Store the provider's institution name on each successfully aggregated row.

        The cached name labels the institution when a later aggregation
        fails before the provider metadata is fetched. Flushes only.
        """
        changed = False
        for inst, result in zip(linked, results):
            if result.error is not None or not result.institution_name:
                continue
            if result.institution_name != inst.institution_name:
                inst.institution_name = result.institution_name
                changed = True
        if changed:
            db.flush()

    def build_overview(
        self,
        institutions: Sequence[LinkedInstitutionLike],
        today: date | None = None,
    ) -> PortfolioOverview:
        """Aggregate ``institutions`` and derive the net worth series.

        Results keep the order of ``institutions``. The series is empty
        when no institution could be aggregated.
        """
        today = today or datetime.now(timezone.utc).date()
        aggregator = self.aggregator

        if self._max_workers > 1 and len(institutions) > 1:
            with ThreadPoolExecutor(max_workers=self._max_workers) as pool:
                results = list(
                    pool.map(lambda inst: aggregator.aggregate(inst, today), institutions)
                )
        else:
            results = [aggregator.aggregate(inst, today) for inst in institutions]

        if all(result.error is not None for result in results):
            series: list[NetWorthPoint] = []
        else:
            series = derive_net_worth(results, today=today)

        return PortfolioOverview(institutions=results, net_worth_series=series)
