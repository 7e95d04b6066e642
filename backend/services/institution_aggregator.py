"""Institution aggregator - builds the account ledger for one linked institution."""

import logging
from dataclasses import dataclass, field, replace
from datetime import date, datetime, timezone
from typing import Protocol

from config import settings
from integrations.exceptions import RECOVERABLE_KINDS, ProviderError, ProviderErrorKind
from integrations.provider_protocol import (
    InstitutionMetadata,
    ProviderAccount,
    ProviderClient,
    ProviderTransaction,
)
from services.pagination import RetryPolicy, fetch_all_pages

logger = logging.getLogger(__name__)


class LinkedInstitutionLike(Protocol):
    """The fields of a linked institution the aggregator reads."""

    id: str
    access_token: str
    item_id: str | None
    institution_name: str | None


@dataclass
class InstitutionOverview:
    """Aggregated view of one linked institution.

    ``error`` is set when the institution could not be aggregated; the
    account list is then empty and ``institution_name`` is the cached name.
    """

    institution_name: str | None
    institution_id: str
    item_id: str | None
    accounts: list[ProviderAccount] = field(default_factory=list)
    error: ProviderErrorKind | None = None


def years_before(day: date, years: int) -> date:
    """Same calendar day ``years`` earlier (Feb 29 falls back to Feb 28)."""
    try:
        return day.replace(year=day.year - years)
    except ValueError:
        return day.replace(year=day.year - years, day=28)


def partition_by_account(
    accounts: list[ProviderAccount],
    transactions: list[ProviderTransaction],
) -> list[ProviderAccount]:
    """Attach each transaction to its account's ledger.

    Returns new account objects; the inputs are left untouched. Accounts
    without transactions get an empty ledger, and transactions for accounts
    not in ``accounts`` are dropped.
    """
    ledgers: dict[str, list[ProviderTransaction]] = {a.id: [] for a in accounts}
    dropped = 0
    for txn in transactions:
        ledger = ledgers.get(txn.account_id)
        if ledger is None:
            dropped += 1
            continue
        ledger.append(txn)
    if dropped:
        logger.debug("Dropped %d transactions for unknown accounts", dropped)
    return [replace(account, transactions=ledgers[account.id]) for account in accounts]


class InstitutionAggregator:
    """Fetches accounts, transactions and investment transactions for an Item.

    Reauthorization and provider-unavailable failures are contained in the
    returned overview; every other provider error propagates.
    """
    def __init__(
        self,
        client: ProviderClient,
        policy: RetryPolicy | None = None,
        page_size: int | None = None,
        history_years: int | None = None,
    ):
        self._client = client
        self._policy = policy if policy is not None else RetryPolicy.from_settings()
        self._page_size = page_size if page_size is not None else settings.PROVIDER_PAGE_SIZE
        self._history_years = (
            history_years if history_years is not None else settings.TRANSACTION_HISTORY_YEARS
        )

    def aggregate(
        self,
        institution: LinkedInstitutionLike,
        today: date | None = None,
    ) -> InstitutionOverview:
        """Aggregate one linked institution.

        Args:
            institution: The linked institution (credential + cached name).
            today: End of the history window; defaults to the current UTC date.

        Returns:
            The populated overview, or an overview with ``error`` set when the
            Item needs re-authentication or the provider never became ready.
            An errored overview is named from the provider's metadata when
            that was fetched, and from the cached name otherwise.
        """
        end_date = today or datetime.now(timezone.utc).date()
        start_date = years_before(end_date, self._history_years)
        metadata: InstitutionMetadata | None = None
        try:
            provider_institution_id = self._client.get_item_institution_id(institution.access_token)
            metadata = self._client.get_institution_metadata(provider_institution_id)
            accounts = self._fetch_ledgers(institution, metadata, start_date, end_date)
        except ProviderError as e:
            if e.kind not in RECOVERABLE_KINDS:
                raise
            logger.warning(
                "Institution %s (item %s) skipped: %s",
                institution.id, institution.item_id, e.kind.value,
            )
            return InstitutionOverview(
                institution_name=metadata.name if metadata else institution.institution_name,
                institution_id=institution.id,
                item_id=institution.item_id,
                accounts=[],
                error=e.kind,
            )

        return InstitutionOverview(
            institution_name=metadata.name,
            institution_id=institution.id,
            item_id=institution.item_id,
            accounts=accounts,
        )

    def _fetch_ledgers(
        self,
        institution: LinkedInstitutionLike,
        metadata: InstitutionMetadata,
        start_date: date,
        end_date: date,
    ) -> list[ProviderAccount]:
        access_token = institution.access_token
        transactions = fetch_all_pages(
            lambda offset: self._client.get_transaction_page(
                access_token, start_date, end_date, offset, self._page_size
            ),
            policy=self._policy,
            description=f"transactions for item {institution.item_id}",
        )
        accounts = transactions.first_page.accounts if transactions.first_page else []

        investment_items: list[ProviderTransaction] = []
        if metadata.supports_investments:
            investment_items = fetch_all_pages(
                lambda offset: self._client.get_investment_transaction_page(
                    access_token, start_date, end_date, offset, self._page_size
                ),
                policy=self._policy,
                description=f"investment transactions for item {institution.item_id}",
            ).items

        merged = [*transactions.items, *investment_items]
        logger.info(
            "%s: %d accounts, %d transactions, %d investment transactions",
            metadata.name, len(accounts), len(transactions.items), len(investment_items),
        )
        return partition_by_account(accounts, merged)
