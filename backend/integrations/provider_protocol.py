"""Provider protocol definitions.

This module defines the normalized records the aggregation services consume
and the interface a financial-data provider client must implement.
"""

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Protocol


class AccountType(str, Enum):
    """Closed set of account types that take part in net worth."""

    DEPOSITORY = "depository"
    CREDIT = "credit"
    LOAN = "loan"
    INVESTMENT = "investment"

    @property
    def is_asset(self) -> bool:
        """True for accounts whose balance adds to net worth."""
        if self in (AccountType.DEPOSITORY, AccountType.INVESTMENT):
            return True
        if self in (AccountType.CREDIT, AccountType.LOAN):
            return False
        raise ValueError(f"Unhandled account type: {self!r}")


INVESTMENTS_PRODUCT = "investments"


@dataclass
class ProviderTransaction:
    """Normalized transaction from either the ordinary or investment feed."""

    account_id: str  # Provider's account ID this transaction belongs to
    amount: Decimal  # Signed, provider sign convention
    date: date
    transaction_id: str | None = None
    name: str | None = None


@dataclass
class ProviderAccount:
    """Normalized account with its attached transaction ledger."""

    id: str  # Provider's external ID for the account
    name: str
    type: AccountType
    current_balance: Decimal
    transactions: list[ProviderTransaction] = field(default_factory=list)


@dataclass
class TransactionPage:
    """One page of the ordinary transaction feed."""

    transactions: list[ProviderTransaction]
    accounts: list[ProviderAccount]
    total: int
    item_institution_id: str | None = None


@dataclass
class InvestmentTransactionPage:
    """One page of the investment transaction feed."""

    transactions: list[ProviderTransaction]
    total: int


@dataclass
class InstitutionMetadata:
    """Display name and supported products of an institution."""

    name: str
    products: list[str] = field(default_factory=list)

    @property
    def supports_investments(self) -> bool:
        return INVESTMENTS_PRODUCT in self.products


@dataclass
class ExchangeResult:
    """Result of exchanging a Link public token."""

    access_token: str
    item_id: str

    def __repr__(self) -> str:
        return f"ExchangeResult(access_token='***', item_id={self.item_id!r})"


class ProviderClient(Protocol):
    """Protocol that the financial-data provider client must implement.

    Every method may raise a subclass of
    :class:`~integrations.exceptions.ProviderError`.
    """

    @property
    def provider_name(self) -> str:
        """Return the provider name (e.g. 'Plaid')."""
        ...

    def exchange_public_token(self, public_token: str) -> ExchangeResult:
        """Exchange a one-time public token for a long-lived access token."""
        ...

    def remove_item(self, access_token: str) -> None:
        """Revoke the item behind ``access_token`` at the provider."""
        ...

    def get_item_institution_id(self, access_token: str) -> str:
        """Return the provider institution id the item is linked to."""
        ...

    def get_institution_metadata(self, institution_id: str) -> InstitutionMetadata:
        """Return the institution's display name and supported products."""
        ...

    def get_transaction_page(
        self,
        access_token: str,
        start_date: date,
        end_date: date,
        offset: int,
        count: int,
    ) -> TransactionPage:
        """Fetch one page of ordinary transactions plus the item's accounts."""
        ...

    def get_investment_transaction_page(
        self,
        access_token: str,
        start_date: date,
        end_date: date,
        offset: int,
        count: int,
    ) -> InvestmentTransactionPage:
        """Fetch one page of investment transactions."""
        ...
