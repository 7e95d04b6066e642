"""Pydantic schemas for the overview document."""

from datetime import date
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from services.institution_aggregator import InstitutionOverview
from services.net_worth_service import NetWorthPoint
from services.overview_service import PortfolioOverview


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class TransactionResponse(_CamelModel):
    account_id: str
    amount: Decimal
    date: date
    transaction_id: Optional[str] = None
    name: Optional[str] = None


class AccountResponse(_CamelModel):
    id: str
    name: str
    type: str
    current_balance: Decimal
    transactions: list[TransactionResponse] = Field(default_factory=list)


class InstitutionResponse(_CamelModel):
    """One linked institution; ``error`` is set instead of accounts on failure."""

    institution_name: Optional[str] = None
    institution_id: str
    item_id: Optional[str] = None
    accounts: list[AccountResponse] = Field(default_factory=list)
    error: Optional[str] = None

    @classmethod
    def from_overview(cls, overview: InstitutionOverview) -> "InstitutionResponse":
        return cls(
            institution_name=overview.institution_name,
            institution_id=overview.institution_id,
            item_id=overview.item_id,
            accounts=[
                AccountResponse(
                    id=account.id,
                    name=account.name,
                    type=account.type.value,
                    current_balance=account.current_balance,
                    transactions=[
                        TransactionResponse(
                            account_id=txn.account_id,
                            amount=txn.amount,
                            date=txn.date,
                            transaction_id=txn.transaction_id,
                            name=txn.name,
                        )
                        for txn in account.transactions
                    ],
                )
                for account in overview.accounts
            ],
            error=overview.error.value if overview.error else None,
        )


class NetWorthPointResponse(_CamelModel):
    date: date
    value: Decimal
    epoch_timestamp: int

    @classmethod
    def from_point(cls, point: NetWorthPoint) -> "NetWorthPointResponse":
        return cls(date=point.date, value=point.value, epoch_timestamp=point.epoch_timestamp)


class PortfolioOverviewResponse(_CamelModel):
    """Response for the overview: institutions plus the net worth series."""

    institutions: list[InstitutionResponse]
    net_worth_series: list[NetWorthPointResponse]

    @classmethod
    def from_overview(cls, overview: PortfolioOverview) -> "PortfolioOverviewResponse":
        return cls(
            institutions=[InstitutionResponse.from_overview(i) for i in overview.institutions],
            net_worth_series=[NetWorthPointResponse.from_point(p) for p in overview.net_worth_series],
        )
