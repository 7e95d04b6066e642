"""Net worth derivation - today's net worth and its reconstructed history.

Today's net worth is the sum of current balances, with liability accounts
(credit, loan) subtracted. History is reconstructed by walking every
transaction from newest to oldest and reversing its effect on the running
total, which yields the net worth as it stood before each transaction date.

The reconstruction assumes transaction amounts fully explain every balance
change. Fees, transfers between linked accounts and non-transactional
accruals are not modelled, so older points can drift from the real figure.
"""

import logging
from dataclasses import dataclass
from datetime import date, datetime, time, timezone
from decimal import Decimal
from typing import Iterable

from integrations.provider_protocol import AccountType, ProviderAccount
from services.institution_aggregator import InstitutionOverview

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class NetWorthPoint:
    """Net worth at the start of ``date``, or as of now for the final point."""

    date: date
    value: Decimal

    @property
    def epoch_timestamp(self) -> int:
        """UTC midnight of ``date`` in epoch milliseconds."""
        return to_epoch_millis(self.date)


def to_epoch_millis(day: date) -> int:
    """Return UTC midnight of ``day`` as epoch milliseconds."""
    midnight = datetime.combine(day, time.min, tzinfo=timezone.utc)
    return int(midnight.timestamp()) * 1000


def signed_balance(account_type: AccountType, amount: Decimal) -> Decimal:
    """Contribution of ``amount`` held in an account of ``account_type``."""
    return amount if account_type.is_asset else -amount


def todays_net_worth(accounts: Iterable[ProviderAccount]) -> Decimal:
    """Assets minus liabilities across ``accounts``."""
    return sum(
        (signed_balance(account.type, account.current_balance) for account in accounts),
        Decimal("0"),
    )


def _all_accounts(institutions: Iterable[InstitutionOverview]) -> list[ProviderAccount]:
    return [account for inst in institutions for account in inst.accounts]


def derive_net_worth(
    institutions: Iterable[InstitutionOverview],
    today: date | None = None,
) -> list[NetWorthPoint]:
    """Build the ascending net worth series for a set of institutions.

    Args:
        institutions: Aggregated institutions. Errored ones carry no
            accounts and so contribute nothing.
        today: Date of the final point; defaults to the current UTC date.

    Returns:
        One point per distinct transaction date (the value before that
        day's transactions), ascending, followed by exactly one point for
        ``today`` holding today's net worth.
    """
    today = today or datetime.now(timezone.utc).date()
    accounts = _all_accounts(institutions)
    current = todays_net_worth(accounts)
    today_value = current

    tagged = [
        (txn, account.type)
        for account in accounts
        for txn in account.transactions
    ]
    # Stable sort keeps provider order within a day
    tagged.sort(key=lambda pair: pair[0].date, reverse=True)

    by_date: dict[date, Decimal] = {}
    for txn, account_type in tagged:
        # A positive amount raised the balance, so undo it going back in time
        current -= signed_balance(account_type, txn.amount)
        by_date[txn.date] = current

    # dicts keep insertion order, which is descending by date here
    points = [NetWorthPoint(date=day, value=value) for day, value in by_date.items()]
    points.reverse()
    points.append(NetWorthPoint(date=today, value=today_value))

    logger.debug(
        "Net worth: %s across %d accounts, %d transactions, %d points",
        today_value, len(accounts), len(tagged), len(points),
    )
    return points
