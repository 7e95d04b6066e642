#!/usr/bin/env python
"""Print a user's consolidated overview and net worth series.

Reads the user's linked institutions from the database and aggregates
them live from Plaid. The only write is the refreshed institution name
on each linked row that aggregated cleanly.

Usage:
    python -m scripts.show_overview --owner user-123
    python -m scripts.show_overview --owner user-123 --json
"""

import argparse
import sys

from database import get_session_local, init_db
from integrations.exceptions import ProviderError
from integrations.plaid_client import PlaidClient
from logging_config import setup_logging
from schemas.overview import PortfolioOverviewResponse
from services.overview_service import OverviewService, PortfolioOverview


def print_summary(overview: PortfolioOverview) -> None:
    """Print one block per institution followed by the net worth series."""
    for inst in overview.institutions:
        name = inst.institution_name or "Unknown institution"
        if inst.error:
            print(f"{name}: {inst.error.value}")
            continue
        print(f"{name} ({len(inst.accounts)} accounts)")
        for account in inst.accounts:
            print(
                f"  {account.name:<30} {account.type.value:<11} "
                f"{account.current_balance:>14} {len(account.transactions):>5} txns"
            )

    print("-" * 60)
    if not overview.net_worth_series:
        print("Net worth: unavailable")
        return
    for point in overview.net_worth_series:
        print(f"{point.date.isoformat()}  {point.value:>14}")


def main(argv: list[str] | None = None, service: OverviewService | None = None) -> int:
    """Entry point: parse args, build the overview and print it."""
    parser = argparse.ArgumentParser(description="Show a user's net worth overview.")
    parser.add_argument("--owner", required=True, help="Owner id of the linked institutions")
    parser.add_argument("--json", action="store_true", help="Print the JSON document instead")
    args = parser.parse_args(argv)

    setup_logging()
    init_db()
    if service is None:
        client = PlaidClient()
        if not client.is_configured():
            print("Error: Plaid credentials are not configured; run scripts/setup_plaid.py", file=sys.stderr)
            return 1
        service = OverviewService(client=client)

    db = get_session_local()()
    try:
        overview = service.get_overview(db, args.owner)
        db.commit()
    except ProviderError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    finally:
        db.close()

    if args.json:
        print(PortfolioOverviewResponse.from_overview(overview).model_dump_json(by_alias=True, indent=2))
    else:
        print_summary(overview)
    return 0


if __name__ == "__main__":
    sys.exit(main())
