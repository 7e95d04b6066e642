"""Plaid API client.

This module implements the ProviderClient protocol on top of the
plaid-python SDK: Link token creation and exchange, Item and institution
lookups, and page-by-page transaction and investment-transaction fetches.

Plaid failures are classified here, at the SDK boundary, into the
``integrations.exceptions`` hierarchy so that no other module needs to
look at Plaid error bodies.
"""

import json
import logging
from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Any, Callable, TypeVar

from plaid import ApiException, Environment
from plaid.api.plaid_api import PlaidApi
from plaid.api_client import ApiClient
from plaid.configuration import Configuration
from plaid.model.country_code import CountryCode
from plaid.model.institutions_get_by_id_request import InstitutionsGetByIdRequest
from plaid.model.investments_transactions_get_request import InvestmentsTransactionsGetRequest
from plaid.model.investments_transactions_get_request_options import InvestmentsTransactionsGetRequestOptions
from plaid.model.item_get_request import ItemGetRequest
from plaid.model.item_public_token_exchange_request import ItemPublicTokenExchangeRequest
from plaid.model.item_remove_request import ItemRemoveRequest
from plaid.model.link_token_create_request import LinkTokenCreateRequest
from plaid.model.link_token_create_request_user import LinkTokenCreateRequestUser
from plaid.model.products import Products
from plaid.model.transactions_get_request import TransactionsGetRequest
from plaid.model.transactions_get_request_options import TransactionsGetRequestOptions

from config import settings
from integrations.exceptions import (
    ItemReauthRequiredError,
    ProviderAPIError,
    ProviderDataError,
    ProviderError,
    ProviderNotReadyError,
)
from integrations.provider_protocol import (
    AccountType,
    ExchangeResult,
    InstitutionMetadata,
    InvestmentTransactionPage,
    ProviderAccount,
    ProviderTransaction,
    TransactionPage,
)

logger = logging.getLogger(__name__)

PROVIDER_NAME = "Plaid"

# Map PLAID_ENVIRONMENT setting to SDK host URLs.
_ENVIRONMENT_MAP: dict[str, str] = {
    "sandbox": Environment.Sandbox,
    "production": Environment.Production,
}

# Plaid reports data that is still being computed with this code
NOT_READY_CODES: frozenset[str] = frozenset({"PRODUCT_NOT_READY"})

REAUTH_CODES: frozenset[str] = frozenset(
    {
        "ITEM_LOGIN_REQUIRED",
        "INVALID_ACCESS_TOKEN",
        "ITEM_NOT_FOUND",
    }
)

# Plaid account types outside the closed AccountType set
_ACCOUNT_TYPE_ALIASES: dict[str, AccountType] = {
    "brokerage": AccountType.INVESTMENT,
}

T = TypeVar("T")


class PlaidClient:
    """Wrapper around the Plaid API.

    Implements the ProviderClient protocol. Access tokens are passed in
    per call; the client itself holds only the API credentials.
    """

    def __init__(
        self,
        client_id: str | None = None,
        secret: str | None = None,
        environment: str | None = None,
        country_codes: list[str] | None = None,
    ):
        self._client_id = client_id or settings.PLAID_CLIENT_ID
        self._secret = secret or settings.PLAID_SECRET
        self._environment = environment or settings.PLAID_ENVIRONMENT
        self._country_codes = country_codes or settings.plaid_country_codes

        # Lazily created on first use
        self._api: PlaidApi | None = None

    def _get_api(self) -> PlaidApi:
        """Return (and cache) a PlaidApi instance."""
        if self._api is None:
            env_key = self._environment.lower()
            host = _ENVIRONMENT_MAP.get(env_key)
            if host is None:
                logger.warning(
                    "Unknown PLAID_ENVIRONMENT=%r, falling back to sandbox. "
                    "Valid values: sandbox, production",
                    self._environment,
                )
                host = Environment.Sandbox
            logger.info(
                "Plaid API client: environment=%s, host=%s, client_id=<configured>",
                env_key,
                host,
            )
            configuration = Configuration(
                host=host,
                api_key={
                    "clientId": self._client_id,
                    "secret": self._secret,
                },
            )
            self._api = PlaidApi(ApiClient(configuration))
        return self._api

    @property
    def provider_name(self) -> str:
        return PROVIDER_NAME

    def is_configured(self) -> bool:
        """Check if Plaid credentials are configured."""
        return bool(self._client_id) and bool(self._secret)

    def _country_code_models(self) -> list[CountryCode]:
        return [CountryCode(code) for code in self._country_codes]

    # ------------------------------------------------------------------
    # Link Token, Token Exchange & Item removal
    # ------------------------------------------------------------------

    def create_link_token(self, client_user_id: str, update_access_token: str | None = None) -> str:
        """Create a Plaid Link token.

        Args:
            client_user_id: Stable id of the user starting Link.
            update_access_token: When set, Link opens in update mode to
                re-authenticate this existing Item.

        Returns:
            The link_token string to be passed to Plaid Link.
        """
        kwargs: dict[str, Any] = {
            "user": LinkTokenCreateRequestUser(client_user_id=client_user_id),
            "client_name": "Net Worth Overview",
            "country_codes": self._country_code_models(),
            "language": "en",
        }
        if update_access_token:
            kwargs["access_token"] = update_access_token
        else:
            kwargs["products"] = [Products("transactions")]
        response = self._call(lambda: self._get_api().link_token_create(LinkTokenCreateRequest(**kwargs)))
        return response["link_token"]

    def exchange_public_token(self, public_token: str) -> ExchangeResult:
        """Exchange a Plaid Link public_token for a permanent access_token."""
        request = ItemPublicTokenExchangeRequest(public_token=public_token)
        response = self._call(lambda: self._get_api().item_public_token_exchange(request))
        return ExchangeResult(
            access_token=response["access_token"],
            item_id=response["item_id"],
        )

    def remove_item(self, access_token: str) -> None:
        """Revoke an access token by calling Plaid's /item/remove endpoint."""
        request = ItemRemoveRequest(access_token=access_token)
        self._call(lambda: self._get_api().item_remove(request))

    # ------------------------------------------------------------------
    # Item & institution lookups
    # ------------------------------------------------------------------

    def get_item_institution_id(self, access_token: str) -> str:
        """Return the Plaid institution_id of the Item behind ``access_token``."""
        request = ItemGetRequest(access_token=access_token)
        response = self._call(lambda: self._get_api().item_get(request))
        institution_id = response["item"].get("institution_id")
        if not institution_id:
            raise ProviderDataError("Item has no institution_id", provider_name=PROVIDER_NAME)
        return institution_id

    def get_institution_metadata(self, institution_id: str) -> InstitutionMetadata:
        """Return the institution's name and the products it supports."""
        request = InstitutionsGetByIdRequest(
            institution_id=institution_id,
            country_codes=self._country_code_models(),
        )
        response = self._call(lambda: self._get_api().institutions_get_by_id(request))
        institution = response["institution"]
        return InstitutionMetadata(
            name=institution.get("name") or "Unknown",
            products=[_enum_value(p) for p in institution.get("products", []) or []],
        )

    # ------------------------------------------------------------------
    # Paginated feeds
    # ------------------------------------------------------------------

    def get_transaction_page(
        self,
        access_token: str,
        start_date: date,
        end_date: date,
        offset: int,
        count: int,
    ) -> TransactionPage:
        """Fetch one page of /transactions/get."""
        request = TransactionsGetRequest(
            access_token=access_token,
            start_date=start_date,
            end_date=end_date,
            options=TransactionsGetRequestOptions(count=count, offset=offset),
        )
        response = self._call(lambda: self._get_api().transactions_get(request))

        accounts = [
            account
            for account in (self._map_account(a) for a in response.get("accounts", []) or [])
            if account is not None
        ]
        transactions = [
            self._map_transaction(t, "transaction_id")
            for t in response.get("transactions", []) or []
        ]
        item = response.get("item") or {}
        return TransactionPage(
            transactions=transactions,
            accounts=accounts,
            total=int(response.get("total_transactions", 0) or 0),
            item_institution_id=item.get("institution_id"),
        )

    def get_investment_transaction_page(
        self,
        access_token: str,
        start_date: date,
        end_date: date,
        offset: int,
        count: int,
    ) -> InvestmentTransactionPage:
        """Fetch one page of /investments/transactions/get."""
        request = InvestmentsTransactionsGetRequest(
            access_token=access_token,
            start_date=start_date,
            end_date=end_date,
            options=InvestmentsTransactionsGetRequestOptions(count=count, offset=offset),
        )
        response = self._call(lambda: self._get_api().investments_transactions_get(request))
        return InvestmentTransactionPage(
            transactions=[
                self._map_transaction(t, "investment_transaction_id")
                for t in response.get("investment_transactions", []) or []
            ],
            total=int(response.get("total_investment_transactions", 0) or 0),
        )

    # ------------------------------------------------------------------
    # Mapping
    # ------------------------------------------------------------------

    @staticmethod
    def _map_account(account: dict) -> ProviderAccount | None:
        """Map a Plaid account; accounts of unsupported types are skipped."""
        account_id = account.get("account_id", "")
        raw_type = _enum_value(account.get("type")).lower()
        account_type = _ACCOUNT_TYPE_ALIASES.get(raw_type)
        if account_type is None:
            try:
                account_type = AccountType(raw_type)
            except ValueError:
                logger.warning("Skipping account %s with unsupported type %r", account_id, raw_type)
                return None

        balances = account.get("balances") or {}
        balance = PlaidClient._to_decimal(balances.get("current"))
        if balance is None:
            balance = PlaidClient._to_decimal(balances.get("available")) or Decimal("0")

        return ProviderAccount(
            id=account_id,
            name=account.get("name") or account.get("official_name") or "Plaid Account",
            type=account_type,
            current_balance=balance,
        )

    @staticmethod
    def _map_transaction(txn: dict, id_field: str) -> ProviderTransaction:
        """Map a Plaid transaction or investment transaction.

        The amount keeps Plaid's sign.
        """
        raw_date = txn.get("date")
        if isinstance(raw_date, str):
            raw_date = date.fromisoformat(raw_date)
        if raw_date is None:
            raise ProviderDataError(
                f"Transaction {txn.get(id_field)} has no date", provider_name=PROVIDER_NAME
            )
        amount = PlaidClient._to_decimal(txn.get("amount"))
        if amount is None:
            raise ProviderDataError(
                f"Transaction {txn.get(id_field)} has no amount", provider_name=PROVIDER_NAME
            )
        return ProviderTransaction(
            account_id=txn.get("account_id", ""),
            amount=amount,
            date=raw_date,
            transaction_id=txn.get(id_field),
            name=txn.get("name"),
        )

    # ------------------------------------------------------------------
    # Error mapping
    # ------------------------------------------------------------------

    def _call(self, fn: Callable[[], T]) -> T:
        """Invoke an SDK call, translating ApiException into ProviderError."""
        try:
            return fn()
        except ApiException as e:
            raise self._map_plaid_error(e) from e

    @staticmethod
    def _map_plaid_error(exc: ApiException) -> ProviderError:
        """Classify a Plaid ApiException."""
        status = exc.status or 0
        message = f"Plaid API error (HTTP {status})"

        error_code = ""
        try:
            body = json.loads(exc.body) if exc.body else {}
        except (TypeError, ValueError):
            body = {}
        if isinstance(body, dict):
            error_code = body.get("error_code") or ""
            error_message = body.get("error_message") or ""
            if error_message:
                message = f"Plaid error ({error_code}): {error_message}"

        if error_code in NOT_READY_CODES:
            return ProviderNotReadyError(message, provider_name=PROVIDER_NAME)
        if error_code in REAUTH_CODES or status in (401, 403):
            return ItemReauthRequiredError(message, provider_name=PROVIDER_NAME)
        return ProviderAPIError(
            message,
            provider_name=PROVIDER_NAME,
            status_code=status or None,
            error_code=error_code or None,
        )

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _to_decimal(value) -> Decimal | None:
        """Convert a value to Decimal, returning None on failure."""
        if value is None:
            return None
        try:
            return Decimal(str(value))
        except (InvalidOperation, ValueError):
            return None


def _enum_value(value: Any) -> str:
    """Plain string of an SDK enum model (e.g. ``Products``) or a raw string."""
    if value is None:
        return ""
    return str(getattr(value, "value", value))
