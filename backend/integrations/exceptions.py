"""Typed exception hierarchy for provider errors.

Provider errors are classified at the client boundary so that the
aggregation services never inspect provider-specific error shapes:

- ``ProviderNotReadyError``: data is still being prepared; retry the call.
- ``ItemReauthRequiredError``: the linked item's credential is stale; skip
  the institution until the user re-authenticates.
- ``ProviderUnavailableError``: readiness retries were exhausted.
- anything else is unclassified and aborts the overview.
"""

from enum import Enum


class ProviderErrorKind(str, Enum):
    """Classification tag for provider failures."""

    NOT_READY = "NOT_READY"
    ITEM_REAUTH_REQUIRED = "ITEM_LOGIN_REQUIRED"
    PROVIDER_UNAVAILABLE = "PROVIDER_UNAVAILABLE"
    UNCLASSIFIED = "UNCLASSIFIED"


class ProviderError(Exception):
    """Base exception for all provider-related errors.

    Carries the provider name so callers can identify which provider failed.
    """

    kind: ProviderErrorKind = ProviderErrorKind.UNCLASSIFIED

    def __init__(self, message: str, provider_name: str = ""):
        self.provider_name = provider_name
        super().__init__(message)


class ProviderNotReadyError(ProviderError):
    """The provider is still computing the requested data (transient)."""

    kind = ProviderErrorKind.NOT_READY


class ItemReauthRequiredError(ProviderError):
    """The item's access token is no longer valid; the user must log in again."""

    kind = ProviderErrorKind.ITEM_REAUTH_REQUIRED


class ProviderUnavailableError(ProviderError):
    """Readiness retries were exhausted before the provider returned data."""

    kind = ProviderErrorKind.PROVIDER_UNAVAILABLE

    def __init__(self, message: str, provider_name: str = "", attempts: int = 0):
        self.attempts = attempts
        super().__init__(message, provider_name)


class ProviderAPIError(ProviderError):
    """Any other provider error response (unclassified)."""

    def __init__(
        self,
        message: str,
        provider_name: str = "",
        status_code: int | None = None,
        error_code: str | None = None,
    ):
        self.status_code = status_code
        self.error_code = error_code
        super().__init__(message, provider_name)


class ProviderDataError(ProviderError):
    """Malformed or unparseable response from the provider."""

    pass


# Kinds that are contained per institution rather than aborting the overview.
RECOVERABLE_KINDS: frozenset[ProviderErrorKind] = frozenset(
    {
        ProviderErrorKind.ITEM_REAUTH_REQUIRED,
        ProviderErrorKind.PROVIDER_UNAVAILABLE,
    }
)


def is_not_ready(error: BaseException) -> bool:
    """Return True if ``error`` is a readiness (retry same call) failure."""
    return isinstance(error, ProviderNotReadyError)
