"""External API integrations.

This package contains:
- Provider protocol: normalized records and the provider client interface
- Exceptions: classified provider failures
- Plaid client: Integration with the Plaid API
"""

from integrations.provider_protocol import (
    AccountType,
    ProviderAccount,
    ProviderClient,
    ProviderTransaction,
)

__all__ = [
    "AccountType",
    "ProviderAccount",
    "ProviderClient",
    "ProviderTransaction",
]
