"""Plaid API credentials in the system keychain.

``PLAID_CLIENT_ID`` and ``PLAID_SECRET`` may be kept in the keychain rather
than ``.env``; ``config.KeychainSettingsSource`` reads them from here and
``scripts/setup_plaid.py`` writes them. Without a usable ``keyring`` the
lookups return ``None`` and the settings chain falls through to env vars.
"""

import logging
from types import ModuleType

logger = logging.getLogger(__name__)

SERVICE_NAME = "networth-overview"

CREDENTIAL_KEYS: frozenset[str] = frozenset({"PLAID_CLIENT_ID", "PLAID_SECRET"})


def _load_keyring() -> ModuleType | None:
    """Import ``keyring`` on demand; ``None`` when it is not installed."""
    try:
        import keyring
    except ImportError:
        return None
    return keyring


def get_credential(key: str) -> str | None:
    """Return the stored value for ``key``, or ``None`` if there is none."""
    keyring = _load_keyring()
    if keyring is None:
        return None
    try:
        return keyring.get_password(SERVICE_NAME, key)
    except Exception:
        # Locked or missing keychain backends raise backend-specific errors
        logger.debug("Keychain read of %s failed", key, exc_info=True)
        return None


def set_credential(key: str, value: str) -> bool:
    """Store a Plaid credential.

    Returns:
        ``True`` once stored. ``False`` when ``key`` is not a Plaid
        credential, ``value`` is blank, or the keychain is unavailable.
    """
    if key not in CREDENTIAL_KEYS or not value.strip():
        logger.warning("Not storing %s: unknown key or blank value", key)
        return False

    keyring = _load_keyring()
    if keyring is None:
        logger.warning("Cannot store %s: keyring is not installed", key)
        return False
    try:
        keyring.set_password(SERVICE_NAME, key, value)
    except Exception:
        logger.warning("Keychain write of %s failed", key, exc_info=True)
        return False

    logger.info("Stored %s in keychain service %s", key, SERVICE_NAME)
    return True
