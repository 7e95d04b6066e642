"""Centralized logging configuration."""

import logging
import re

from config import settings

# Plaid access tokens look like "access-<env>-<uuid>"
_ACCESS_TOKEN_RE = re.compile(r"access-[a-z]+-[0-9a-f-]{8,}", re.IGNORECASE)
REDACTED = "********"


class SecretRedactionFilter(logging.Filter):
    """Mask Plaid access tokens and the configured Plaid secret in log output."""

    def __init__(self, secrets: list[str] | None = None):
        super().__init__()
        self._secrets = [s for s in (secrets or []) if s]

    def _redact(self, text: str) -> str:
        for secret in self._secrets:
            text = text.replace(secret, REDACTED)
        return _ACCESS_TOKEN_RE.sub(REDACTED, text)

    def filter(self, record: logging.LogRecord) -> bool:
        message = record.getMessage()
        redacted = self._redact(message)
        if redacted != message:
            record.msg = redacted
            record.args = None
        return True


def setup_logging() -> None:
    """Configure logging for the application.

    Sets root logger level from settings.LOG_LEVEL, suppresses noisy
    third-party loggers to WARNING and installs secret redaction on the
    root handlers.
    """
    logging.basicConfig(
        format="%(asctime)s %(levelname)-8s %(name)s  %(message)s",
        datefmt="%H:%M:%S",
        level=getattr(logging, settings.LOG_LEVEL),
        force=True,
    )

    redaction = SecretRedactionFilter([settings.PLAID_SECRET])
    for handler in logging.getLogger().handlers:
        handler.addFilter(redaction)

    # Suppress noisy third-party loggers
    for name in (
        "sqlalchemy.engine",
        "sqlalchemy.pool",
        "urllib3",
        "plaid",
    ):
        logging.getLogger(name).setLevel(logging.WARNING)
