"""Retrying paginated fetcher for offset-based provider feeds.

Pages are requested from offset 0 and concatenated in fetch order until the
accumulated count reaches the total reported by the first successful page.
A page that comes back empty before the total is reached, or a call that
fails with a transient ("not ready") error, is retried at the same offset
after a short delay. Every other error propagates unchanged.
"""

import logging
import time
from dataclasses import dataclass
from typing import Callable, Generic, Protocol, Sequence, TypeVar

from config import settings
from integrations.exceptions import ProviderUnavailableError, is_not_ready

logger = logging.getLogger(__name__)


class Page(Protocol):
    """Shape shared by every paginated provider response."""

    @property
    def transactions(self) -> Sequence: ...

    @property
    def total(self) -> int: ...


PageT = TypeVar("PageT", bound=Page)


@dataclass(frozen=True)
class RetryPolicy:
    """How long to wait between readiness retries, and when to give up.

    ``max_attempts`` counts consecutive retries of a single offset;
    ``0`` retries forever.
    """

    delay: float = 0.1
    max_attempts: int = 0
    backoff: float = 1.0
    max_delay: float = 5.0

    @classmethod
    def from_settings(cls) -> "RetryPolicy":
        return cls(
            delay=settings.PROVIDER_READY_DELAY_SECONDS,
            max_attempts=settings.PROVIDER_READY_MAX_ATTEMPTS,
            backoff=settings.PROVIDER_READY_BACKOFF,
            max_delay=settings.PROVIDER_READY_MAX_DELAY_SECONDS,
        )

    def delay_for(self, attempt: int) -> float:
        """Delay before retry number ``attempt`` (1-based)."""
        return min(self.delay * (self.backoff ** (attempt - 1)), self.max_delay)


@dataclass
class PagedResult(Generic[PageT]):
    """All items of a paginated feed plus the first page that reported the total."""

    items: list
    first_page: PageT | None


def fetch_all_pages(
    fetch_page: Callable[[int], PageT],
    is_transient: Callable[[BaseException], bool] = is_not_ready,
    policy: RetryPolicy | None = None,
    description: str = "pages",
) -> PagedResult[PageT]:
    """Fetch every page of a feed.

    Args:
        fetch_page: Called with the current offset; returns one page.
        is_transient: Classifies an exception raised by ``fetch_page`` as a
            readiness failure that should be retried at the same offset.
        policy: Retry delays and cap. Defaults to the configured policy.
        description: Label used in log messages.

    Returns:
        PagedResult with the concatenated items and the first page.

    Raises:
        ProviderUnavailableError: If ``policy.max_attempts`` consecutive
            retries of one offset were exhausted.
        Exception: Any non-transient error from ``fetch_page``, unchanged.
    """
    policy = policy or RetryPolicy.from_settings()

    items: list = []
    first_page: PageT | None = None
    total: int | None = None
    retries = 0

    while total is None or len(items) < total:
        offset = len(items)
        try:
            page = fetch_page(offset)
        except Exception as exc:
            if not is_transient(exc):
                raise
            reason = f"not ready ({exc})"
        else:
            if first_page is None:
                first_page = page
                total = page.total
                logger.debug("Fetching %d %s", total, description)
            if page.transactions or total == 0:
                items.extend(page.transactions)
                retries = 0
                continue
            reason = "empty page"

        retries += 1
        if policy.max_attempts and retries > policy.max_attempts:
            raise ProviderUnavailableError(
                f"Gave up fetching {description} at offset {offset} "
                f"after {policy.max_attempts} retries",
                attempts=policy.max_attempts,
            )
        wait = policy.delay_for(retries)
        logger.debug(
            "Retrying %s at offset %d in %.2fs (attempt %d): %s",
            description, offset, wait, retries, reason,
        )
        time.sleep(wait)

    return PagedResult(items=items, first_page=first_page)
