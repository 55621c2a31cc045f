"""Typed scrape failures and the mapping used by the HTTP layer."""

from __future__ import annotations

from enum import Enum
from typing import Optional


class ScrapeErrorCode(str, Enum):
    INVALID_URL = "INVALID_URL"
    UNSUPPORTED_DOMAIN = "UNSUPPORTED_DOMAIN"
    SCRAPE_BLOCKED_CLOUDFLARE = "SCRAPE_BLOCKED_CLOUDFLARE"
    SCRAPE_FAILED = "SCRAPE_FAILED"


HTTP_STATUS_BY_CODE: dict[ScrapeErrorCode, int] = {
    ScrapeErrorCode.INVALID_URL: 400,
    ScrapeErrorCode.UNSUPPORTED_DOMAIN: 400,
    ScrapeErrorCode.SCRAPE_BLOCKED_CLOUDFLARE: 422,
    ScrapeErrorCode.SCRAPE_FAILED: 500,
}


class ScrapeError(Exception):
    """A scrape failure tagged with a :class:`ScrapeErrorCode`.

    ``cause`` keeps the lower-level exception (if any) that this error
    replaced; it is also chained as ``__cause__`` so tracebacks show it.
    """

    def __init__(
        self,
        code: ScrapeErrorCode,
        message: str,
        cause: Optional[BaseException] = None,
    ) -> None:
        super().__init__(message)
        self.code = code
        self.message = message
        self.cause = cause
        if cause is not None:
            self.__cause__ = cause

    @property
    def status_code(self) -> int:
        return HTTP_STATUS_BY_CODE[self.code]

    def __repr__(self) -> str:
        return f"ScrapeError({self.code.value}, {self.message!r})"


def normalize_scrape_error(error: BaseException) -> ScrapeError:
    """Return *error* unchanged if already typed, else wrap it as ``SCRAPE_FAILED``."""
    if isinstance(error, ScrapeError):
        return error
    return ScrapeError(
        ScrapeErrorCode.SCRAPE_FAILED,
        "Failed to fetch and parse this URL",
        cause=error,
    )
