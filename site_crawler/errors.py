from typing import Optional


class CrawlerError(Exception):
    """Base class for errors raised by the crawler."""


class FetchError(CrawlerError):
    """A page could not be fetched or its response is unusable."""

    def __init__(self, message: str, *, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class CrossOriginError(FetchError):
    """The requested page is not on the website's domain."""


class ScrapeError(CrawlerError):
    """The seed page of a website could not be scraped."""


class NotFoundError(CrawlerError):
    """A website or page does not exist or belongs to another user."""
