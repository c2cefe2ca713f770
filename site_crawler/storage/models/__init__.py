from .website_model import Website, WebsiteStatus
from .page_model import Page, PageStatus

__all__ = [
    "Website",
    "WebsiteStatus",
    "Page",
    "PageStatus",
]
