"""Persisted crawl state for websites and their pages.

Website: pending -> processing -> completed | failed
Page:    pending -> processing -> completed | failed

Only the seed page can fail a website. ``total_pages_scraped`` counts the
seed plus every completed page, so it never exceeds ``total_pages_found + 1``.
"""

from datetime import datetime, timezone
from typing import List, Optional

from loguru import logger

from site_crawler.parsing.html_extractor import ExtractionResult
from site_crawler.scraper import CrawlListener, DiscoveredLink, PageResult, describe_error
from site_crawler.storage.models import Page, PageStatus, Website, WebsiteStatus
from site_crawler.storage.models.page_model import TITLE_MAX_LENGTH
from site_crawler.storage.models.website_model import NAME_MAX_LENGTH
from site_crawler.storage.repository import WebsiteRepository


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _fit(value: Optional[str], limit: int) -> Optional[str]:
    # متن کامل در scraped_meta می‌ماند؛ ستون فقط تا طول خودش
    if value is None:
        return None
    return value[:limit]


class CrawlStateTracker:
    def __init__(self, repository: WebsiteRepository):
        self.repository = repository

    # --------------------------
    #  Website transitions
    # --------------------------
    async def start_website(self, website_id) -> Optional[Website]:
        """Move a website to ``processing`` and clear the previous run's error."""
        return await self.repository.update_website(
            website_id,
            status=WebsiteStatus.PROCESSING,
            error=None,
            total_pages_scraped=0,
        )

    async def record_seed(self, website_id, result: ExtractionResult) -> Optional[Website]:
        return await self.repository.update_website(
            website_id,
            name=_fit(result.title, NAME_MAX_LENGTH),
            description=result.description,
            scraped_content=result.content,
            scraped_meta=result.website_meta(),
            scraped_at=_now(),
            total_pages_scraped=1,
        )

    async def complete_website(self, website_id) -> Optional[Website]:
        found = await self.repository.count_pages(website_id)
        scraped = await self.repository.count_completed_pages(website_id) + 1

        website = await self.repository.update_website(
            website_id,
            status=WebsiteStatus.COMPLETED,
            total_pages_found=found,
            total_pages_scraped=scraped,
        )
        logger.info(
            f"[Tracker] Completed website {website_id}: "
            f"{scraped} pages scraped, {found} pages found"
        )
        return website

    async def fail_website(self, website_id, error: str) -> Optional[Website]:
        logger.error(f"[Tracker] Website {website_id} failed: {error}")
        return await self.repository.update_website(
            website_id,
            status=WebsiteStatus.FAILED,
            error=error[:500],
        )

    # --------------------------
    #  Page transitions
    # --------------------------
    async def register_pages(self, website_id, links: List[DiscoveredLink]) -> List[Page]:
        """Create ``pending`` rows for newly discovered links and refresh the found count."""
        created = await self.repository.create_pages(
            website_id,
            ({"url": link.url, "path": link.path, "depth": link.depth} for link in links),
        )

        found = await self.repository.count_pages(website_id)
        await self.repository.update_website(website_id, total_pages_found=found)
        return created

    async def start_page(self, page: Page) -> Optional[Page]:
        return await self.repository.update_page(
            page.id,
            status=PageStatus.PROCESSING,
            error=None,
        )

    async def complete_page(self, page: Page, result: PageResult) -> Optional[Page]:
        extraction = result.result
        return await self.repository.update_page(
            page.id,
            title=_fit(extraction.title, TITLE_MAX_LENGTH),
            description=extraction.description,
            scraped_content=extraction.content,
            scraped_meta=extraction.page_meta(),
            word_count=extraction.word_count,
            status=PageStatus.COMPLETED,
            error=None,
            scraped_at=_now(),
        )

    async def fail_page(self, page: Page, error: str) -> Optional[Page]:
        return await self.repository.update_page(
            page.id,
            status=PageStatus.FAILED,
            error=error[:500],
            scraped_at=_now(),
        )

    async def refresh_scraped_count(self, website_id) -> None:
        scraped = await self.repository.count_completed_pages(website_id) + 1
        await self.repository.update_website(website_id, total_pages_scraped=scraped)

    # --------------------------
    #  Queries
    # --------------------------
    async def can_finalize_onboarding(self, user_id: str) -> bool:
        websites = await self.repository.find_websites_by_user(user_id)
        return any(w.status == WebsiteStatus.COMPLETED for w in websites)


class TrackingListener(CrawlListener):
    """Persists the progress of one website's crawl through the tracker."""

    def __init__(self, tracker: CrawlStateTracker, website_id):
        self.tracker = tracker
        self.repository = tracker.repository
        self.website_id = website_id

    async def _page(self, url: str) -> Optional[Page]:
        page = await self.repository.find_page_by_url(self.website_id, url)
        if page is None:
            logger.warning(f"[Tracker] No page row for {url} (website {self.website_id})")
        return page

    async def seed_scraped(self, seed_url: str, result: ExtractionResult) -> None:
        await self.tracker.record_seed(self.website_id, result)

    async def pages_discovered(self, links: List[DiscoveredLink]) -> None:
        created = await self.tracker.register_pages(self.website_id, links)
        logger.info(
            f"[Tracker] Discovered {len(links)} pages for website {self.website_id} "
            f"({len(created)} new)"
        )

    async def page_started(self, url: str, depth: int) -> None:
        page = await self._page(url)
        if page is not None:
            await self.tracker.start_page(page)

    async def page_scraped(self, page: PageResult) -> None:
        row = await self._page(page.url)
        if row is not None:
            await self.tracker.complete_page(row, page)
        await self.tracker.refresh_scraped_count(self.website_id)

    async def page_failed(self, url: str, depth: int, error: BaseException) -> None:
        row = await self._page(url)
        if row is not None:
            await self.tracker.fail_page(row, describe_error(error))
        await self.tracker.refresh_scraped_count(self.website_id)
