import uuid
from typing import Any, Dict, List, Optional

from loguru import logger

from site_crawler.errors import NotFoundError
from site_crawler.scheduler import CrawlScheduler
from site_crawler.scraper import WebScraper, describe_error
from site_crawler.storage.models import Page, Website, WebsiteStatus
from site_crawler.storage.repository import WebsiteRepository
from site_crawler.tracker import CrawlStateTracker
from site_crawler.worker import ScraperFactory


def _parse_id(value) -> Optional[uuid.UUID]:
    if isinstance(value, uuid.UUID):
        return value
    try:
        return uuid.UUID(str(value))
    except ValueError:
        return None


class OnboardingService:
    """Operations the onboarding workflow uses to bootstrap a profile from a website."""

    def __init__(
        self,
        repository: WebsiteRepository,
        tracker: CrawlStateTracker,
        scheduler: CrawlScheduler,
        scraper_factory: Optional[ScraperFactory] = None,
    ):
        self.repository = repository
        self.tracker = tracker
        self.scheduler = scheduler
        self.scraper_factory = scraper_factory or WebScraper

    # --------------------------
    #  Lookups with ownership
    # --------------------------
    async def _owned_website(self, website_id, user_id: str) -> Website:
        parsed = _parse_id(website_id)
        website = await self.repository.find_website(parsed, user_id) if parsed else None
        if website is None:
            raise NotFoundError("Website not found")
        return website

    async def _owned_page(self, page_id, user_id: str) -> Page:
        parsed = _parse_id(page_id)
        page = await self.repository.find_page_by_id(parsed) if parsed else None
        if page is None or page.website.user_id != user_id:
            raise NotFoundError("Page not found")
        return page

    # --------------------------
    #  Websites
    # --------------------------
    async def submit_seed(self, user_id: str, url: str) -> Website:
        # TODO: enforce one primary website per user with a partial unique index
        existing_primary = await self.repository.find_primary_by_user(user_id)

        website = await self.repository.create_website(
            user_id=user_id,
            url=url,
            is_primary=existing_primary is None,
            status=WebsiteStatus.PENDING,
        )
        logger.info(f"Website {website.id} submitted by user {user_id}: {url}")
        return website

    async def start_crawl(self, website_id, user_id: str) -> Website:
        website = await self._owned_website(website_id, user_id)

        website = await self.tracker.start_website(website.id)
        self.scheduler.schedule(website.id)
        return website

    async def get_status(self, website_id, user_id: str) -> Dict[str, Any]:
        website = await self._owned_website(website_id, user_id)
        page_stats = await self.repository.count_page_statuses(website.id)
        return {"website": website, "page_stats": page_stats}

    async def list_pages(self, website_id, user_id: str) -> List[Page]:
        website = await self._owned_website(website_id, user_id)
        return await self.repository.find_pages_by_website(website.id)

    async def list_websites(self, user_id: str) -> List[Website]:
        return await self.repository.find_websites_by_user(user_id)

    async def can_finalize_onboarding(self, user_id: str) -> bool:
        return await self.tracker.can_finalize_onboarding(user_id)

    async def onboarding_status(self, user_id: str) -> Dict[str, Any]:
        websites = await self.repository.find_websites_by_user(user_id)
        primary = next((w for w in websites if w.is_primary), None)
        if primary is None and websites:
            primary = websites[0]

        page_stats = None
        if primary is not None:
            page_stats = await self.repository.count_page_statuses(primary.id)

        return {
            "has_website": bool(websites),
            "can_finalize": any(w.status == WebsiteStatus.COMPLETED for w in websites),
            "website_status": primary.status if primary else None,
            "website": primary,
            "page_stats": page_stats,
        }

    # --------------------------
    #  Pages
    # --------------------------
    async def list_user_pages(self, user_id: str) -> List[Page]:
        return await self.repository.find_active_pages_by_user(user_id)

    async def get_page(self, page_id, user_id: str) -> Page:
        return await self._owned_page(page_id, user_id)

    async def refetch_page(self, page_id, user_id: str) -> Page:
        """Scrape a single page again without following its links.

        Sibling pages and the parent website are left untouched.
        """
        page = await self._owned_page(page_id, user_id)
        website = page.website
        base_url = (website.scraped_meta or {}).get("base_url") or website.url

        await self.tracker.start_page(page)

        try:
            async with self.scraper_factory() as scraper:
                result = await scraper.fetch_page(page.url, base_url, depth=page.depth)
            await self.tracker.complete_page(page, result)
        except Exception as e:
            logger.warning(f"Failed to refetch page {page.id}: {describe_error(e)}")
            await self.tracker.fail_page(page, describe_error(e))

        return await self.repository.find_page_by_id(page.id)

    async def soft_delete_page(self, page_id, user_id: str) -> Page:
        page = await self._owned_page(page_id, user_id)
        if page.is_deleted:
            return page
        return await self.repository.soft_delete_page(page.id, user_id)
