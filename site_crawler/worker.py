from typing import Callable, Optional

from loguru import logger

from site_crawler.monitoring.metrics import (
    CRAWLS_ACTIVE,
    CRAWLS_COMPLETED,
    CRAWLS_FAILED,
    CRAWLS_STARTED,
)
from site_crawler.scraper import WebScraper, categorize_error, describe_error
from site_crawler.tracker import CrawlStateTracker, TrackingListener


ScraperFactory = Callable[[], WebScraper]


class CrawlWorker:
    """Runs one website crawl from the seed page to a final status.

    ``run`` is the unit of work handed to the scheduler. It never raises:
    every error is logged and persisted on the website.
    """

    def __init__(self, tracker: CrawlStateTracker, scraper_factory: Optional[ScraperFactory] = None):
        self.tracker = tracker
        self.repository = tracker.repository
        self.scraper_factory = scraper_factory or WebScraper

    async def run(self, website_id) -> None:
        name = f"Crawl-{website_id}"
        CRAWLS_STARTED.inc()
        CRAWLS_ACTIVE.inc()

        try:
            website = await self.repository.find_website(website_id)
            if website is None:
                logger.error(f"[{name}] Website no longer exists; nothing to crawl")
                return

            logger.info(f"[{name}] Crawl started for {website.url}")
            listener = TrackingListener(self.tracker, website_id)

            async with self.scraper_factory() as scraper:
                pages = await scraper.crawl(website.url, listener)

            await self.tracker.complete_website(website_id)
            CRAWLS_COMPLETED.inc()
            logger.info(f"[{name}] Crawl finished ({len(pages)} internal pages scraped)")

        except Exception as e:
            CRAWLS_FAILED.inc()
            logger.error(
                f"[{name}] Crawl failed ({categorize_error(e)}): {describe_error(e)}"
            )
            try:
                await self.tracker.fail_website(website_id, describe_error(e))
            except Exception:
                logger.exception(f"[{name}] Could not record crawl failure")

        finally:
            CRAWLS_ACTIVE.dec()
