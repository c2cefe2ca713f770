import asyncio
import signal

from aiohttp import web
from loguru import logger

# -------------------------------
# UVLOOP (اگر نصب بود فعال می‌کنیم)
# -------------------------------
try:
    import uvloop
    uvloop.install()
except ImportError:
    logger.warning("uvloop not available, using default asyncio loop.")

# -------------------------------
# INTERNAL IMPORTS
# -------------------------------
from site_crawler.api.routes import create_app
from site_crawler.scheduler import CrawlScheduler
from site_crawler.scraper import WebScraper
from site_crawler.service import OnboardingService
from site_crawler.storage.database import close_db, init_db
from site_crawler.storage.repository import WebsiteRepository
from site_crawler.tracker import CrawlStateTracker
from site_crawler.utils.config_loader import load_config
from site_crawler.utils.logger import setup_logger
from site_crawler.worker import CrawlWorker


# -------------------------------
# MAIN APPLICATION
# -------------------------------
async def main() -> None:
    config = load_config()
    setup_logger(config.log_level, config.log_path)

    logger.info("Starting site crawler service...")

    # ---- Database ----
    await init_db(config.database_url)

    # ---- Crawl pipeline ----
    repository = WebsiteRepository()
    tracker = CrawlStateTracker(repository)
    scraper_factory = lambda: WebScraper(config)  # noqa: E731
    worker = CrawlWorker(tracker, scraper_factory)
    scheduler = CrawlScheduler(worker)
    service = OnboardingService(repository, tracker, scheduler, scraper_factory)

    # ---- API + metrics ----
    runner = web.AppRunner(create_app(service))
    await runner.setup()
    site = web.TCPSite(runner, config.api_host, config.api_port)
    await site.start()

    shutdown_event = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGTERM, signal.SIGINT):
        loop.add_signal_handler(sig, shutdown_event.set)

    logger.info(f"Site crawler listening on {config.api_host}:{config.api_port}")

    try:
        await shutdown_event.wait()
    except asyncio.CancelledError:
        pass
    finally:
        logger.info(f"Shutting down; cancelling {scheduler.active_count} running crawls")
        await scheduler.shutdown()
        await runner.shutdown()
        await runner.cleanup()
        await close_db()


def run() -> None:
    asyncio.run(main())


# -------------------------------
# ENTRYPOINT
# -------------------------------
if __name__ == "__main__":
    run()
