import os
import sys
from pathlib import Path

import pytest

ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from site_crawler.scheduler import CrawlScheduler
from site_crawler.scraper import WebScraper
from site_crawler.service import OnboardingService
from site_crawler.storage.database import close_db, init_db
from site_crawler.storage.repository import WebsiteRepository
from site_crawler.tracker import CrawlStateTracker
from site_crawler.utils.config_loader import Config
from site_crawler.utils.env_loader import load_environment
from site_crawler.worker import CrawlWorker

from fake_site import FakeSite, html_page


SETTING_KEYS = [
    "DATABASE_URL",
    "CRAWLER_USER_AGENT",
    "MAX_DEPTH",
    "MAX_PAGES",
    "CRAWL_DELAY",
    "SEED_TIMEOUT",
    "PAGE_TIMEOUT",
    "SEED_MAX_REDIRECTS",
    "PAGE_MAX_REDIRECTS",
    "MAX_DOWNLOAD_BYTES",
    "API_PORT",
    "LOG_LEVEL",
]


@pytest.fixture(autouse=True)
def load_dotenv_defaults(monkeypatch):
    """Ensure .env defaults are available for every test."""

    # Tests always start from the built-in defaults unless they override
    # values via monkeypatch or a custom env file.
    for key in SETTING_KEYS:
        monkeypatch.delenv(key, raising=False)

    load_environment(override=True)

    yield

    for key in list(os.environ.keys()):
        if key.startswith("TEST_"):
            monkeypatch.delenv(key, raising=False)


@pytest.fixture
async def db():
    await init_db("sqlite://:memory:")
    yield
    await close_db()


@pytest.fixture
def three_link_site():
    """Homepage with three internal links; ``/broken`` answers 500."""
    return FakeSite(
        {
            "example.com/": html_page(
                "Example Home",
                links=["/about", "/services", "/broken", "https://other.com/x"],
                body="Welcome to example",
            ),
            "example.com/about": html_page("About us", body="We build things"),
            "example.com/services": html_page("Services", body="Consulting and design"),
            "example.com/broken": (500, "<html><body>error</body></html>"),
        }
    )


@pytest.fixture
def make_service(db):
    """Wire the full crawl pipeline against a fake site."""

    def factory(site: FakeSite, **settings) -> OnboardingService:
        settings.setdefault("crawl_delay", 0)
        config = Config(**settings)

        def scraper_factory():
            return WebScraper(config, transport=site.transport)

        repository = WebsiteRepository()
        tracker = CrawlStateTracker(repository)
        scheduler = CrawlScheduler(CrawlWorker(tracker, scraper_factory))
        return OnboardingService(repository, tracker, scheduler, scraper_factory)

    return factory
