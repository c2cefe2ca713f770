import asyncio

import pytest

from site_crawler.errors import ScrapeError
from site_crawler.scraper import CrawlListener, WebScraper
from site_crawler.utils.config_loader import Config

from fake_site import FakeSite, html_page


class RecordingListener(CrawlListener):
    def __init__(self):
        self.events = []

    async def seed_scraped(self, seed_url, result):
        self.events.append(("seed", seed_url))

    async def pages_discovered(self, links):
        self.events.append(("discovered", [(link.path, link.depth) for link in links]))

    async def page_started(self, url, depth):
        self.events.append(("started", url, depth))

    async def page_scraped(self, page):
        self.events.append(("scraped", page.url, page.depth))

    async def page_failed(self, url, depth, error):
        self.events.append(("failed", url, str(error)))


def nested_site() -> FakeSite:
    return FakeSite(
        {
            "example.com/": html_page("Home", links=["/a", "/b"]),
            "example.com/a": html_page("A", links=["/a1", "/b"]),
            "example.com/b": html_page("B", links=["/b1"]),
            "example.com/a1": html_page("A1", links=["/a1x"]),
            "example.com/b1": html_page("B1"),
            "example.com/a1x": html_page("Too deep"),
        }
    )


@pytest.mark.asyncio
async def test_crawl_is_breadth_first_and_bounded_by_depth():
    site = nested_site()

    async with WebScraper(Config(crawl_delay=0), transport=site.transport) as scraper:
        pages = await scraper.crawl("https://example.com")

    assert site.requested == [
        "example.com/",
        "example.com/a",
        "example.com/b",
        "example.com/a1",
        "example.com/b1",
    ]
    assert [(p.path, p.depth) for p in pages] == [("/a", 1), ("/b", 1), ("/a1", 2), ("/b1", 2)]


@pytest.mark.asyncio
async def test_crawl_with_zero_depth_only_fetches_seed():
    site = nested_site()
    listener = RecordingListener()

    async with WebScraper(Config(crawl_delay=0, max_depth=0), transport=site.transport) as scraper:
        pages = await scraper.crawl("example.com", listener)

    assert pages == []
    assert site.requested == ["example.com/"]
    assert listener.events == [("seed", "https://example.com")]


@pytest.mark.asyncio
async def test_crawl_stops_at_page_budget():
    site = nested_site()

    async with WebScraper(Config(crawl_delay=0, max_pages=2), transport=site.transport) as scraper:
        pages = await scraper.crawl("https://example.com")

    assert [p.path for p in pages] == ["/a", "/b"]
    assert len(site.requests) == 3


@pytest.mark.asyncio
async def test_failed_pages_count_against_the_budget():
    site = FakeSite(
        {
            "example.com/": html_page("Home", links=["/broken", "/about", "/services"]),
            "example.com/broken": (500, "error"),
            "example.com/about": html_page("About"),
            "example.com/services": html_page("Services"),
        }
    )

    async with WebScraper(Config(crawl_delay=0, max_pages=2), transport=site.transport) as scraper:
        pages = await scraper.crawl("https://example.com")

    assert [p.path for p in pages] == ["/about"]
    assert "example.com/services" not in site.requested


@pytest.mark.asyncio
async def test_crawl_visits_each_url_once():
    site = FakeSite(
        {
            "example.com/": html_page(
                "Home",
                links=["/a", "/a/", "/a#team", "//example.com/a", "https://EXAMPLE.com/a", "/"],
            ),
            "example.com/a": html_page("A", links=["/", "/a", "https://example.com"]),
        }
    )

    async with WebScraper(Config(crawl_delay=0), transport=site.transport) as scraper:
        pages = await scraper.crawl("https://example.com")

    assert site.requested == ["example.com/", "example.com/a"]
    assert [p.url for p in pages] == ["https://example.com/a"]


@pytest.mark.asyncio
async def test_page_failure_does_not_stop_crawl(three_link_site):
    listener = RecordingListener()

    async with WebScraper(Config(crawl_delay=0), transport=three_link_site.transport) as scraper:
        pages = await scraper.crawl("https://example.com", listener)

    assert [p.path for p in pages] == ["/about", "/services"]
    assert "other.com/x" not in three_link_site.requested
    assert listener.events == [
        ("seed", "https://example.com"),
        ("discovered", [("/about", 1), ("/services", 1), ("/broken", 1)]),
        ("started", "https://example.com/about", 1),
        ("scraped", "https://example.com/about", 1),
        ("started", "https://example.com/services", 1),
        ("scraped", "https://example.com/services", 1),
        ("started", "https://example.com/broken", 1),
        ("failed", "https://example.com/broken", "Request failed with status code 500"),
    ]


@pytest.mark.asyncio
async def test_listener_errors_mark_the_page_failed():
    site = FakeSite(
        {
            "example.com/": html_page("Home", links=["/a", "/b"]),
            "example.com/a": html_page("A"),
            "example.com/b": html_page("B"),
        }
    )

    class FlakyListener(RecordingListener):
        async def page_scraped(self, page):
            if page.path == "/a":
                raise RuntimeError("database is locked")
            await super().page_scraped(page)

    listener = FlakyListener()
    async with WebScraper(Config(crawl_delay=0), transport=site.transport) as scraper:
        pages = await scraper.crawl("https://example.com", listener)

    assert [p.path for p in pages] == ["/b"]
    assert ("failed", "https://example.com/a", "database is locked") in listener.events


@pytest.mark.asyncio
async def test_seed_failure_raises_before_any_page(three_link_site):
    three_link_site.pages["example.com/"] = (500, "down")
    listener = RecordingListener()

    async with WebScraper(Config(crawl_delay=0), transport=three_link_site.transport) as scraper:
        with pytest.raises(ScrapeError):
            await scraper.crawl("https://example.com", listener)

    assert listener.events == []
    assert three_link_site.requested == ["example.com/"]


@pytest.mark.asyncio
async def test_crawl_waits_between_page_requests(monkeypatch, three_link_site):
    delays = []
    original_sleep = asyncio.sleep

    async def fake_sleep(delay, *args, **kwargs):
        delays.append(delay)
        await original_sleep(0)

    monkeypatch.setattr("site_crawler.scraper.asyncio.sleep", fake_sleep)

    async with WebScraper(Config(crawl_delay=0.5), transport=three_link_site.transport) as scraper:
        await scraper.crawl("https://example.com")

    assert delays == [0.5, 0.5, 0.5]


@pytest.mark.asyncio
async def test_errors_recording_child_links_are_contained():
    site = nested_site()

    class FlakyDiscovery(RecordingListener):
        async def pages_discovered(self, links):
            if links[0].path == "/a1":
                raise RuntimeError("database is locked")
            await super().pages_discovered(links)

    listener = FlakyDiscovery()
    async with WebScraper(Config(crawl_delay=0), transport=site.transport) as scraper:
        pages = await scraper.crawl("https://example.com", listener)

    assert [p.path for p in pages] == ["/a", "/b", "/b1"]
    assert "example.com/a1" not in site.requested
