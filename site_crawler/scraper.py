import asyncio
import time
from collections import deque
from dataclasses import dataclass
from typing import Dict, List, Optional

import httpx
from loguru import logger
from tortoise.exceptions import OperationalError as DBError

from site_crawler.errors import CrossOriginError, FetchError, ScrapeError
from site_crawler.monitoring.metrics import (
    FAILED_REQUESTS,
    PAGES_FAILED,
    PAGES_SCRAPED,
    REQUEST_COUNT,
    REQUEST_LATENCY,
)
from site_crawler.parsing.html_extractor import ExtractionResult, extract
from site_crawler.utils.config_loader import Config, load_config
from site_crawler.utils.url_utils import (
    get_domain,
    get_path,
    normalize_seed,
    resolve_internal,
)


ACCEPT_HEADER = "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8"
# هر چیز دیگری (حتی text/plain) مثل HTML پردازش می‌شود
BINARY_CONTENT_TYPES = (
    "image/",
    "audio/",
    "video/",
    "font/",
    "application/pdf",
    "application/zip",
    "application/octet-stream",
)

KIND_SEED = "seed"
KIND_PAGE = "page"


@dataclass(frozen=True)
class FetchProfile:
    kind: str
    timeout: float
    max_redirects: int


@dataclass
class FetchResult:
    url: str
    final_url: str
    status_code: int
    content: str
    content_type: str
    redirect_count: int = 0


@dataclass
class DiscoveredLink:
    url: str
    depth: int

    @property
    def path(self) -> str:
        return get_path(self.url)


@dataclass
class PageResult:
    url: str
    path: str
    depth: int
    result: ExtractionResult

    @property
    def title(self) -> Optional[str]:
        return self.result.title

    @property
    def internal_links(self) -> List[str]:
        return self.result.internal_links


def describe_error(exc: BaseException) -> str:
    """Human readable error text; some httpx exceptions have an empty message."""
    return (str(exc) or exc.__class__.__name__)[:500]


def categorize_error(exc: BaseException) -> str:
    if isinstance(exc, (httpx.TimeoutException, asyncio.TimeoutError)):
        return "network_timeout"
    if isinstance(exc, httpx.TooManyRedirects):
        return "redirect_loop"
    if isinstance(exc, httpx.TransportError):
        return "connection_error"
    if isinstance(exc, CrossOriginError):
        return "cross_origin"
    if isinstance(exc, FetchError):
        return "http_status" if exc.status_code else "unusable_response"
    if isinstance(exc, DBError):
        return "db_error"
    return "unexpected"


class CrawlListener:
    """Receives crawl progress. The default implementation ignores every event."""

    async def seed_scraped(self, seed_url: str, result: ExtractionResult) -> None:
        pass

    async def pages_discovered(self, links: List[DiscoveredLink]) -> None:
        pass

    async def page_started(self, url: str, depth: int) -> None:
        pass

    async def page_scraped(self, page: PageResult) -> None:
        pass

    async def page_failed(self, url: str, depth: int, error: BaseException) -> None:
        pass


class WebScraper:
    """Fetches pages of one website and walks its internal links breadth-first.

    Use as an async context manager so the underlying HTTP clients are closed.
    A ``transport`` can be injected (``httpx.MockTransport`` in tests).
    """

    def __init__(
        self,
        config: Optional[Config] = None,
        *,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        config = config or load_config()
        self.user_agent = config.crawler_user_agent
        self.max_depth = config.max_depth
        self.max_pages = config.max_pages
        self.crawl_delay = config.crawl_delay
        self.max_download_bytes = config.max_download_bytes
        self.seed_profile = FetchProfile(KIND_SEED, config.seed_timeout, config.seed_max_redirects)
        self.page_profile = FetchProfile(KIND_PAGE, config.page_timeout, config.page_max_redirects)
        self._transport = transport
        self._clients: Dict[str, httpx.AsyncClient] = {}

    async def __aenter__(self) -> "WebScraper":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    async def close(self) -> None:
        clients = list(self._clients.values())
        self._clients.clear()
        for client in clients:
            await client.aclose()

    def _client(self, profile: FetchProfile) -> httpx.AsyncClient:
        # httpx فقط در سطح کلاینت محدودیت redirect را می‌پذیرد
        client = self._clients.get(profile.kind)
        if client is None:
            client = httpx.AsyncClient(
                timeout=httpx.Timeout(timeout=profile.timeout),
                follow_redirects=True,
                max_redirects=profile.max_redirects,
                headers={
                    "User-Agent": self.user_agent,
                    "Accept": ACCEPT_HEADER,
                },
                transport=self._transport,
            )
            self._clients[profile.kind] = client
        return client

    # --------------------------
    #  HTTP fetch with metrics
    # --------------------------
    async def _fetch(self, url: str, profile: FetchProfile) -> FetchResult:
        REQUEST_COUNT.labels(kind=profile.kind).inc()
        start = time.perf_counter()

        try:
            async with self._client(profile).stream("GET", url) as resp:
                content_type = (resp.headers.get("Content-Type") or "").lower()

                if not resp.is_success:
                    raise FetchError(
                        f"Request failed with status code {resp.status_code}",
                        status_code=resp.status_code,
                    )

                if content_type.startswith(BINARY_CONTENT_TYPES):
                    raise FetchError(f"Unsupported content type: {content_type}")

                body = await self._read_limited(resp)

                return FetchResult(
                    url=url,
                    final_url=str(resp.url),
                    status_code=resp.status_code,
                    content=body.decode(resp.encoding or "utf-8", errors="replace"),
                    content_type=content_type,
                    redirect_count=len(resp.history),
                )
        except Exception as e:
            FAILED_REQUESTS.labels(kind=profile.kind, category=categorize_error(e)).inc()
            raise
        finally:
            elapsed = time.perf_counter() - start
            REQUEST_LATENCY.labels(kind=profile.kind).observe(elapsed)

    async def _read_limited(self, resp: httpx.Response) -> bytes:
        """Read the body, giving up as soon as it passes ``max_download_bytes``."""
        declared = resp.headers.get("Content-Length", "")
        if declared.isdigit() and int(declared) > self.max_download_bytes:
            raise FetchError(
                f"Response body too large: {declared} bytes (limit {self.max_download_bytes})"
            )

        chunks: List[bytes] = []
        size = 0
        async for chunk in resp.aiter_bytes():
            size += len(chunk)
            if size > self.max_download_bytes:
                raise FetchError(
                    f"Response body too large: more than {self.max_download_bytes} bytes"
                )
            chunks.append(chunk)
        return b"".join(chunks)

    # --------------------------
    #  Single page operations
    # --------------------------
    async def scrape_seed(self, url: str) -> ExtractionResult:
        """Fetch and extract the homepage. Transport failures raise ScrapeError."""
        normalized = normalize_seed(url)

        try:
            fetched = await self._fetch(normalized, self.seed_profile)
        except (httpx.HTTPError, FetchError) as e:
            logger.error(f"[Scraper] Failed to scrape website {url}: {describe_error(e)}")
            raise ScrapeError(f"Failed to scrape website: {describe_error(e)}") from e

        # ممکن است به دامنه‌ی دیگری (مثلاً www) ریدایرکت شده باشد
        base_url = fetched.final_url or normalized
        result = extract(fetched.content, base_url)

        logger.info(
            f"[Scraper] Scraped seed {normalized} "
            f"(status={fetched.status_code}, redirects={fetched.redirect_count}, "
            f"internal_links={len(result.internal_links)})"
        )
        return result

    async def fetch_page(self, url: str, base_url: str, *, depth: int = 1) -> PageResult:
        """Fetch and extract one internal page, raising on any failure."""
        normalized = normalize_seed(url)
        base_domain = get_domain(normalize_seed(base_url))

        if get_domain(normalized) != base_domain:
            raise CrossOriginError(f"{normalized} is not on {base_domain}")

        fetched = await self._fetch(normalized, self.page_profile)
        result = extract(fetched.content, normalized)

        return PageResult(
            url=normalized,
            path=get_path(normalized),
            depth=depth,
            result=result,
        )

    async def scrape_page(self, url: str, base_url: str) -> Optional[PageResult]:
        """Like :meth:`fetch_page` but reports any failure as ``None``."""
        try:
            return await self.fetch_page(url, base_url)
        except CrossOriginError:
            return None
        except Exception as e:
            logger.warning(f"[Scraper] Failed to scrape page {url}: {describe_error(e)}")
            return None

    # --------------------------
    #  Breadth-first crawl
    # --------------------------
    async def _discover(
        self,
        links: List[str],
        base_url: str,
        depth: int,
        visited: set[str],
        queue: deque,
        listener: CrawlListener,
    ) -> List[DiscoveredLink]:
        """Report unseen internal links, then queue them.

        Links are queued only after the listener accepted them, so a page is
        never crawled without having been recorded first.
        """
        discovered: List[DiscoveredLink] = []
        batch: set[str] = set()
        for link in links:
            normalized = resolve_internal(link, base_url)
            if normalized and normalized not in visited and normalized not in batch:
                batch.add(normalized)
                discovered.append(DiscoveredLink(url=normalized, depth=depth))

        if not discovered:
            return discovered

        await listener.pages_discovered(discovered)

        for link in discovered:
            # قبل از صف‌کردن علامت می‌زنیم تا هر URL فقط یک بار خزیده شود
            visited.add(link.url)
            queue.append((link.url, link.depth))
        return discovered

    async def crawl(self, seed: str, listener: Optional[CrawlListener] = None) -> List[PageResult]:
        """Scrape the seed page, then its internal pages up to ``max_depth``.

        At most ``max_pages`` internal pages are attempted; a failed page counts
        against the budget. Page failures, including errors raised by the
        listener while a page is handled, are reported and do not stop the
        crawl. A seed failure raises :class:`ScrapeError`.
        """
        listener = listener or CrawlListener()
        seed_url = normalize_seed(seed)

        homepage = await self.scrape_seed(seed_url)
        base_url = homepage.url or seed_url
        await listener.seed_scraped(seed_url, homepage)

        visited: set[str] = {resolve_internal(base_url, base_url) or base_url}
        queue: deque = deque()

        if self.max_depth >= 1:
            await self._discover(homepage.internal_links, base_url, 1, visited, queue, listener)

        pages: List[PageResult] = []
        attempted = 0

        while queue:
            if attempted >= self.max_pages:
                logger.info(
                    f"[Scraper] Page budget of {self.max_pages} reached; "
                    f"{len(queue)} queued pages left for {base_url}"
                )
                break

            url, depth = queue.popleft()
            if depth > self.max_depth:
                continue

            attempted += 1
            await asyncio.sleep(self.crawl_delay)

            try:
                await listener.page_started(url, depth)
                page = await self.fetch_page(url, base_url, depth=depth)
                await listener.page_scraped(page)
            except Exception as e:
                PAGES_FAILED.inc()
                logger.warning(f"[Scraper] Failed to scrape page {url}: {describe_error(e)}")
                await self._report_failure(listener, url, depth, e)
                continue

            PAGES_SCRAPED.inc()
            pages.append(page)
            logger.debug(
                f"[Scraper] Scraped {url} (depth={depth}, words={page.result.word_count})"
            )

            if depth < self.max_depth:
                try:
                    await self._discover(
                        page.internal_links, base_url, depth + 1, visited, queue, listener
                    )
                except Exception as e:
                    logger.warning(
                        f"[Scraper] Could not record links found on {url}: {describe_error(e)}"
                    )

        return pages

    async def _report_failure(
        self, listener: CrawlListener, url: str, depth: int, error: BaseException
    ) -> None:
        try:
            await listener.page_failed(url, depth, error)
        except Exception:
            logger.exception(f"[Scraper] Could not record failure of {url}")
