from aiohttp import web
from prometheus_client import (
    CONTENT_TYPE_LATEST,
    generate_latest,
    Counter,
    Gauge,
    Histogram,
)

# -------------------------
# Request Metrics
# -------------------------

# kind: seed / page
REQUEST_COUNT = Counter(
    "site_crawler_requests_total",
    "Total HTTP requests",
    ["kind"],
)

FAILED_REQUESTS = Counter(
    "site_crawler_failed_requests_total",
    "Failed HTTP requests",
    ["kind", "category"],
)

REQUEST_LATENCY = Histogram(
    "site_crawler_request_latency_seconds",
    "Time to fetch a page",
    ["kind"],
)

# -------------------------
# Page Metrics
# -------------------------

PAGES_SCRAPED = Counter(
    "site_crawler_pages_scraped_total",
    "Internal pages scraped successfully",
)

PAGES_FAILED = Counter(
    "site_crawler_pages_failed_total",
    "Internal pages that failed to scrape",
)

# -------------------------
# Crawl Metrics
# -------------------------

CRAWLS_STARTED = Counter(
    "site_crawler_crawls_started_total",
    "Website crawls started",
)

CRAWLS_COMPLETED = Counter(
    "site_crawler_crawls_completed_total",
    "Website crawls completed",
)

CRAWLS_FAILED = Counter(
    "site_crawler_crawls_failed_total",
    "Website crawls that failed on the seed page",
)

CRAWLS_ACTIVE = Gauge(
    "site_crawler_crawls_active",
    "Website crawls currently running",
)


# -------------------------
# /metrics endpoint
# -------------------------

async def metrics_handler(request):
    data = generate_latest()

    # محتوا فقط باید بدون charset باشد
    ctype = CONTENT_TYPE_LATEST.split(";")[0]

    return web.Response(
        body=data,
        content_type=ctype
    )
