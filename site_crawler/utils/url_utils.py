import re
from urllib.parse import urljoin, urlparse

from site_crawler.utils.filters import is_skipped_url

# طول ستون url در جدول صفحه‌ها
MAX_URL_LENGTH = 2048


def normalize_seed(raw: str) -> str:
    """Prefix ``https://`` when the submitted address has no scheme."""
    if not raw:
        return raw
    if raw.lower().startswith(("http://", "https://")):
        return raw
    return f"https://{raw}"


def resolve_url(href: str, base_url: str) -> str:
    """Absolute form of ``href``; returned untouched if it cannot be resolved."""
    try:
        return urljoin(base_url, href.strip())
    except ValueError:
        return href


def resolve_internal(candidate: str, base_url: str) -> str | None:
    """Canonical same-host URL for ``candidate`` or None if it should not be crawled."""
    if not candidate:
        return None

    raw_link = candidate.strip()
    # لینک‌هایی که فقط به بخشی از همین صفحه اشاره می‌کنند
    if not raw_link or raw_link.startswith("#"):
        return None

    try:
        resolved = urljoin(base_url, raw_link)
        parsed = urlparse(resolved)
        base_host = urlparse(base_url).hostname
        host = parsed.hostname
    except ValueError:
        return None

    if parsed.scheme not in ("http", "https"):
        return None

    if not host or host != base_host:
        return None

    if is_skipped_url(resolved):
        return None

    path = re.sub(r"/{2,}", "/", parsed.path)
    path = path.rstrip("/")

    normalized = f"{parsed.scheme}://{parsed.netloc.lower()}{path}"
    if len(normalized) > MAX_URL_LENGTH:
        return None
    return normalized


def is_same_domain(url1: str, url2: str) -> bool:
    return get_domain(url1) == get_domain(url2)


def get_domain(url: str) -> str:
    try:
        return urlparse(url).hostname or ""
    except ValueError:
        return ""


def get_path(url: str) -> str:
    try:
        return urlparse(url).path or "/"
    except ValueError:
        return "/"
