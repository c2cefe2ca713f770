"""Pattern-based metadata and text extraction.

Every field is pulled by its own regular expression over the raw markup, so a
broken document only loses the fields whose patterns no longer match. Nothing
in this module raises on malformed input.
"""

from __future__ import annotations

import html as html_lib
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from site_crawler.utils.url_utils import get_domain, resolve_internal, resolve_url


MAX_HEADINGS = 20
MAX_LINKS = 100
MAX_INTERNAL_LINKS = 100
MAX_EXTERNAL_LINKS = 50
MAX_CONTENT_CHARS = 10_000

# مقدار یک attribute با کوتیشن دوتایی یا تکی
_QUOTED = r"""(?:"([^"]*)"|'([^']*)')"""

_TITLE_RE = re.compile(r"<title\b[^>]*>(.*?)</title\s*>", re.IGNORECASE | re.DOTALL)
_HEADING_RE = re.compile(r"<h([1-3])\b[^>]*>(.*?)</h\1\s*>", re.IGNORECASE | re.DOTALL)
_ANCHOR_RE = re.compile(r"<a\b[^>]*?\bhref\s*=\s*" + _QUOTED, re.IGNORECASE)
_TAG_RE = re.compile(r"<[^>]+>")
_COMMENT_RE = re.compile(r"<!--.*?-->", re.DOTALL)
_WHITESPACE_RE = re.compile(r"\s+")
_CODE_BLOCKS = tuple(
    re.compile(rf"<{tag}\b[^>]*>.*?</{tag}\s*>", re.IGNORECASE | re.DOTALL)
    for tag in ("script", "style", "noscript")
)
_CHROME_BLOCKS = tuple(
    re.compile(rf"<{tag}\b[^>]*>.*?</{tag}\s*>", re.IGNORECASE | re.DOTALL)
    for tag in ("nav", "header", "footer")
)
_SKIPPED_HREF_PREFIXES = ("#", "javascript:", "mailto:", "tel:")


def _attr_pair_patterns(tag: str, attr: str, value: str, target: str) -> List[re.Pattern]:
    """Two patterns for ``<tag attr=value ... target=X>`` in either attribute order."""
    key = rf"\b{attr}\s*=\s*[\"']{value}[\"']"
    wanted = rf"\b{target}\s*=\s*{_QUOTED}"
    return [
        re.compile(rf"<{tag}\b[^>]*?{key}[^>]*?{wanted}", re.IGNORECASE),
        re.compile(rf"<{tag}\b[^>]*?{wanted}[^>]*?{key}", re.IGNORECASE),
    ]


_DESCRIPTION_PATTERNS = _attr_pair_patterns("meta", "name", "description", "content")
_KEYWORDS_PATTERNS = _attr_pair_patterns("meta", "name", "keywords", "content")
_OG_IMAGE_PATTERNS = _attr_pair_patterns("meta", "property", "og:image", "content")
_FAVICON_PATTERNS = _attr_pair_patterns("link", "rel", r"(?:shortcut\s+)?icon", "href")


@dataclass
class ExtractionResult:
    title: Optional[str] = None
    description: Optional[str] = None
    keywords: List[str] = field(default_factory=list)
    favicon: Optional[str] = None
    og_image: Optional[str] = None
    headings: List[str] = field(default_factory=list)
    links: List[str] = field(default_factory=list)
    internal_links: List[str] = field(default_factory=list)
    external_links: List[str] = field(default_factory=list)
    content: str = ""
    word_count: int = 0
    # آدرسی که لینک‌ها نسبت به آن حل شده‌اند (بعد از ریدایرکت)
    url: Optional[str] = None

    def website_meta(self) -> Dict[str, Any]:
        return {
            "title": self.title,
            "description": self.description,
            "keywords": self.keywords,
            "favicon": self.favicon,
            "og_image": self.og_image,
            "headings": self.headings,
            "links": self.links,
            "internal_links": self.internal_links,
            "external_links": self.external_links,
            "base_url": self.url,
        }

    def page_meta(self) -> Dict[str, Any]:
        meta = self.website_meta()
        meta.pop("favicon")
        meta.pop("base_url")
        return meta


def _clean(text: str) -> str:
    return _WHITESPACE_RE.sub(" ", html_lib.unescape(text)).strip()


def _strip_code(html: str) -> str:
    """Remove comments and script/style/noscript bodies so their markup is not mistaken for content."""
    html = _COMMENT_RE.sub(" ", html)
    for pattern in _CODE_BLOCKS:
        html = pattern.sub(" ", html)
    return html


def _first_attr(html: str, patterns: List[re.Pattern]) -> Optional[str]:
    for pattern in patterns:
        match = pattern.search(html)
        if match:
            value = match.group(1) if match.group(1) is not None else match.group(2)
            value = _clean(value or "")
            if value:
                return value
    return None


def extract_title(html: str) -> Optional[str]:
    match = _TITLE_RE.search(html)
    if not match:
        return None
    return _clean(_TAG_RE.sub(" ", match.group(1))) or None


def extract_headings(html: str) -> List[str]:
    headings: List[str] = []
    for match in _HEADING_RE.finditer(html):
        heading = _clean(_TAG_RE.sub(" ", match.group(2)))
        if heading:
            headings.append(heading)
            if len(headings) >= MAX_HEADINGS:
                break
    return headings


def extract_keywords(html: str) -> List[str]:
    raw = _first_attr(html, _KEYWORDS_PATTERNS)
    if not raw:
        return []
    return [keyword.strip() for keyword in raw.split(",") if keyword.strip()]


def extract_text(html: str) -> str:
    """
    متن قابل‌مشاهده‌ی صفحه بدون منو، هدر، فوتر و اسکریپت‌ها.
    """
    text = _strip_code(html)
    for pattern in _CHROME_BLOCKS:
        text = pattern.sub(" ", text)
    text = _TAG_RE.sub(" ", text)
    return _clean(text)[:MAX_CONTENT_CHARS]


def extract_links(base_url: str, html: str) -> tuple[List[str], List[str], List[str]]:
    """Return ``(all_links, internal_links, external_links)`` found in anchors."""
    base_domain = get_domain(base_url)
    all_links: List[str] = []
    internal_links: List[str] = []
    external_links: List[str] = []
    seen_all: set[str] = set()
    seen_internal: set[str] = set()
    seen_external: set[str] = set()

    for match in _ANCHOR_RE.finditer(html):
        href = html_lib.unescape(match.group(1) if match.group(1) is not None else match.group(2)).strip()
        if not href or href.lower().startswith(_SKIPPED_HREF_PREFIXES):
            continue

        resolved = resolve_url(href, base_url)
        if not resolved.lower().startswith(("http://", "https://")):
            continue

        if resolved not in seen_all:
            seen_all.add(resolved)
            all_links.append(resolved)

        link_domain = get_domain(resolved)
        if not link_domain:
            continue

        if link_domain == base_domain:
            normalized = resolve_internal(resolved, base_url)
            if normalized and normalized not in seen_internal:
                seen_internal.add(normalized)
                internal_links.append(normalized)
        elif resolved not in seen_external:
            seen_external.add(resolved)
            external_links.append(resolved)

    return (
        all_links[:MAX_LINKS],
        internal_links[:MAX_INTERNAL_LINKS],
        external_links[:MAX_EXTERNAL_LINKS],
    )


def extract(html: str, base_url: str) -> ExtractionResult:
    html = html or ""
    result = ExtractionResult(url=base_url)

    result.title = extract_title(html)
    result.description = _first_attr(html, _DESCRIPTION_PATTERNS)
    result.keywords = extract_keywords(html)

    favicon = _first_attr(html, _FAVICON_PATTERNS)
    if favicon:
        result.favicon = resolve_url(favicon, base_url)

    og_image = _first_attr(html, _OG_IMAGE_PATTERNS)
    if og_image:
        result.og_image = resolve_url(og_image, base_url)

    visible = _strip_code(html)
    result.headings = extract_headings(visible)
    result.links, result.internal_links, result.external_links = extract_links(base_url, visible)

    result.content = extract_text(html)
    result.word_count = len(result.content.split())

    return result
