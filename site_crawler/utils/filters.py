import re
from urllib.parse import urlparse

# پسوندهایی که نباید خزیده بشن
BLOCKED_EXTENSIONS = (
    ".jpg", ".jpeg", ".png", ".gif", ".webp", ".svg", ".ico", ".mp4", ".mp3",
    ".pdf", ".doc", ".docx", ".xls", ".xlsx", ".ppt", ".pptx", ".zip", ".rar",
    ".exe", ".dmg", ".apk", ".iso", ".tar", ".gz", ".7z", ".css", ".js",
)

TRACKING_PARAMS = re.compile(
    r"(?:^|&)(?:utm_[^=&]*|ref|source|fbclid|gclid)=", re.IGNORECASE
)

NON_CONTENT_PATHS = re.compile(
    r"/wp-(?:admin|content|includes)/"
    r"|/admin(?:/|$)"
    r"|/(?:login|logout|signin|cart|checkout|account)\b",
    re.IGNORECASE,
)


def is_skipped_url(url: str) -> bool:
    """URLs that never carry profile content: assets, tracking variants, admin areas."""
    try:
        parsed = urlparse(url)
    except ValueError:
        return True

    path = parsed.path.lower()

    if path.endswith(BLOCKED_EXTENSIONS):
        return True

    if parsed.query and TRACKING_PARAMS.search(parsed.query):
        return True

    if NON_CONTENT_PATHS.search(path):
        return True

    return False
