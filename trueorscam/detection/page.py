# detection/page.py
import hashlib
import logging
from urllib.parse import urlparse

import requests

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 10
FAVICON_TIMEOUT = 5
MAX_HTML_CHARS = 250_000
SNIPPET_CHARS = 5000

HEADERS = {
    "User-Agent": "TrueOrScamBot/2.0 (+https://example.com)",
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
}


def favicon_hash(final_url: str, http=requests) -> str:
    """SHA-1 of /favicon.ico at the page origin, or None."""
    p = urlparse(final_url)
    try:
        fav = http.get(f"{p.scheme}://{p.netloc}/favicon.ico", headers=HEADERS,
                       allow_redirects=True, timeout=FAVICON_TIMEOUT)
    except requests.RequestException:
        return None
    if not fav.ok:
        return None
    return hashlib.sha1(fav.content).hexdigest()


def inspect_page(url: str, timeout: float = DEFAULT_TIMEOUT, http=requests) -> dict:
    """Fetch page metadata and an HTML snippet. Never raises; errors come back as {"error": ...}."""
    try:
        r = http.head(url, headers=HEADERS, allow_redirects=True, timeout=timeout)
        final_url = r.url or url
        content_type = r.headers.get("content-type", "")
        is_html = "text/html" in content_type or content_type == ""

        html = ""
        if is_html:
            r = http.get(final_url, headers=HEADERS, allow_redirects=True, timeout=timeout)
            html = r.content.decode("utf-8", errors="replace")[:MAX_HTML_CHARS]

        return {
            "final_url": final_url,
            "status": r.status_code,
            "content_type": content_type,
            "html_snippet": html[:SNIPPET_CHARS],
            "favicon_hash": favicon_hash(final_url, http=http),
        }
    except requests.RequestException as e:
        logger.info("Page inspection failed for %s: %s", url, e)
        return {"error": str(e)}
