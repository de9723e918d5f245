# detection/features_url.py
import re
from typing import Optional
from urllib.parse import parse_qs, urlparse, urlunparse

import idna
import tldextract
from Levenshtein import distance as levenshtein

# ----- Config / lists -----
SUSPICIOUS_TLDS = {"zip", "mov", "info", "top", "gq", "cf", "ml"}
BRAND_KEYWORDS = ["paypal", "google", "microsoft", "apple", "amazon", "facebook"]

IMAGE_URL_RE = re.compile(r"\.(png|jpe?g|gif|webp|bmp|tiff?)(\?|#|$)", re.IGNORECASE)
VIDEO_URL_RE = re.compile(r"(youtube\.com|youtu\.be|vimeo\.com|\.mp4(\?|#|$))", re.IGNORECASE)
IPV4_RE = re.compile(r"^\d{1,3}(\.\d{1,3}){3}$")

# bundled public suffix snapshot only; never fetch the list at runtime
_extract = tldextract.TLDExtract(suffix_list_urls=())


# ----- Routing helpers -----
def normalize_url(u: str) -> Optional[str]:
    """Return the URL if it is an absolute http(s) URL, else None."""
    u = (u or "").strip()
    if not u or " " in u:
        return None
    try:
        p = urlparse(u)
    except ValueError:
        return None
    if p.scheme not in ("http", "https") or not p.hostname:
        return None
    if not p.path:
        p = p._replace(path="/")
    return urlunparse(p)


def is_likely_image_url(u: str) -> bool:
    return bool(IMAGE_URL_RE.search(u or ""))


def is_likely_video_url(u: str) -> bool:
    return bool(VIDEO_URL_RE.search(u or ""))


def youtube_id(u: str) -> Optional[str]:
    try:
        p = urlparse(u)
    except ValueError:
        return None
    host = (p.hostname or "").lower()
    if "youtube.com" in host:
        return (parse_qs(p.query).get("v") or [None])[0]
    if host == "youtu.be":
        return p.path.lstrip("/") or None
    return None


def youtube_thumbnail(video_id: Optional[str]) -> Optional[str]:
    return f"https://img.youtube.com/vi/{video_id}/hqdefault.jpg" if video_id else None


# ----- Small helpers -----
def registrable_domain(host: str) -> str:
    """Return domain.suffix for a host, or the host itself."""
    ext = _extract(host or "")
    if ext.domain and ext.suffix:
        return f"{ext.domain}.{ext.suffix}"
    return host or ""


def check_punycode(host: str) -> dict:
    result = {"is_punycode": False, "decoded_host": host}
    if host and "xn--" in host:
        result["is_punycode"] = True
        try:
            result["decoded_host"] = idna.decode(host)
        except idna.IDNAError:
            pass
    return result


def brand_lookalike(domain_label: str) -> Optional[str]:
    """Brand the label imitates (edit distance 1-2, not an exact match)."""
    if not domain_label:
        return None
    for brand in BRAND_KEYWORDS:
        if 0 < levenshtein(domain_label, brand) <= 2:
            return brand
    return None


# ---------------- core: url_signals ----------------
def url_signals(u: str) -> dict:
    try:
        parsed = urlparse(u)
        host = parsed.hostname or ""
    except ValueError:
        return {}
    if not parsed.scheme or not host:
        return {}

    labels = host.split(".")
    tld = labels[-1]
    ext = _extract(host)

    return {
        "scheme": parsed.scheme,
        "host": host,
        "tld": tld,
        "path_length": len(parsed.path or ""),
        "has_at_symbol": "@" in u,
        "has_ip_host": bool(IPV4_RE.match(host)),
        "many_hyphens": len(host.split("-")) > 3,
        "suspicious_tld": tld in SUSPICIOUS_TLDS,
        "domain": registrable_domain(host),
        "punycode": check_punycode(host)["is_punycode"],
        "brand_lookalike": brand_lookalike(ext.domain),
    }
