# detection/engine.py
import logging

from .cache import ResponseCache
from .config import Settings, settings as default_settings
from .exif import extract_exif
from .features_content import html_red_flags
from .features_url import (
    is_likely_image_url,
    is_likely_video_url,
    normalize_url,
    url_signals,
    youtube_id,
    youtube_thumbnail,
)
from .inference import GeminiClient, InferenceOutcome, InferenceRequest
from .page import inspect_page
from .prompts import claim_prompt, image_upload_prompt, image_url_prompt, link_prompt, video_prompt
from .rules import reasons_from_signals, score_from_reasons, status_from_score
from .safe_browsing import check_safe_browsing

logger = logging.getLogger(__name__)

# Verdict shown when no AI verdict is available
NEUTRAL_VERDICT = "unverified"


# --- Helpers ---
def _client(client, cfg):
    return client or GeminiClient.from_settings(cfg)


def ai_field(outcome: InferenceOutcome, key: str) -> str:
    """Read one verdict field, degrading to the neutral verdict on errors or odd shapes."""
    if outcome.is_error:
        return NEUTRAL_VERDICT
    value = outcome.get(key)
    if not isinstance(value, str) or not value:
        return NEUTRAL_VERDICT
    return value


def _ask(client: GeminiClient, prompt_and_category) -> InferenceOutcome:
    text, category = prompt_and_category
    return client.infer(InferenceRequest.text(text, category))


def safe_browsing_label(sb: dict) -> str:
    raw = sb.get("raw") or {}
    if isinstance(raw, dict) and raw.get("disabled"):
        return "disabled"
    return "flagged" if sb.get("flagged") else "clear"


# ---------- URL detection ----------
def detect_url(url: str, context: str = None, cfg: Settings = None, client: GeminiClient = None) -> dict:
    cfg = cfg or default_settings
    client = _client(client, cfg)

    if is_likely_image_url(url):
        ai = _ask(client, image_url_prompt(url, context))
        return {
            "type": "image_url",
            "verdict": ai_field(ai, "verdict"),
            "safe_browsing": "n/a",
            "ai": ai.to_dict(),
        }

    if is_likely_video_url(url):
        thumb = youtube_thumbnail(youtube_id(url))
        ai = _ask(client, video_prompt(url, thumb, context))
        return {
            "type": "video_url",
            "verdict": ai_field(ai, "risk"),
            "thumbnail_url": thumb,
            "ai": ai.to_dict(),
        }

    # generic link with heuristics
    sb = check_safe_browsing(url, cfg.safe_browsing_key, timeout=cfg.request_timeout)
    signals = url_signals(url)
    page = inspect_page(url, timeout=cfg.request_timeout)
    red_flags = html_red_flags(page.get("html_snippet") or "")

    reasons = reasons_from_signals(signals, red_flags, sb["flagged"], page)
    score = score_from_reasons(reasons)

    ai = _ask(client, link_prompt(url, sb["flagged"], signals, page, red_flags, context))

    return {
        "type": "link",
        "verdict": "likely scam" if sb["flagged"] else ai_field(ai, "risk"),
        "safe_browsing": safe_browsing_label(sb),
        "signals": {
            "url_signals": signals,
            "red_flags": red_flags,
            "page": {"status": page.get("status"), "content_type": page.get("content_type")},
        },
        "heuristics": {"reasons": reasons, "score": score, "status": status_from_score(score)},
        "ai": ai.to_dict(),
    }


# ---------- Image upload ----------
def detect_image_upload(data: bytes, mime_type: str = "image/jpeg", context: str = None,
                        cfg: Settings = None, client: GeminiClient = None) -> dict:
    client = _client(client, cfg or default_settings)
    exif = extract_exif(data)
    text, category = image_upload_prompt(exif, context)
    ai = client.infer(InferenceRequest.vision(text, data, mime_type, category))
    return {
        "mode": "file",
        "detected": "image_upload",
        "verdict": ai_field(ai, "verdict"),
        "exif": exif,
        "ai": ai.to_dict(),
    }


# ---------- Text claim ----------
def detect_claim(text: str, context: str = None, cfg: Settings = None, client: GeminiClient = None) -> dict:
    client = _client(client, cfg or default_settings)
    ai = _ask(client, claim_prompt(text, context))
    return {
        "mode": "text",
        "detected": "claim",
        "verdict": ai_field(ai, "verdict"),
        "ai": ai.to_dict(),
    }


# ---------- Router ----------
def cache_key(url: str, context: str = None) -> str:
    return f"url:{url}:{context or ''}"


def detect_input(text: str, context: str = None, cfg: Settings = None,
                 client: GeminiClient = None, cache: ResponseCache = None) -> dict:
    """Route free-form input: http(s) URLs go through URL detection, anything else is a claim."""
    cfg = cfg or default_settings
    client = _client(client, cfg)
    trimmed = (text or "").strip()

    url = normalize_url(trimmed)
    if url:
        key = cache_key(url, context)
        if cache is not None:
            cached = cache.get(key)
            if cached is not None:
                logger.debug("Cache hit for %s", url)
                return {**cached, "cached": True}
        out = {"mode": "url", "url": url, **detect_url(url, context, cfg, client)}
        if cache is not None:
            cache.set(key, out)
        return out

    if not trimmed:
        raise ValueError("Provide URL, text, or image file.")
    return detect_claim(trimmed, context, cfg, client)
