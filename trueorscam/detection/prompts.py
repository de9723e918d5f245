# detection/prompts.py
# Prompt text for each input type. The wording doubles as the keyword markers
# PromptCategory.from_prompt looks for, so keep the lead phrases stable.
import json

from .mock import PromptCategory

LINK_SHAPE = '{"risk":"safe|suspicious|likely scam","signals":["..."],"advice":"..."}'
IMAGE_SHAPE = '{"verdict":"authentic|edited|uncertain","indicators":["..."],"advice":"..."}'
CLAIM_SHAPE = (
    '{"verdict":"unverified|likely true|likely false|misleading",'
    '"checks":[{"step":"...","why":"..."}],"what_to_collect":["..."],"advice":"..."}'
)


def _context(context):
    return (context or "").strip() or "(none)"


def image_url_prompt(url, context=None):
    text = (
        "Analyze this image URL for manipulation/deepfake/fraud:\n"
        f"{url}\n"
        f"Return JSON: {IMAGE_SHAPE}\n"
        f"Context: {_context(context)}."
    )
    return text, PromptCategory.IMAGE


def video_prompt(url, thumbnail_url=None, context=None):
    text = (
        "Analyze this video URL for scam/deepfake risk:\n"
        f"{url}\n"
        f"Thumbnail: {thumbnail_url or 'none'}\n"
        f"Return JSON: {LINK_SHAPE}\n"
        f"Context: {_context(context)}."
    )
    return text, PromptCategory.VIDEO


def link_prompt(url, safe_browsing_flagged, url_signals, page, red_flags, context=None):
    page = page or {}
    page_meta = {
        "status": page.get("status"),
        "contentType": page.get("content_type"),
        "faviconHash": page.get("favicon_hash"),
    }
    text = (
        "You are a fraud-risk assistant. Given structured signals + optional HTML snippet,\n"
        'classify the URL: "safe" | "suspicious" | "likely scam". Return JSON:\n'
        f"{LINK_SHAPE}\n\n"
        f"URL: {url}\n"
        f"SafeBrowsingFlagged: {str(bool(safe_browsing_flagged)).lower()}\n"
        f"URLSignals: {json.dumps(url_signals)}\n"
        f"PageMeta: {json.dumps(page_meta)}\n"
        f"HeuristicFlags: {json.dumps(list(red_flags or []))}\n"
        f"HTML (snippet): {page.get('html_snippet') or '(none)'}\n"
        f"Context: {_context(context)}."
    )
    return text, PromptCategory.LINK


def image_upload_prompt(exif, context=None):
    text = (
        "Analyze image for manipulation/deepfake. Return JSON:\n"
        f"{IMAGE_SHAPE}\n"
        f"Consider EXIF: {json.dumps(exif)}.\n"
        f"Context: {_context(context)}."
    )
    return text, PromptCategory.IMAGE


def claim_prompt(claim, context=None):
    text = (
        f'Verify this claim/headline: "{claim}"\n'
        f"Return JSON: {CLAIM_SHAPE}\n"
        f"Context: {_context(context)}."
    )
    return text, PromptCategory.CLAIM
