# detection/safe_browsing.py
import logging

import requests

logger = logging.getLogger(__name__)

SAFE_BROWSING_URL = "https://safebrowsing.googleapis.com/v4/threatMatches:find"
THREAT_TYPES = [
    "MALWARE",
    "SOCIAL_ENGINEERING",
    "UNWANTED_SOFTWARE",
    "POTENTIALLY_HARMFUL_APPLICATION",
]


def build_lookup(url: str) -> dict:
    return {
        "client": {"clientId": "trueorscam", "clientVersion": "2.0.0"},
        "threatInfo": {
            "threatTypes": THREAT_TYPES,
            "platformTypes": ["ANY_PLATFORM"],
            "threatEntryTypes": ["URL"],
            "threatEntries": [{"url": url}],
        },
    }


def check_safe_browsing(url: str, api_key: str = None, timeout: float = 10, http=requests) -> dict:
    """
    Look the URL up in Google Safe Browsing.
    Returns {"flagged": bool, "raw": ...}; upstream problems are reported in
    "raw" with flagged=False rather than raised.
    """
    if not api_key:
        return {"flagged": False, "raw": {"disabled": True}}

    try:
        resp = http.post(SAFE_BROWSING_URL, headers={"x-goog-api-key": api_key},
                         json=build_lookup(url), timeout=timeout)
    except requests.RequestException as e:
        logger.warning("Safe Browsing lookup failed: %s", e.__class__.__name__)
        return {"flagged": False, "raw": {"error": str(e)}}

    try:
        data = resp.json()
    except ValueError:
        data = {"error": "non-JSON response"}

    if not resp.ok:
        logger.warning("Safe Browsing returned %s", resp.status_code)
        return {"flagged": False, "raw": {"error": data, "status": resp.status_code}}

    matches = data.get("matches") if isinstance(data, dict) else None
    flagged = isinstance(matches, list) and len(matches) > 0
    return {"flagged": flagged, "raw": data}
