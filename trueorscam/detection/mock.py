# detection/mock.py
# Canned verdicts used whenever the model cannot answer (no key, overload,
# network failure). Pure: no I/O, no randomness.
import copy
from enum import Enum


class PromptCategory(str, Enum):
    CLAIM = "claim"
    VIDEO = "video"
    IMAGE = "image"
    LINK = "link"

    @classmethod
    def from_prompt(cls, text: str) -> "PromptCategory":
        """Guess the expected verdict shape from the literal prompt wording."""
        p = (text or "").lower()
        if "verify this claim" in p or "headline" in p:
            return cls.CLAIM
        if "video url" in p:
            return cls.VIDEO
        if "image" in p:
            return cls.IMAGE
        return cls.LINK


_MOCK_VERDICTS = {
    PromptCategory.CLAIM: {
        "verdict": "unverified",
        "checks": [
            {"step": "Find primary source", "why": "Confirm original speaker/publication"},
            {"step": "Check date/location", "why": "Spot recycled or out-of-context claims"},
        ],
        "what_to_collect": ["source URL", "publication date", "speaker identity"],
        "advice": "Cross-check with at least two reputable outlets.",
    },
    PromptCategory.VIDEO: {
        "risk": "suspicious",
        "signals": ["Clickbait title pattern", "Unknown channel"],
        "advice": "Verify channel history and corroborating sources.",
    },
    PromptCategory.IMAGE: {
        "verdict": "uncertain",
        "indicators": ["No EXIF metadata", "Slight edge artifacts"],
        "advice": "Seek original upload; reverse image search.",
    },
    PromptCategory.LINK: {
        "risk": "suspicious",
        "signals": ["Obscure domain TLD"],
        "advice": "Avoid entering credentials or payment details.",
    },
}


def mock_verdict(category: PromptCategory) -> dict:
    # callers attach tags to the result, so never hand out the shared dict
    return copy.deepcopy(_MOCK_VERDICTS[PromptCategory(category)])
