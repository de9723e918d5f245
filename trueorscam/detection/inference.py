# detection/inference.py
"""
Verdict inference against the Gemini generateContent endpoint.

One request goes in, exactly one InferenceOutcome comes out:
  - ok     : the model answered with a JSON object (returned unvalidated)
  - mock   : a canned verdict, because there is no key, the model stayed
             overloaded (503) or the network kept failing
  - error  : the model rejected the call or answered without usable JSON
"""
import base64
import json
import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, Optional, Tuple, Union

import requests

from .config import MOCK_SENTINEL, Settings, settings as default_settings
from .mock import PromptCategory, mock_verdict

logger = logging.getLogger(__name__)

OVERLOADED_STATUS = 503
OVERLOAD_BACKOFF = 1.0  # seconds, multiplied by the 1-indexed attempt
NETWORK_BACKOFF = 0.5


# --- Request types ---
@dataclass(frozen=True)
class TextPart:
    text: str

    def to_wire(self) -> dict:
        return {"text": self.text}


@dataclass(frozen=True)
class ImagePart:
    data: bytes
    mime_type: str = "image/jpeg"

    def to_wire(self) -> dict:
        return {
            "inlineData": {
                "mimeType": self.mime_type,
                "data": base64.b64encode(self.data).decode("ascii"),
            }
        }


Part = Union[TextPart, ImagePart]


@dataclass(frozen=True)
class InferenceRequest:
    parts: Tuple[Part, ...]
    category: Optional[PromptCategory] = None

    def __post_init__(self):
        object.__setattr__(self, "parts", tuple(self.parts))
        if not any(isinstance(p, TextPart) for p in self.parts):
            raise ValueError("InferenceRequest needs at least one text part")

    @classmethod
    def text(cls, prompt: str, category: Optional[PromptCategory] = None) -> "InferenceRequest":
        return cls((TextPart(prompt),), category)

    @classmethod
    def vision(cls, prompt: str, image: bytes, mime_type: str = "image/jpeg",
               category: PromptCategory = PromptCategory.IMAGE) -> "InferenceRequest":
        return cls((TextPart(prompt), ImagePart(image, mime_type or "image/jpeg")), category)

    @property
    def prompt_text(self) -> str:
        return "\n".join(p.text for p in self.parts if isinstance(p, TextPart))

    def resolved_category(self) -> PromptCategory:
        return self.category or PromptCategory.from_prompt(self.prompt_text)

    def to_wire(self) -> dict:
        return {"contents": [{"parts": [p.to_wire() for p in self.parts]}]}


# --- Outcome types ---
class FallbackReason(str, Enum):
    NO_KEY = "no_key"
    OVERLOADED = "overloaded"
    NETWORK_ERROR = "network_error"
    UNPARSEABLE = "unparseable"


@dataclass
class InferenceOutcome:
    status: str  # "ok" | "mock" | "error"
    verdict: Optional[Dict[str, Any]] = None
    fallback: Optional[FallbackReason] = None
    error: Optional[str] = None
    raw: Optional[str] = None
    attempts: int = 0
    delays: list = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.status == "ok"

    @property
    def is_mock(self) -> bool:
        return self.status == "mock"

    @property
    def is_error(self) -> bool:
        return self.status == "error"

    def get(self, key: str, default=None):
        if self.verdict is None:
            return default
        return self.verdict.get(key, default)

    def to_dict(self) -> dict:
        if self.status == "error":
            out = {"_error": self.error}
            if self.raw is not None:
                out["raw"] = self.raw
            return out
        out = dict(self.verdict or {})
        if self.status == "mock":
            out["_mock"] = True
            out["_fallback"] = self.fallback.value
            if self.raw is not None:
                out["raw"] = self.raw
        return out


# --- JSON extraction ---
def _balanced_end(text: str, start: int) -> int:
    """Index one past the brace closing the object opened at `start`, or -1."""
    depth = 0
    in_string = False
    escaped = False
    for i in range(start, len(text)):
        ch = text[i]
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
            continue
        if ch == '"':
            in_string = True
        elif ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
            if depth == 0:
                return i + 1
    return -1


def extract_json_object(text: str) -> Optional[dict]:
    """Return the first balanced {...} in `text` that parses as a JSON object."""
    if not text:
        return None
    start = text.find("{")
    while start != -1:
        end = _balanced_end(text, start)
        if end != -1:
            try:
                value = json.loads(text[start:end])
            except ValueError:
                value = None
            if isinstance(value, dict):
                return value
        start = text.find("{", start + 1)
    return None


def _candidate_text(data: dict) -> str:
    try:
        return data["candidates"][0]["content"]["parts"][0].get("text") or ""
    except (KeyError, IndexError, TypeError, AttributeError):
        return ""


# --- Engine ---
class GeminiClient:
    def __init__(
        self,
        api_key: Optional[str] = None,
        model: str = "gemini-1.5-flash",
        base_url: str = "https://generativelanguage.googleapis.com/v1beta",
        retries: int = 3,
        timeout: float = 10.0,
        mock_on_bad_json: bool = False,
        session=None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.api_key = api_key
        self.model = model
        self.base_url = base_url.rstrip("/")
        self.retries = retries
        self.timeout = timeout
        self.mock_on_bad_json = mock_on_bad_json
        if retries < 1:
            raise ValueError("retries must be >= 1")
        # module-level requests.post per call unless a session is injected
        self.http = session or requests
        self.sleep = sleep

    @classmethod
    def from_settings(cls, cfg: Optional[Settings] = None, **kwargs) -> "GeminiClient":
        cfg = cfg or default_settings
        return cls(
            api_key=cfg.gemini_api_key,
            model=cfg.gemini_model,
            base_url=cfg.gemini_base_url,
            retries=cfg.gemini_retries,
            timeout=cfg.request_timeout,
            mock_on_bad_json=cfg.mock_on_bad_json,
            **kwargs,
        )

    @property
    def mock_mode(self) -> bool:
        return not self.api_key or self.api_key == MOCK_SENTINEL

    @property
    def endpoint(self) -> str:
        return f"{self.base_url}/models/{self.model}:generateContent"

    def _mock(self, request: InferenceRequest, reason: FallbackReason, attempts: int,
              delays: list, raw: Optional[str] = None) -> InferenceOutcome:
        return InferenceOutcome(
            status="mock",
            verdict=mock_verdict(request.resolved_category()),
            fallback=reason,
            raw=raw,
            attempts=attempts,
            delays=delays,
        )

    def infer(self, request: InferenceRequest, max_attempts: Optional[int] = None) -> InferenceOutcome:
        max_attempts = self.retries if max_attempts is None else max_attempts
        if max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")

        if self.mock_mode:
            return self._mock(request, FallbackReason.NO_KEY, 0, [])

        body = request.to_wire()
        headers = {"Content-Type": "application/json", "x-goog-api-key": self.api_key}
        delays = []

        for attempt in range(1, max_attempts + 1):
            last = attempt == max_attempts
            try:
                resp = self.http.post(self.endpoint, json=body, headers=headers, timeout=self.timeout)
            except requests.RequestException as e:
                if not last:
                    logger.warning("Gemini request failed (%s), attempt %d/%d; retrying",
                                   e.__class__.__name__, attempt, max_attempts)
                    delays.append(NETWORK_BACKOFF)
                    self.sleep(NETWORK_BACKOFF)
                    continue
                logger.warning("Gemini unreachable after %d attempts; using mock verdict", attempt)
                return self._mock(request, FallbackReason.NETWORK_ERROR, attempt, delays)

            body_text = resp.text or ""
            try:
                data = json.loads(body_text)
            except ValueError:
                data = {}
            if not isinstance(data, dict):
                data = {}

            if resp.status_code == OVERLOADED_STATUS:
                if not last:
                    wait = attempt * OVERLOAD_BACKOFF
                    logger.warning("Gemini overloaded, attempt %d/%d; waiting %.1fs",
                                   attempt, max_attempts, wait)
                    delays.append(wait)
                    self.sleep(wait)
                    continue
                logger.warning("Gemini still overloaded after %d attempts; using mock verdict", attempt)
                return self._mock(request, FallbackReason.OVERLOADED, attempt, delays)

            if not 200 <= resp.status_code < 300:
                err = data.get("error")
                msg = (err.get("message") if isinstance(err, dict) else None) or body_text or "unknown"
                logger.error("Gemini rejected request: %s %s", resp.status_code, msg)
                return InferenceOutcome(
                    status="error",
                    error=f"Gemini error {resp.status_code}: {msg}",
                    attempts=attempt,
                    delays=delays,
                )

            text = _candidate_text(data)
            verdict = extract_json_object(text)
            if verdict is not None:
                return InferenceOutcome(status="ok", verdict=verdict, attempts=attempt, delays=delays)

            if self.mock_on_bad_json:
                logger.warning("Gemini returned no usable JSON; using mock verdict")
                return self._mock(request, FallbackReason.UNPARSEABLE, attempt, delays, raw=text)
            logger.error("Gemini returned no usable JSON (%d chars)", len(text))
            return InferenceOutcome(
                status="error",
                error="Bad/empty JSON from Gemini",
                raw=text,
                attempts=attempt,
                delays=delays,
            )

        # unreachable: the last attempt always returns above
        raise AssertionError("retry loop exited without an outcome")


def infer(request: InferenceRequest, max_attempts: int = 3, client: Optional[GeminiClient] = None) -> InferenceOutcome:
    """Run `request` through the default client built from the environment."""
    client = client or GeminiClient.from_settings()
    return client.infer(request, max_attempts=max_attempts)
