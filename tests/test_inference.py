import base64

import pytest
import requests

from trueorscam.detection.inference import (
    FallbackReason,
    GeminiClient,
    ImagePart,
    InferenceRequest,
    TextPart,
    extract_json_object,
    infer,
)
from trueorscam.detection.mock import PromptCategory

from .conftest import FakeResponse, FakeSession, gemini_reply


def test_no_key_returns_mock_without_network(sleeps):
    session = FakeSession()
    client = GeminiClient(api_key=None, session=session, sleep=sleeps.append)
    out = client.infer(InferenceRequest.text('Verify this claim/headline: "the moon is cheese"'))

    assert out.is_mock
    assert out.fallback == FallbackReason.NO_KEY
    assert out.attempts == 0
    assert session.calls == []
    assert sleeps == []
    assert out.verdict["verdict"] == "unverified"
    assert isinstance(out.verdict["checks"], list) and out.verdict["checks"]
    assert {"step", "why"} <= set(out.verdict["checks"][0])
    assert isinstance(out.verdict["what_to_collect"], list)
    assert isinstance(out.verdict["advice"], str)


def test_mock_sentinel_key_is_mock_mode(make_client):
    client, session = make_client(api_key="MOCK")
    out = client.infer(InferenceRequest.text("Analyze this video URL for scam/deepfake risk"))
    assert out.is_mock
    assert out.fallback == FallbackReason.NO_KEY
    assert out.verdict["risk"] == "suspicious"
    assert session.calls == []


def test_explicit_category_wins_over_prompt_wording(make_client):
    client, _ = make_client(api_key=None)
    out = client.infer(InferenceRequest.text("Verify this claim", PromptCategory.IMAGE))
    assert out.verdict["verdict"] == "uncertain"
    assert "indicators" in out.verdict


def test_overload_then_success(make_client, sleeps):
    client, session = make_client(
        FakeResponse(503, {"error": {"message": "overloaded"}}),
        FakeResponse(503, {"error": {"message": "overloaded"}}),
        gemini_reply('Some text {"risk":"safe","signals":[],"advice":"ok"} trailing'),
    )
    out = client.infer(InferenceRequest.text("classify this link"))

    assert out.ok
    assert out.verdict == {"risk": "safe", "signals": [], "advice": "ok"}
    assert out.to_dict() == {"risk": "safe", "signals": [], "advice": "ok"}
    assert len(session.calls) == 3
    assert out.attempts == 3
    assert sleeps == [1.0, 2.0]


@pytest.mark.parametrize("attempts", [1, 2, 3, 5])
def test_overload_exhausted_falls_back(make_client, sleeps, attempts):
    client, session = make_client(*[FakeResponse(503, {}) for _ in range(attempts)])
    out = client.infer(InferenceRequest.text("classify this link"), max_attempts=attempts)

    assert out.is_mock
    assert out.fallback == FallbackReason.OVERLOADED
    assert len(session.calls) == attempts
    assert sleeps == [float(i) for i in range(1, attempts)]
    assert out.to_dict()["_fallback"] == "overloaded"
    assert out.to_dict()["_mock"] is True


def test_transport_errors_retry_with_fixed_delay(make_client, sleeps):
    client, session = make_client(
        requests.ConnectionError("boom"),
        requests.Timeout("slow"),
        requests.ConnectionError("boom"),
    )
    out = client.infer(InferenceRequest.text("classify this link"))

    assert out.is_mock
    assert out.fallback == FallbackReason.NETWORK_ERROR
    assert len(session.calls) == 3
    assert sleeps == [0.5, 0.5]
    assert out.verdict["risk"] == "suspicious"


def test_transport_error_then_success(make_client, sleeps):
    client, _ = make_client(requests.Timeout("slow"), gemini_reply('{"risk":"safe","signals":[],"advice":"x"}'))
    out = client.infer(InferenceRequest.text("classify"))
    assert out.ok
    assert sleeps == [0.5]


def test_rejection_is_hard_error_without_retry(make_client, sleeps):
    client, session = make_client(FakeResponse(403, {"error": {"message": "forbidden"}}))
    out = client.infer(InferenceRequest.text("classify"))

    assert out.is_error
    assert "403" in out.error and "forbidden" in out.error
    assert len(session.calls) == 1
    assert sleeps == []
    assert out.to_dict()["_error"] == out.error


def test_rejection_without_json_uses_body_text(make_client):
    client, _ = make_client(FakeResponse(400, text="plain failure"))
    out = client.infer(InferenceRequest.text("classify"))
    assert out.error == "Gemini error 400: plain failure"


def test_prose_only_reply_is_error_with_raw_text(make_client):
    raw = "I cannot judge this link, sorry."
    client, session = make_client(gemini_reply(raw))
    out = client.infer(InferenceRequest.text("classify"))

    assert out.is_error
    assert out.error == "Bad/empty JSON from Gemini"
    assert out.raw == raw
    assert out.to_dict() == {"_error": "Bad/empty JSON from Gemini", "raw": raw}
    assert len(session.calls) == 1


def test_empty_candidates_is_error(make_client):
    client, _ = make_client(FakeResponse(200, {"candidates": []}))
    out = client.infer(InferenceRequest.text("classify"))
    assert out.is_error
    assert out.raw == ""


def test_unparseable_can_fall_back_to_mock(make_client):
    client, _ = make_client(gemini_reply("no json here"), mock_on_bad_json=True)
    out = client.infer(InferenceRequest.text("Verify this claim: x"))
    assert out.is_mock
    assert out.fallback == FallbackReason.UNPARSEABLE
    assert out.raw == "no json here"
    assert out.verdict["verdict"] == "unverified"


def test_wire_body_and_headers(make_client):
    client, session = make_client(gemini_reply("{}"), model="gemini-test", timeout=7)
    req = InferenceRequest.vision("look", b"\x89PNG", "image/png")
    client.infer(req)

    url, kwargs = session.calls[0]
    assert url.endswith("/models/gemini-test:generateContent")
    assert "key=" not in url
    assert kwargs["headers"]["x-goog-api-key"] == "test-key"
    assert kwargs["timeout"] == 7
    assert kwargs["json"] == {
        "contents": [{
            "parts": [
                {"text": "look"},
                {"inlineData": {"mimeType": "image/png", "data": base64.b64encode(b"\x89PNG").decode()}},
            ]
        }]
    }


def test_request_requires_text_part():
    with pytest.raises(ValueError):
        InferenceRequest((ImagePart(b"abc"),))


def test_request_is_immutable():
    req = InferenceRequest([TextPart("a")])
    assert isinstance(req.parts, tuple)
    with pytest.raises(Exception):
        req.parts = ()


def test_max_attempts_must_be_positive(make_client):
    client, _ = make_client()
    with pytest.raises(ValueError):
        client.infer(InferenceRequest.text("x"), max_attempts=0)


# --- JSON extraction ---
def test_extract_discards_surrounding_prose():
    assert extract_json_object('Sure! {"a": 1} Hope this helps.') == {"a": 1}


def test_extract_handles_nested_objects():
    text = 'x {"a": {"b": {"c": 1}}, "d": [1, {"e": 2}]} y {"z": 0}'
    assert extract_json_object(text) == {"a": {"b": {"c": 1}}, "d": [1, {"e": 2}]}


def test_extract_ignores_braces_inside_strings():
    text = 'result: {"advice": "use {curly} and \\"quotes\\" }", "risk": "safe"} end'
    assert extract_json_object(text) == {"advice": 'use {curly} and "quotes" }', "risk": "safe"}


def test_extract_skips_unparseable_candidates():
    assert extract_json_object('{not json} then {"ok": true}') == {"ok": True}


def test_extract_markdown_fence():
    assert extract_json_object('```json\n{"risk": "safe"}\n```') == {"risk": "safe"}


@pytest.mark.parametrize("text", ["", "no braces", "{unterminated", "[1, 2]", "{'single': 1}"])
def test_extract_none(text):
    assert extract_json_object(text) is None


def test_unparseable_mock_keeps_raw_in_wire_dict(make_client):
    client, _ = make_client(gemini_reply("just prose"), mock_on_bad_json=True)
    out = client.infer(InferenceRequest.text("classify")).to_dict()
    assert out["_fallback"] == "unparseable"
    assert out["raw"] == "just prose"


def test_module_infer_defaults_to_three_attempts(make_client, sleeps):
    client, session = make_client(*[FakeResponse(503, {}) for _ in range(3)])
    out = infer(InferenceRequest.text("classify"), client=client)
    assert out.fallback == FallbackReason.OVERLOADED
    assert len(session.calls) == 3
    assert sleeps == [1.0, 2.0]


def test_client_rejects_zero_retries():
    with pytest.raises(ValueError):
        GeminiClient(api_key="k", retries=0)


def test_default_transport_is_per_call_requests():
    assert GeminiClient(api_key="k").http is requests
