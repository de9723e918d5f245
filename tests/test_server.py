from io import BytesIO

import pytest
from fastapi.testclient import TestClient
from PIL import Image

from trueorscam.detection import engine
from trueorscam.detection.inference import GeminiClient
from trueorscam.server import create_app

from .conftest import FakeSession


@pytest.fixture
def api(cfg, cache, monkeypatch):
    monkeypatch.setattr(engine, "inspect_page", lambda url, timeout=10: {
        "final_url": url, "status": 200, "content_type": "text/html",
        "html_snippet": "<p>hello</p>", "favicon_hash": None,
    })
    client = GeminiClient(api_key=None, session=FakeSession())
    return TestClient(create_app(cfg, cache=cache, client=client))


def _png():
    buf = BytesIO()
    Image.new("RGB", (4, 4)).save(buf, "PNG")
    return buf.getvalue()


def test_health(api):
    r = api.get("/health")
    assert r.status_code == 200
    assert r.json()["ok"] is True
    assert r.json()["mode"] == "mock"


def test_detect_claim(api):
    r = api.post("/api/detect", json={"input": "Drinking bleach cures flu", "context": "WhatsApp forward"})
    assert r.status_code == 200
    body = r.json()
    assert body["mode"] == "text"
    assert body["verdict"] == "unverified"
    assert body["ai"]["_mock"] is True


def test_detect_link(api):
    r = api.post("/api/detect", json={"input": "https://example.com/offer"})
    body = r.json()
    assert r.status_code == 200
    assert body["mode"] == "url"
    assert body["type"] == "link"
    assert body["safe_browsing"] == "disabled"

    again = api.post("/api/detect", json={"input": "https://example.com/offer"}).json()
    assert again["cached"] is True


def test_detect_video(api):
    body = api.post("/api/detect", json={"input": "https://www.youtube.com/watch?v=xyz"}).json()
    assert body["type"] == "video_url"
    assert body["thumbnail_url"].endswith("/xyz/hqdefault.jpg")


def test_detect_image_upload(api):
    r = api.post(
        "/api/detect",
        files={"file": ("pic.png", _png(), "image/png")},
        data={"context": "seen on twitter"},
    )
    assert r.status_code == 200
    body = r.json()
    assert body["mode"] == "file"
    assert body["detected"] == "image_upload"
    assert body["verdict"] == "uncertain"
    assert body["exif"] == {"has_exif": False}


def test_upload_must_be_image(api):
    r = api.post("/api/detect", files={"file": ("a.txt", b"hello", "text/plain")})
    assert r.status_code == 400


def test_upload_too_large(api, cfg):
    cfg.max_upload_bytes = 10
    r = api.post("/api/detect", files={"file": ("pic.png", _png(), "image/png")})
    assert r.status_code == 400
    assert r.json() == {"error": "File too large."}


def test_empty_input(api):
    r = api.post("/api/detect", json={"input": "   "})
    assert r.status_code == 400
    assert r.json() == {"error": "Provide URL, text, or image file."}


@pytest.mark.parametrize("payload", [{"input": 42}, {"input": "x", "context": "c" * 4001}, ["not", "a", "dict"]])
def test_bad_request(api, payload):
    r = api.post("/api/detect", json=payload)
    assert r.status_code == 400
    assert r.json() == {"error": "Bad request"}


def test_internal_error(api, monkeypatch):
    def boom(*args, **kwargs):
        raise RuntimeError("kaboom")

    monkeypatch.setattr("trueorscam.server.detect_input", boom)
    r = api.post("/api/detect", json={"input": "anything"})
    assert r.status_code == 500
    assert r.json() == {"error": "Internal error"}


def test_upload_with_oversized_dimensions_still_gets_verdict(api):
    from .test_collectors import _oversized_png

    r = api.post("/api/detect", files={"file": ("huge.png", _oversized_png(20000, 20000), "image/png")})
    assert r.status_code == 200
    assert r.json()["exif"] == {"has_exif": False}
    assert r.json()["verdict"] == "uncertain"
