# server.py
import logging
from datetime import datetime, timezone
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field, ValidationError
from starlette.concurrency import run_in_threadpool
from starlette.datastructures import UploadFile

from trueorscam.detection.cache import ResponseCache
from trueorscam.detection.config import Settings, settings as default_settings
from trueorscam.detection.engine import detect_image_upload, detect_input
from trueorscam.detection.inference import GeminiClient

logger = logging.getLogger(__name__)


# --- Pydantic models for input ---
class DetectIn(BaseModel):
    input: Optional[str] = None
    context: Optional[str] = Field(default=None, max_length=4000)


def _error(message: str, status: int = 400) -> JSONResponse:
    return JSONResponse({"error": message}, status_code=status)


def create_app(cfg: Settings = None, cache: ResponseCache = None, client: GeminiClient = None) -> FastAPI:
    cfg = cfg or default_settings
    cache = cache if cache is not None else ResponseCache(ttl=cfg.cache_ttl)
    client = client or GeminiClient.from_settings(cfg)

    # --- Initialize app ---
    app = FastAPI(title="TrueOrScam API")
    app.state.settings = cfg
    app.state.cache = cache
    app.state.client = client

    app.add_middleware(
        CORSMiddleware,
        allow_origins=cfg.origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # --- Endpoints ---
    @app.get("/health")
    def health():
        return {
            "ok": True,
            "time": datetime.now(timezone.utc).isoformat(),
            "mode": "mock" if client.mock_mode else "live",
        }

    @app.post("/api/detect")
    async def detect(request: Request):
        """
        Detect scam / manipulation risk for an uploaded image (multipart "file"),
        or for a URL or text claim (JSON {"input": ..., "context": ...}).
        """
        try:
            if request.headers.get("content-type", "").startswith("multipart/form-data"):
                form = await request.form()
                upload = form.get("file")
                payload = {"input": form.get("input"), "context": form.get("context")}
            else:
                upload = None
                try:
                    payload = await request.json()
                except ValueError:
                    payload = {}

            if not isinstance(payload, dict):
                return _error("Bad request")
            try:
                body = DetectIn.model_validate(payload)
            except ValidationError:
                return _error("Bad request")

            # File upload -> vision + EXIF
            if isinstance(upload, UploadFile):
                mime = upload.content_type or ""
                if not mime.startswith("image/"):
                    return _error("Only image uploads are supported.")
                data = await upload.read()
                if len(data) > cfg.max_upload_bytes:
                    return _error("File too large.")
                result = await run_in_threadpool(
                    detect_image_upload, data, mime, body.context, cfg, client
                )
                return result

            try:
                return await run_in_threadpool(
                    detect_input, body.input, body.context, cfg, client, cache
                )
            except ValueError as e:
                return _error(str(e))
        except Exception:
            logger.exception("Detection failed")
            return _error("Internal error", status=500)

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    logging.basicConfig(
        level=default_settings.log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    logger.info("TrueOrScam API on http://0.0.0.0:%d (%s mode)",
                default_settings.port, "mock" if app.state.client.mock_mode else "live")
    uvicorn.run(app, host="0.0.0.0", port=default_settings.port)
