import os

from dotenv import load_dotenv


load_dotenv()

# Credential value that forces mock verdicts even when a key is "set"
MOCK_SENTINEL = "MOCK"


def _env_bool(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes")


class Settings:
    def __init__(self) -> None:
        self.gemini_api_key = os.getenv("GEMINI_API_KEY") or None
        self.gemini_model = os.getenv("GEMINI_MODEL", "gemini-1.5-flash")
        self.gemini_base_url = os.getenv(
            "GEMINI_BASE_URL", "https://generativelanguage.googleapis.com/v1beta"
        )
        self.gemini_retries = int(os.getenv("GEMINI_RETRIES", "3"))
        if self.gemini_retries < 1:
            raise ValueError("GEMINI_RETRIES must be >= 1")
        self.mock_on_bad_json = _env_bool("GEMINI_MOCK_ON_BAD_JSON")
        self.request_timeout = float(os.getenv("REQUEST_TIMEOUT", "10"))
        self.safe_browsing_key = os.getenv("GOOGLE_SAFE_BROWSING_KEY") or None
        self.cache_ttl = float(os.getenv("CACHE_TTL", "600"))
        self.max_upload_bytes = int(os.getenv("MAX_UPLOAD_BYTES", str(5 * 1024 * 1024)))
        self.allowed_origins = os.getenv("ALLOWED_ORIGINS", "*")
        self.log_level = os.getenv("LOG_LEVEL", "INFO").upper()
        self.port = int(os.getenv("PORT", "3000"))

    @property
    def origins(self):
        return [o.strip() for o in self.allowed_origins.split(",") if o.strip()]


settings = Settings()
