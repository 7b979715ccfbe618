from functools import lru_cache
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

# Load .env from the repo root so it works regardless of CWD
_env_file = Path(__file__).resolve().parent.parent.parent / ".env"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=_env_file, env_prefix="BODYVANTAGE_", extra="ignore")

    # REST backend the directory client talks to
    api_base_url: str = "http://localhost:5000"
    http_timeout_seconds: float = 30.0

    # Profiles listing (GET /api/profiles?page=&limit=)
    profiles_page_size: int = 12

    # Card description length on search results (presentation only, never used for matching)
    description_max_chars: int = 180

    # Hero image probing (attempted image load per candidate URL)
    image_probe_timeout_seconds: float = 10.0
    image_probe_concurrency: int = 8

    # Same-key race policy: False keeps last-completion-wins, True drops stale completions
    discard_stale_completions: bool = False

    log_level: str = "INFO"


@lru_cache
def get_settings() -> Settings:
    return Settings()
