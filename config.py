import os
from functools import lru_cache
from pathlib import Path


class Settings:
    def __init__(
        self,
        api_base_url: str,
        http_timeout_secs: float,
        cache_minutes: float,
        timezone: str,
        currency: str,
        data_dir: Path,
        warm_interval_minutes: int,
    ) -> None:
        self.api_base_url = api_base_url
        self.http_timeout_secs = http_timeout_secs
        self.cache_minutes = cache_minutes
        self.timezone = timezone
        self.currency = currency
        self.data_dir = data_dir
        self.warm_interval_minutes = warm_interval_minutes

    @property
    def session_file(self) -> Path:
        return self.data_dir / "session.json"


def _ensure_data_dir() -> Path:
    root = Path(os.getenv("MAD_WALLET_DATA_DIR", "./data")).resolve()
    root.mkdir(parents=True, exist_ok=True)
    return root


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    data_dir = _ensure_data_dir()
    api_base_url = os.getenv("MAD_WALLET_API_BASE_URL", "http://localhost:3000")
    http_timeout_secs = float(os.getenv("MAD_WALLET_HTTP_TIMEOUT_SECS", "10"))
    cache_minutes = float(os.getenv("MAD_WALLET_CACHE_MINUTES", "10"))
    timezone = os.getenv("MAD_WALLET_TIMEZONE", "Asia/Manila")
    currency = os.getenv("MAD_WALLET_CURRENCY", "PHP").upper()
    warm_interval_minutes = int(os.getenv("MAD_WALLET_WARM_INTERVAL_MINUTES", "10"))
    return Settings(
        api_base_url=api_base_url,
        http_timeout_secs=http_timeout_secs,
        cache_minutes=cache_minutes,
        timezone=timezone,
        currency=currency,
        data_dir=data_dir,
        warm_interval_minutes=warm_interval_minutes,
    )
