"""Configuration loading from environment variables."""

import os
from dataclasses import dataclass
from pathlib import Path

_DEFAULT_DATA_DIR = Path.home() / ".echoes"

DEFAULT_REGION_RADIUS = 150.0
DEFAULT_LOCATION_TIMEOUT = 10.0
DEFAULT_GEOCODER_URL = "https://nominatim.openstreetmap.org"


@dataclass
class EchoesConfig:
    """Top-level Echoes configuration."""

    data_dir: Path = _DEFAULT_DATA_DIR
    db_path: Path | None = None
    log_dir: Path | None = None
    region_radius: float = DEFAULT_REGION_RADIUS
    max_regions: int | None = None
    location_timeout: float = DEFAULT_LOCATION_TIMEOUT
    photo_quality: int = 80
    geocoder_url: str = DEFAULT_GEOCODER_URL
    geocoder_user_agent: str = "echoes/0.1"
    telegram_token: str | None = None
    telegram_chat_id: str | None = None

    def __post_init__(self) -> None:
        if self.db_path is None:
            self.db_path = self.data_dir / "memories.db"
        if self.log_dir is None:
            self.log_dir = self.data_dir / "logs"

    @property
    def credentials_path(self) -> Path:
        """Path to the local credential store."""
        return self.data_dir / "credentials.json"

    @property
    def telegram_enabled(self) -> bool:
        return bool(self.telegram_token and self.telegram_chat_id)


def config_from_env() -> EchoesConfig:
    """Load configuration from environment variables."""
    data_dir = Path(os.getenv("ECHOES_DATA_DIR", str(_DEFAULT_DATA_DIR)))
    db_path = os.getenv("ECHOES_DB_PATH")
    log_dir = os.getenv("ECHOES_LOG_DIR")
    max_regions = os.getenv("ECHOES_MAX_REGIONS")

    return EchoesConfig(
        data_dir=data_dir,
        db_path=Path(db_path) if db_path else None,
        log_dir=Path(log_dir) if log_dir else None,
        region_radius=float(os.getenv("ECHOES_REGION_RADIUS", str(DEFAULT_REGION_RADIUS))),
        max_regions=int(max_regions) if max_regions else None,
        location_timeout=float(
            os.getenv("ECHOES_LOCATION_TIMEOUT", str(DEFAULT_LOCATION_TIMEOUT))
        ),
        photo_quality=int(os.getenv("ECHOES_PHOTO_QUALITY", "80")),
        geocoder_url=os.getenv("ECHOES_GEOCODER_URL", DEFAULT_GEOCODER_URL),
        geocoder_user_agent=os.getenv("ECHOES_GEOCODER_USER_AGENT", "echoes/0.1"),
        telegram_token=os.getenv("TELEGRAM_TOKEN") or None,
        telegram_chat_id=os.getenv("ECHOES_TELEGRAM_CHAT_ID") or None,
    )
