from pathlib import Path
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    BOT_TOKEN: str = ""
    DB_PATH: Path = Path.home() / "foodshare.db"

    # Polling periods, seconds
    TRACKING_INTERVAL_SECONDS: float = 5
    PENDING_REFRESH_SECONDS: float = 10

    DEFAULT_RADIUS_KM: float = 25.0
    # Used for the ETA shown to donors while a pickup is on the way
    ASSUMED_SPEED_KMH: float = 20.0

    # Demo mode: move accepted NGOs randomly instead of waiting for Telegram live location
    SIMULATE_MOVEMENT: bool = False

    SCHEDULER_TIMEZONE: str = "UTC"

    LOG_LEVEL: str = "INFO"
    LOG_DIR: Path = Path(__file__).resolve().parent / "logs"

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"


settings = Settings()
