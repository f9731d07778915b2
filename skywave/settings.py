import os

from dotenv import load_dotenv
from pydantic import BaseModel, Field

load_dotenv()


class Settings(BaseModel):
    # HTTP Configuration
    http_timeout: float = Field(default=10.0, alias="HTTP_TIMEOUT")
    http_user_agent: str = Field(default="skywave/0.1", alias="HTTP_USER_AGENT")

    # Retry Configuration
    retry_max_attempts: int = Field(default=3, alias="RETRY_MAX_ATTEMPTS")
    retry_base_delay: float = Field(default=0.5, alias="RETRY_BASE_DELAY")
    retry_max_delay: float = Field(default=5.0, alias="RETRY_MAX_DELAY")

    # Circuit Breaker Configuration
    cb_sliding_window: int = Field(default=10, alias="CB_SLIDING_WINDOW")
    cb_minimum_calls: int = Field(default=5, alias="CB_MINIMUM_CALLS")
    cb_failure_rate: float = Field(default=50.0, alias="CB_FAILURE_RATE")
    cb_reset_timeout_seconds: float = Field(default=60.0, alias="CB_RESET_TIMEOUT")
    cb_half_open_calls: int = Field(default=3, alias="CB_HALF_OPEN_CALLS")

    # Refresh intervals (minutes)
    refresh_interval_noaa: int = Field(default=30, alias="REFRESH_INTERVAL_NOAA")
    refresh_interval_hamqsl_solar: int = Field(
        default=5, alias="REFRESH_INTERVAL_HAMQSL_SOLAR"
    )
    refresh_interval_hamqsl_bands: int = Field(
        default=15, alias="REFRESH_INTERVAL_HAMQSL_BANDS"
    )
    refresh_interval_pota: int = Field(default=1, alias="REFRESH_INTERVAL_POTA")
    refresh_interval_sota: int = Field(default=1, alias="REFRESH_INTERVAL_SOTA")
    refresh_interval_contests: int = Field(
        default=360, alias="REFRESH_INTERVAL_CONTESTS"
    )
    refresh_interval_meteors: int = Field(default=60, alias="REFRESH_INTERVAL_METEORS")

    # Meteor shower look-ahead window
    meteor_lookahead_days: int = Field(default=30, alias="METEOR_LOOKAHEAD_DAYS")

    # Database Configuration
    database_url: str = Field(
        default="sqlite+aiosqlite:///./skywave.db", alias="DATABASE_URL"
    )
    database_echo: bool = Field(default=False, alias="DATABASE_ECHO")
    persist_snapshots: bool = Field(default=False, alias="PERSIST_SNAPSHOTS")

    # Logging
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")


global_settings = Settings.model_validate(dict(os.environ))
