
from pydantic_settings import BaseSettings, SettingsConfigDict

class Settings(BaseSettings):
    PROJECT_NAME: str = "Beauty Booking API"
    API_V1_STR: str = "/api/v1"
    SECRET_KEY: str = "changeme"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24 * 8

    # Database
    POSTGRES_SERVER: str = "localhost"
    POSTGRES_USER: str = "postgres"
    POSTGRES_PASSWORD: str = "12345"
    POSTGRES_DB: str = "beauty_booking_db"
    POSTGRES_PORT: int = 5432
    DATABASE_URL: str = ""

    # Slot generation defaults (used by the automation job)
    DEFAULT_SLOT_DURATION: int = 60
    DEFAULT_MAX_BOOKINGS: int = 5
    AUTO_GENERATE_DAYS_AHEAD: int = 30
    WEEKLY_GENERATE_DAYS_AHEAD: int = 90
    MAX_GENERATION_RANGE_DAYS: int = 365

    # Cron schedules, interpreted in SCHEDULER_TIMEZONE
    ENABLE_SCHEDULER: bool = True
    SCHEDULER_TIMEZONE: str = "Asia/Kolkata"
    DAILY_GENERATION_CRON: str = "0 2 * * *"
    WEEKLY_GENERATION_CRON: str = "0 3 * * sun"

    # Booking rules fallbacks when no BookingConfig row is active
    DEFAULT_MAX_RESCHEDULE_COUNT: int = 3
    DEFAULT_CANCELLATION_WINDOW_HOURS: float = 2
    DEFAULT_RESCHEDULE_WINDOW_HOURS: float = 4
    TAX_RATE_PERCENT: int = 18

    # Config cache
    REDIS_URL: str = "redis://localhost:6379/0"
    CONFIG_CACHE_TTL_SECONDS: int = 3600

    SUPPORT_EMAIL: str = "support@example.com"
    RAZORPAY_KEY_SECRET: str = "change-this-razorpay-secret"

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        extra="ignore"
    )

    def assemble_db_url(self) -> str:
        if self.DATABASE_URL:
            return self.DATABASE_URL
        return f"postgresql://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}@{self.POSTGRES_SERVER}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}"

settings = Settings()
settings.DATABASE_URL = settings.assemble_db_url()
