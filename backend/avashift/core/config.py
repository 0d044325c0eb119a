from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # Database
    database_url: str

    # JWT (cookie-based auth, tokens are issued by the auth service)
    JWT_SECRET: str
    JWT_ISS: str = "avashift-auth"
    JWT_AUD: str = "avashift-api"
    ACCESS_TOKEN_TTL_SECONDS: int = 60 * 60 * 12  # 12 hours

    LOG_LEVEL: str = "INFO"

    # Notification sink (email service)
    NOTIFY_SERVICE_URL: str | None = None
    NOTIFY_SERVICE_SECRET: str | None = None

    # Attendance
    CLOCK_IN_EARLY_MINUTES: int = 30
    TIMELY_ARRIVAL_MINUTES: int = 30

    # Penalty applied on an approved cancellation with penalty
    PENALTY_RATING_DEDUCTION: float = 0.3
    PENALTY_PUNCTUALITY_DEDUCTION: float = 2.0


settings = Settings()
