from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="CAMPUS_",
        env_file=".env",
        extra="ignore",
    )

    database_url: str = "sqlite:///./campus_booking.db"
    seed_demo_data: bool = True

    # Credentials
    secret_key: SecretStr = SecretStr("change-me-campus-booking-secret-key-0123456789")
    algorithm: str = "HS256"
    access_token_expire_minutes: int = Field(default=1440, gt=0)

    # Lockout
    max_failed_attempts: int = Field(default=3, ge=1)
    lock_duration_minutes: float = Field(default=1.0, gt=0)

    # Role caps, in minutes
    student_max_minutes: int = Field(default=60, gt=0)
    staff_max_minutes: int = Field(default=480, gt=0)

    # Availability window
    day_start_hour: int = Field(default=8, ge=0, le=23)
    day_end_hour: int = Field(default=20, ge=1, le=23)
    slot_minutes: int = Field(default=60, gt=0)


settings = Settings()
