from pydantic_settings import BaseSettings

class Settings(BaseSettings):
    database_url: str
    jwt_secret_key: str = "your-secret-key-change-in-production"  # Default for development
    jwt_expire_minutes: int = 60 * 12

    # Single coach account; hash generated with create_admin_password_hash.py
    admin_email: str = "admin@example.com"
    admin_password_hash: str | None = None

    # Reference timezone for every civil date/time the coach configures
    booking_timezone: str = "America/New_York"
    session_length_minutes: int = 60
    past_buffer_minutes: int = 15

    cors_origins: str = ""
    log_level: str = "INFO"

    class Config:
        env_file = ".env"

settings = Settings()
