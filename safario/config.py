from typing import Optional

from pydantic_settings import BaseSettings

class Settings(BaseSettings):
    APP_NAME: str = "Safario Tourist Safety API"
    APP_VERSION: str = "1.0.0"
    LOG_LEVEL: str = "INFO"

    # Database
    DATABASE_URL: str = "sqlite+aiosqlite:///./safario.db"
    DATABASE_ECHO: bool = False

    # Security
    SECRET_KEY: str = "your-secret-key-here"
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 240  # 4 hours

    # Accounts signing up with these emails become approved admins (comma separated)
    BOOTSTRAP_ADMIN_EMAILS: str = ""

    # CORS - comma separated
    CORS_ORIGINS: str = "http://localhost:5173,http://127.0.0.1:5173"

    # Phone OTP
    OTP_LENGTH: int = 6
    OTP_EXPIRY_MINUTES: int = 10
    OTP_MAX_ATTEMPTS: int = 3

    # SMS (Twilio)
    TWILIO_ACCOUNT_SID: Optional[str] = None
    TWILIO_AUTH_TOKEN: Optional[str] = None
    TWILIO_PHONE_NUMBER: Optional[str] = None
    TWILIO_API_URL: str = "https://api.twilio.com/2010-04-01"

    # Email (emergency contacts)
    SMTP_HOST: str = "smtp.gmail.com"
    SMTP_PORT: int = 587
    SMTP_USERNAME: str = ""
    SMTP_PASSWORD: str = ""
    FROM_EMAIL: str = "alerts@safario.app"

    # Third-party APIs
    OPENWEATHERMAP_API_KEY: Optional[str] = None
    OPENWEATHERMAP_URL: str = "https://api.openweathermap.org/data/2.5/weather"
    MAPBOX_TOKEN: Optional[str] = None
    MAPBOX_GEOCODING_URL: str = "https://api.mapbox.com/geocoding/v5/mapbox.places"
    NOMINATIM_URL: str = "https://nominatim.openstreetmap.org/reverse"
    NOMINATIM_USER_AGENT: str = "Safario-Travel-App/1.0"
    HTTP_TIMEOUT_SECONDS: float = 10.0

    # Object storage
    STORAGE_DIR: str = "./storage"
    PUBLIC_BASE_URL: str = "http://localhost:8000"
    MAX_IMAGE_BYTES: int = 5 * 1024 * 1024

    # Geofencing
    SAFE_PERIMETER_RADIUS_M: float = 2000.0

    class Config:
        env_file = ".env"

    @property
    def bootstrap_admin_emails(self) -> set[str]:
        return {email.strip().lower() for email in self.BOOTSTRAP_ADMIN_EMAILS.split(",") if email.strip()}

    @property
    def cors_origins(self) -> list[str]:
        return [origin.strip() for origin in self.CORS_ORIGINS.split(",") if origin.strip()]

settings = Settings()
