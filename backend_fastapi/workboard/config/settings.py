from pydantic_settings import BaseSettings
from typing import List, Optional

class Settings(BaseSettings):
    PROJECT_NAME: str = "Workboard API"
    PROJECT_VERSION: str = "0.1.0"
    ENVIRONMENT: str = "development" # development | production | test
    LOG_LEVEL: str = "INFO"

    # JWT settings
    SECRET_KEY: str = "your-super-secret-key"  # CHANGE THIS IN PRODUCTION!
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 30

    # Origins for CORS
    BACKEND_CORS_ORIGINS: List[str] = ["http://localhost:3000", "http://localhost:8000"]
    FRONTEND_URL: str = "http://localhost:3000" # Used to build invitation links

    # Google OAuth2 settings
    GOOGLE_CLIENT_ID: Optional[str] = None
    GOOGLE_CLIENT_SECRET: Optional[str] = None
    GOOGLE_REDIRECT_URI: Optional[str] = None

    # MongoDB settings
    MONGODB_URI: str = "mongodb://localhost:27017/workboard"
    MONGODB_DB_NAME: str = "workboard"
    # Multi-document transactions need a replica set; disable for a standalone server
    MONGODB_USE_TRANSACTIONS: bool = True

    # Redis settings
    REDIS_HOST: str = "localhost"
    REDIS_PORT: int = 6379
    REDIS_DB: int = 0
    REDIS_PASSWORD: Optional[str] = None

    # Invitations
    INVITATION_EXPIRE_DAYS: int = 7

    # Per-scope locks around position updates (categories, tasks, subtasks)
    POSITION_LOCKS_ENABLED: bool = True
    POSITION_LOCK_TIMEOUT_SECONDS: float = 10.0
    POSITION_LOCK_WAIT_SECONDS: float = 5.0

    # Outbound notifications
    NOTIFICATION_QUEUE_SIZE: int = 1000

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT.lower() == "production"

    class Config:
        case_sensitive = True
        env_file = ".env" # Load from .env file if present

settings = Settings()
