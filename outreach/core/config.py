from pydantic_settings import BaseSettings

class Settings(BaseSettings):
    PROJECT_NAME: str = "Outreach Messaging"
    API_V1_STR: str = "/api/v1"
    DATABASE_URL: str = "sqlite:///./outreach.db"

    SECRET_KEY: str = "change-me-in-production"
    ALGORITHM: str = "HS256"

    # Server configuration
    HOST: str = "0.0.0.0"
    PORT: int = 8000
    CORS_ORIGINS: str = "http://localhost:3000,http://localhost:5173"
    LOG_LEVEL: str = "INFO"

    # Messaging limits
    MESSAGE_RATE_LIMIT_PER_MINUTE: int = 30
    SEARCH_RESULT_LIMIT: int = 200
    EXPORT_ROW_LIMIT: int = 5000
    CONVERSATION_UNREAD_WINDOW_HOURS: int = 24  # no read receipts; recent messages from others count as unread

    # Realtime change feed
    REALTIME_QUEUE_SIZE: int = 100
    WS_CLEANUP_INTERVAL: int = 60  # Run cleanup every 60 seconds
    WS_IDLE_TIMEOUT: int = 1800  # 30 minutes
    WS_ENABLE_CLEANUP: bool = True

    class Config:
        env_file = ".env"
        env_file_encoding = 'utf-8'

settings = Settings()
