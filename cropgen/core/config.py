from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import List


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    ENV: str = "development"
    LOG_LEVEL: str = "INFO"

    CORS_ORIGINS: List[str] = [
        "http://localhost:3000",
        "http://localhost:5173",
    ]

    # Gemini
    GEMINI_API_KEY: str = ""
    GEMINI_MODEL: str = "gemini-2.5-flash"
    GEMINI_BASE_URL: str = "https://generativelanguage.googleapis.com/v1beta/models"
    GEMINI_TEMPERATURE: float = 0.7
    GEMINI_MAX_OUTPUT_TOKENS: int = 4000
    GEMINI_TIMEOUT: float = 30.0
    TIPS_TIMEOUT: float = 20.0
    MCQS_TIMEOUT: float = 25.0

    # Daily content
    CONTENT_MAX_RETRIES: int = 3
    CONTENT_RETRY_DELAY: float = 2.0
    GAME_TIMEZONE: str = "Asia/Kolkata"

    # Sessions
    SESSION_COOKIE_NAME: str = "sessionId"
    SESSION_TTL_HOURS: int = 24

    # Storage: "firestore" or "memory"
    STORAGE_BACKEND: str = "firestore"
    GOOGLE_APPLICATION_CREDENTIALS: str = ""
    FIREBASE_KEY_B64: str = ""
    GOOGLE_CLOUD_PROJECT: str = ""
    CONTENT_COLLECTION: str = "daily_content"
    SESSIONS_COLLECTION: str = "game_sessions"
    PLAYERS_COLLECTION: str = "players"

    @property
    def is_production(self) -> bool:
        return self.ENV.lower() == "production"


settings = Settings()
