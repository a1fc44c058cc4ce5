from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    DATABASE_URL: str = "sqlite:///./faculty_chat.db"
    SECRET_KEY: str = "change-me"
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60
    CORS_ORIGINS: list[str] = [
        "http://127.0.0.1:5173",
        "http://localhost:5173",
        "http://127.0.0.1:8000",
        "http://localhost:8000",
    ]
    LOG_LEVEL: str = "INFO"

    MESSAGE_MAX_LENGTH: int = 2000
    PREVIEW_MAX_LENGTH: int = 200
    EMPTY_PREVIEW_TEXT: str = "Start a conversation"
    SUPPORT_ROLE: str = "admin"
    SUPPORT_VISIBILITY_ENABLED: bool = True

    class Config:
        env_file = ".env"

settings = Settings()
