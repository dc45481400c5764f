"""
MODULE OVERVIEW:
Application-wide configuration using Pydantic Settings.

WHAT IS HAPPENING HERE:
Every timing and endpoint the client and the development server depend on is
declared once here and can be overridden from the environment or a `.env`
file. The long poll `wait` and the HTTP read timeout live side by side because
the second must always exceed the first.
"""
from pydantic_settings import BaseSettings

class Settings(BaseSettings):
    # API binding
    VK_TOKEN: str = ""
    GROUP_ID: int | None = None
    API_BASE_URL: str = "https://api.vk.com/method"
    API_VERSION: str = "5.199"

    # Long Polling
    LONGPOLL_WAIT_S: int = 25
    HTTP_TIMEOUT_MARGIN_S: float = 10.0

    LOG_LEVEL: str = "INFO"

    # Development server
    PORT: int = 8000
    DEMO_EVENT_INTERVAL_S: float = 0.0
    HISTORY_SIZE: int = 200

    class Config:
        env_file = ".env"
        env_file_encoding = 'utf-8'
        extra = 'ignore'

settings = Settings()
