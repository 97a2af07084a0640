from typing import List, Optional
from pathlib import Path

from dotenv import load_dotenv
from pydantic_settings import BaseSettings

# Загружаем .env файл из корневой директории проекта
env_path = Path(__file__).parent.parent / ".env"
if env_path.exists():
    load_dotenv(dotenv_path=env_path)


class Settings(BaseSettings):
    """Глобальные настройки приложения, считываются из .env."""

    # Telegram Bot
    BOT_TOKEN: str = ""
    ADMIN_IDS: List[int] = []
    ENABLE_ADMIN_NOTIFICATIONS: bool = False

    # Redis (кэш опросов и текущая ссылка чата)
    REDIS_HOST: str = "localhost"
    REDIS_PORT: int = 6379
    REDIS_PASSWORD: Optional[str] = None
    REDIS_DB: int = 0

    # Ссылки
    PUBLIC_BASE_URL: str = "http://localhost:3000"
    POLL_QUERY_PARAM: str = "poll"

    # Хранилище
    POLL_STORAGE_PREFIX: str = "time-hub-poll-"
    NAVIGATION_KEY_PREFIX: str = "time-hub-location:"
    PERSIST_DEBOUNCE_SECONDS: float = 0.5

    # Сессии чатов без активности выгружаются из памяти
    SESSION_IDLE_SECONDS: int = 3600
    SESSION_SWEEP_SECONDS: int = 300

    # Слот по умолчанию для миграции старых опросов (только даты)
    DEFAULT_SLOT_START: str = "09:00"
    DEFAULT_SLOT_END: str = "18:00"
    DEFAULT_SLOT_LABEL: str = "終日"

    # Paths
    BASE_DIR: Path = Path(__file__).resolve().parent.parent
    LOGS_DIR: Path = BASE_DIR / "logs"

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_FILE: Path = (BASE_DIR / "logs" / "bot.log")

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = False

    def __init__(self, **kwargs):
        super().__init__(**kwargs)

        # Базовый адрес без завершающего слэша
        self.PUBLIC_BASE_URL = self.PUBLIC_BASE_URL.rstrip("/")

        # Создаем необходимые директории
        self.LOGS_DIR.mkdir(parents=True, exist_ok=True)


settings = Settings()
