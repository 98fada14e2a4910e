"""Конфигурация приложения"""
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Настройки приложения"""

    # Database
    DB_HOST: str = "localhost"
    DB_PORT: int = 5432
    DB_USER: str = ""
    DB_PASSWORD: str = ""
    DB_NAME: str = ""
    # Полный URL подключения (например, sqlite+aiosqlite:///./test.db),
    # если задан - имеет приоритет над DB_*
    DATABASE_URL: str = ""

    # FastAPI
    API_HOST: str = "0.0.0.0"
    API_PORT: int = 8000
    LOG_LEVEL: str = "INFO"

    # Telegram Bot (уведомления продавцам). Пустой токен - уведомления выключены
    BOT_TOKEN: str = ""

    # Auction Settings
    # Длительность аукциона в днях, выбирается продавцом при создании
    AUCTION_DEFAULT_DURATION_DAYS: int = 1
    AUCTION_MIN_DURATION_DAYS: int = 1
    AUCTION_MAX_DURATION_DAYS: int = 3
    # Пороги отображаемого статуса (в часах до завершения)
    AUCTION_ENDING_SOON_HOURS: float = 2.0
    AUCTION_HOT_HOURS: float = 6.0

    # Bidding
    # Сколько раз повторять размещение ставки при временной ошибке БД
    BID_MAX_ATTEMPTS: int = 5
    # Сколько ждать блокировку строки лота (только PostgreSQL)
    BID_LOCK_TIMEOUT_SECONDS: float = 3.0

    @property
    def database_url(self) -> str:
        """URL подключения к базе данных"""
        if self.DATABASE_URL:
            return self.DATABASE_URL
        return f"postgresql+asyncpg://{self.DB_USER}:{self.DB_PASSWORD}@{self.DB_HOST}:{self.DB_PORT}/{self.DB_NAME}"

    class Config:
        env_file = ".env"
        case_sensitive = True


settings = Settings()
