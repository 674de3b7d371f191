"""Конфигурация приложения"""
from pydantic_settings import BaseSettings
from typing import List


class Settings(BaseSettings):
    """Настройки приложения"""

    # Telegram Bot
    BOT_TOKEN: str = ""

    # Database
    DB_HOST: str = "localhost"
    DB_PORT: int = 5432
    DB_USER: str = ""
    DB_PASSWORD: str = ""
    DB_NAME: str = ""
    # Полный URL подключения, перекрывает DB_* (используется в тестах и для sqlite)
    DATABASE_URL: str = ""

    # Admin
    ADMIN_USER_IDS: str = ""

    # OTP
    OTP_TTL_MINUTES: int = 10
    OTP_CLEANUP_INTERVAL_MINUTES: int = 30

    # Планировщик статусов лотов и машин
    STATUS_REFRESH_INTERVAL_SECONDS: int = 60

    @property
    def admin_ids_list(self) -> List[int]:
        """Список Telegram ID администраторов"""
        if not self.ADMIN_USER_IDS:
            return []
        return [int(uid.strip()) for uid in self.ADMIN_USER_IDS.split(",") if uid.strip()]

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
