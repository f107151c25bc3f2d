"""Настройки приложения через pydantic-settings."""

from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Настройки, загружаемые из переменных окружения NOVASTAY_*."""

    model_config = SettingsConfigDict(
        env_prefix="NOVASTAY_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Отель
    hotel_name: str = "NovaStay"
    currency: str = "INR"

    # Шахматка
    grid_window_days: int = Field(default=14, gt=0)
    grid_step_days: int = Field(default=7, gt=0)

    # Политики
    seed_rooms_on_empty: bool = True
    lock_finalized_bookings: bool = True
    mark_room_dirty_on_checkout: bool = False

    # Дашборд
    recent_bookings_limit: int = Field(default=5, ge=0)

    # Инфраструктура
    log_level: str = "INFO"
    data_dir: Optional[Path] = None


@lru_cache
def get_settings() -> Settings:
    """Возвращает закэшированный экземпляр настроек."""
    return Settings()
