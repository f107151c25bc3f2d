"""
Модуль контекста номеров (Rooms Context).

Отвечает за каталог номеров отеля, включая:
- Каталог номеров, упорядоченный по номеру комнаты
- Редактирование цены, удобств, типа и вместимости
- Цикл статусов уборки, не зависящий от бронирований
"""

from . import domain

__all__ = [
    'domain',
]
