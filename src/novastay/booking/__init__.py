"""
Модуль контекста бронирования (Booking Context).

Отвечает за бронирование номеров отеля, включая:
- Создание, изменение, отмену бронирований и блокировки номеров
- Проверку пересечений по номеру и датам
- Жизненный цикл статусов бронирования
"""

from . import domain

__all__ = [
    'domain',
]
