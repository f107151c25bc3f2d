"""
Модуль контекста отчетности (Reporting Context).

Строит представления из снимка хранилища:
- Шахматку номеров на окно дат
- Ежедневные операции с финансовыми итогами
- Показатели дашборда
"""

from . import domain

__all__ = [
    'domain',
]
