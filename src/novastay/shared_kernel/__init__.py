"""
Общее ядро (Shared Kernel) системы управления номерным фондом.

Содержит общие типы данных, исключения и утилиты, используемые
в контекстах номеров, бронирований и отчетности.
"""

from .domain import (
    ZERO,
    BusinessRuleValidationException,
    DateRange,
    DomainEvent,
    DomainException,
    EntityId,
    InvalidTransitionError,
    NotFoundError,
    OverlapError,
    PersistenceError,
    ValidationError,
    build_model,
    generate_id,
    now,
    today,
)

__all__ = [
    # Базовые типы
    "EntityId",
    "generate_id",
    "ZERO",
    # Основные классы
    "DateRange",
    "DomainEvent",
    # Исключения
    "DomainException",
    "BusinessRuleValidationException",
    "ValidationError",
    "InvalidTransitionError",
    "OverlapError",
    "NotFoundError",
    "PersistenceError",
    # Утилиты
    "build_model",
    "now",
    "today",
]
