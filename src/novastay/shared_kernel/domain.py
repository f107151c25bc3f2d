"""
Основные доменные типы и утилиты общего ядра.
"""

from datetime import date, datetime, timedelta, timezone
from decimal import Decimal
from typing import Any, Iterator, List, Optional, Type, TypeVar
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic import ValidationError as PydanticValidationError

# Идентификаторы документов в хранилище - строки ("101", "a9f3c2...")
EntityId = str

T_Model = TypeVar("T_Model", bound=BaseModel)

ZERO = Decimal("0")


def generate_id() -> EntityId:
    """Генерирует новый идентификатор документа."""
    return uuid4().hex


# Общие исключения
class DomainException(Exception):
    """Базовое исключение для доменных ошибок."""

    pass


class BusinessRuleValidationException(DomainException):
    """Исключение при нарушении бизнес-правил."""

    pass


class ValidationError(BusinessRuleValidationException):
    """Некорректные входные данные: даты, гость, суммы."""

    pass


class InvalidTransitionError(ValidationError):
    """Недопустимый переход статуса или изменение закрытого бронирования."""

    pass


class OverlapError(BusinessRuleValidationException):
    """Номер уже занят на пересекающиеся даты."""

    def __init__(self, message: str, conflicting_booking_ids: List[EntityId]):
        super().__init__(message)
        self.conflicting_booking_ids = list(conflicting_booking_ids)


class NotFoundError(DomainException):
    """Номер или бронирование отсутствуют в текущем снимке."""

    def __init__(self, resource: str, identifier: EntityId):
        super().__init__(f"{resource} с id {identifier} не найден")
        self.resource = resource
        self.identifier = identifier


class PersistenceError(DomainException):
    """Ошибка записи или подписки в хранилище документов."""

    pass


def build_model(model_class: Type[T_Model], data: Any) -> T_Model:
    """
    Создает pydantic-модель, превращая ошибки валидации в доменные.

    Args:
        model_class: Класс модели
        data: Словарь с полями модели
    """
    try:
        return model_class.model_validate(data)
    except PydanticValidationError as exc:
        messages = "; ".join(
            f"{'.'.join(str(part) for part in error['loc']) or 'model'}: {error['msg']}"
            for error in exc.errors()
        )
        raise ValidationError(messages) from exc


class DateRange(BaseModel):
    """Полуоткрытый диапазон дат [check_in, check_out)."""

    model_config = ConfigDict(frozen=True)

    check_in: date
    check_out: date

    @model_validator(mode="after")
    def check_out_after_check_in(self) -> "DateRange":
        if self.check_out <= self.check_in:
            raise ValueError("Дата выезда должна быть позже даты заезда")
        return self

    @classmethod
    def of(cls, check_in: date, check_out: date) -> "DateRange":
        """Создает диапазон, выбрасывая доменную ValidationError."""
        return build_model(cls, {"check_in": check_in, "check_out": check_out})

    @property
    def nights(self) -> int:
        """Количество ночей в бронировании."""
        return (self.check_out - self.check_in).days

    def overlaps(self, other: "DateRange") -> bool:
        # Соседние проживания (выезд == заезд) не пересекаются
        return self.check_in < other.check_out and other.check_in < self.check_out

    def contains(self, day: date) -> bool:
        return self.check_in <= day < self.check_out

    def days(self) -> Iterator[date]:
        """Перебирает все занятые ночи диапазона."""
        for offset in range(self.nights):
            yield self.check_in + timedelta(days=offset)


class DomainEvent(BaseModel):
    """Базовый класс для всех доменных событий."""

    event_id: UUID = Field(default_factory=uuid4)
    occurred_on: datetime = Field(default_factory=lambda: now())
    actor: Optional[str] = None

    @property
    def event_type(self) -> str:
        return type(self).__name__


# Общие утилиты
def now() -> datetime:
    """Возвращает текущую дату и время в UTC."""
    return datetime.now(timezone.utc)


def today() -> date:
    """Возвращает текущую дату."""
    return date.today()
