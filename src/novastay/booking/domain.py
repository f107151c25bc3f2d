"""
Доменная модель контекста бронирования.

Содержит бронирование, жизненный цикл его статусов (BookingLifecycle)
и детектор пересечений по номеру и датам (ConflictDetector).
"""

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, FrozenSet, Iterable, List, Optional

from pydantic import BaseModel, Field, model_validator

from ..shared_kernel import (
    ZERO,
    DateRange,
    DomainEvent,
    EntityId,
    InvalidTransitionError,
    OverlapError,
    build_model,
    generate_id,
    now,
)


class BookingStatus(str, Enum):
    """Статусы бронирования."""

    CONFIRMED = "CONFIRMED"
    HOLD = "HOLD"  # Предварительная бронь
    CHECKED_IN = "CHECKED_IN"
    CHECKED_OUT = "CHECKED_OUT"
    CANCELLED = "CANCELLED"
    BLOCKED = "BLOCKED"  # Блокировка номера (ремонт, обслуживание)


class PaymentMethod(str, Enum):
    """Методы оплаты."""

    CASH = "CASH"
    CREDIT_CARD = "CREDIT_CARD"
    BANK_TRANSFER = "BANK_TRANSFER"
    OTA = "OTA"
    UPI = "UPI"


class BookingSource(str, Enum):
    """Канал, из которого пришло бронирование."""

    WALK_IN = "WALK_IN"
    WEB = "WEB"
    OTA = "OTA"
    PHONE = "PHONE"


class BookingType(str, Enum):
    FIT = "FIT"
    CORPORATE = "CORPORATE"
    GROUP = "GROUP"
    TA = "TA"


class MealPlan(str, Enum):
    EP = "EP"
    CP = "CP"
    MAP = "MAP"
    AP = "AP"


class Guest(BaseModel):
    """Профиль гостя, хранится внутри бронирования."""

    full_name: str
    email: str = ""
    phone: str = ""
    address: Optional[str] = None
    id_proof_type: Optional[str] = None  # Паспорт, ID и т.п.
    id_proof_number: Optional[str] = None
    notes: Optional[str] = None


class TravelAgency(BaseModel):
    """Профиль турагентства, через которое пришла бронь."""

    name: str
    agent_name: Optional[str] = None
    contact: Optional[str] = None  # Телефон
    email: Optional[str] = None
    commission_rate: Decimal = Field(ZERO, ge=0, le=100)
    gst_number: Optional[str] = None


class Booking(BaseModel):
    """Бронирование одного номера на полуоткрытый диапазон дат."""

    id: EntityId = Field(default_factory=generate_id)
    room_id: EntityId
    guest: Optional[Guest] = None
    travel_agency: Optional[TravelAgency] = None
    check_in_date: date
    check_out_date: date
    check_in_time: Optional[str] = None  # HH:mm
    check_out_time: Optional[str] = None
    status: BookingStatus = BookingStatus.CONFIRMED

    adults: int = Field(1, ge=0)
    children: int = Field(0, ge=0)
    infants: int = Field(0, ge=0)

    # Финансы
    total_amount: Decimal = Field(ZERO, ge=0)
    paid_amount: Decimal = Field(ZERO, ge=0)
    tax_amount: Optional[Decimal] = Field(None, ge=0)
    discount_amount: Optional[Decimal] = Field(None, ge=0)
    payment_method: Optional[PaymentMethod] = None
    transaction_id: Optional[str] = None  # Для цифровых платежей
    source: BookingSource = BookingSource.WALK_IN

    booking_type: Optional[BookingType] = None
    meal_plan: Optional[MealPlan] = None
    rate_plan: Optional[str] = None
    inclusions: List[str] = Field(default_factory=list)
    special_instructions: Optional[str] = None
    internal_notes: Optional[str] = None

    # Аудит
    created_at: datetime = Field(default_factory=now)
    created_by: Optional[str] = None
    updated_at: datetime = Field(default_factory=now)
    updated_by: Optional[str] = None

    @model_validator(mode="after")
    def check_invariants(self) -> "Booking":
        if self.check_out_date <= self.check_in_date:
            raise ValueError("Дата выезда должна быть позже даты заезда")
        if self.status == BookingStatus.BLOCKED:
            if self.guest is not None:
                raise ValueError("Блокировка номера не может содержать данные гостя")
            return self
        if self.guest is None or not self.guest.full_name.strip():
            raise ValueError("Для бронирования обязательно имя гостя")
        if self.adults < 1:
            raise ValueError("В бронировании должен быть хотя бы один взрослый")
        return self

    @classmethod
    def create(cls, **fields: Any) -> "Booking":
        """Создает новое бронирование с проверкой начального статуса."""
        booking = build_model(cls, fields)
        BookingLifecycle.ensure_initial(booking.status)
        return booking

    @property
    def period(self) -> DateRange:
        return DateRange(check_in=self.check_in_date, check_out=self.check_out_date)

    @property
    def nights(self) -> int:
        return (self.check_out_date - self.check_in_date).days

    @property
    def due(self) -> Decimal:
        """Остаток к оплате; отрицателен при переплате."""
        return self.total_amount - self.paid_amount

    @property
    def is_cancelled(self) -> bool:
        return self.status == BookingStatus.CANCELLED

    @property
    def is_blocked(self) -> bool:
        return self.status == BookingStatus.BLOCKED

    @property
    def label(self) -> str:
        """Подпись для шахматки."""
        if self.is_blocked or self.guest is None:
            return "MAINTENANCE"
        return self.guest.full_name


class BookingCreated(DomainEvent):
    """Событие создания бронирования."""

    booking_id: EntityId
    room_id: EntityId
    status: BookingStatus
    period: DateRange


class BookingUpdated(DomainEvent):
    """Событие редактирования полей бронирования."""

    booking_id: EntityId
    changed_fields: List[str]


class BookingStatusChanged(DomainEvent):
    """Событие перехода статуса бронирования."""

    booking_id: EntityId
    previous: BookingStatus
    current: BookingStatus


class BookingUnblocked(DomainEvent):
    """Событие снятия блокировки номера (документ удален)."""

    booking_id: EntityId
    room_id: EntityId


class BookingLifecycle:
    """Конечный автомат статусов бронирования."""

    TRANSITIONS: Dict[BookingStatus, FrozenSet[BookingStatus]] = {
        BookingStatus.CONFIRMED: frozenset(
            {BookingStatus.CHECKED_IN, BookingStatus.CANCELLED}
        ),
        BookingStatus.HOLD: frozenset(
            {BookingStatus.CONFIRMED, BookingStatus.CHECKED_IN, BookingStatus.CANCELLED}
        ),
        BookingStatus.CHECKED_IN: frozenset(
            {BookingStatus.CHECKED_OUT, BookingStatus.CANCELLED}
        ),
        BookingStatus.CHECKED_OUT: frozenset(),
        BookingStatus.CANCELLED: frozenset(),
        # Блокировка не меняет статус, ее удаляют целиком
        BookingStatus.BLOCKED: frozenset(),
    }

    INITIAL_STATES: FrozenSet[BookingStatus] = frozenset(
        {
            BookingStatus.CONFIRMED,
            BookingStatus.HOLD,
            BookingStatus.CHECKED_IN,
            BookingStatus.BLOCKED,
        }
    )

    FINALIZED: FrozenSet[BookingStatus] = frozenset(
        {BookingStatus.CHECKED_OUT, BookingStatus.CANCELLED}
    )

    @classmethod
    def can_transition(cls, current: BookingStatus, target: BookingStatus) -> bool:
        return target in cls.TRANSITIONS[current]

    @classmethod
    def is_finalized(cls, status: BookingStatus) -> bool:
        return status in cls.FINALIZED

    @classmethod
    def ensure_initial(cls, status: BookingStatus) -> None:
        if status not in cls.INITIAL_STATES:
            raise InvalidTransitionError(
                f"Нельзя создать бронирование в статусе {status.value}"
            )

    @classmethod
    def ensure_transition(cls, booking: Booking, target: BookingStatus) -> None:
        """Проверяет, что переход статуса допустим."""
        if cls.can_transition(booking.status, target):
            return
        if booking.is_blocked:
            raise InvalidTransitionError(
                "Блокировка не меняет статус: снимите ее, чтобы освободить номер"
            )
        raise InvalidTransitionError(
            f"Недопустимый переход статуса: {booking.status.value} -> {target.value}"
        )

    @classmethod
    def ensure_editable(cls, booking: Booking, lock_finalized: bool = True) -> None:
        """Запрещает правку завершенных и отмененных бронирований."""
        if lock_finalized and cls.is_finalized(booking.status):
            raise InvalidTransitionError(
                f"Бронирование {booking.id} в статусе {booking.status.value} "
                f"нельзя изменять"
            )


class ConflictCheck(BaseModel):
    """Результат проверки кандидата на пересечение."""

    accepted: bool
    conflicting_booking_ids: List[EntityId] = Field(default_factory=list)


class ConflictDetector:
    """Отклоняет бронирования, пересекающиеся с активными бронями того же номера."""

    def __init__(self, bookings: Iterable[Booking]):
        self._bookings = list(bookings)

    def find_conflicts(
        self,
        room_id: EntityId,
        period: DateRange,
        exclude_booking_id: Optional[EntityId] = None,
    ) -> List[Booking]:
        return [
            booking
            for booking in self._bookings
            if booking.room_id == room_id
            and not booking.is_cancelled
            and booking.id != exclude_booking_id
            and booking.period.overlaps(period)
        ]

    def check(
        self,
        room_id: EntityId,
        period: DateRange,
        exclude_booking_id: Optional[EntityId] = None,
    ) -> ConflictCheck:
        conflicts = self.find_conflicts(room_id, period, exclude_booking_id)
        return ConflictCheck(
            accepted=not conflicts,
            conflicting_booking_ids=[booking.id for booking in conflicts],
        )

    def ensure_available(
        self,
        room_id: EntityId,
        period: DateRange,
        exclude_booking_id: Optional[EntityId] = None,
    ) -> None:
        """Выбрасывает OverlapError, если номер занят на эти даты."""
        result = self.check(room_id, period, exclude_booking_id)
        if not result.accepted:
            raise OverlapError(
                f"Номер {room_id} уже занят с {period.check_in} по {period.check_out}",
                result.conflicting_booking_ids,
            )
