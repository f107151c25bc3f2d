"""
Прикладной слой контекста бронирования.

Все изменения бронирований проходят здесь через жизненный цикл
и детектор пересечений и только потом попадают в хранилище.
Отклоненная запись никогда не доходит до хранилища.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import Any, Callable, Dict, List, Optional

from pydantic import BaseModel

from ..config import Settings
from ..interfaces import (
    BOOKINGS,
    Document,
    IDocumentStore,
    IEventBus,
    ILogger,
    ISupportsConditionalCreate,
)
from ..rooms.application import RoomApplicationService
from ..rooms.domain import HousekeepingStatus
from ..shared_kernel import (
    ZERO,
    EntityId,
    InvalidTransitionError,
    OverlapError,
    build_model,
    generate_id,
    now,
)
from ..snapshot import HotelSnapshot, parse_documents
from .domain import (
    Booking,
    BookingCreated,
    BookingLifecycle,
    BookingSource,
    BookingStatus,
    BookingStatusChanged,
    BookingType,
    BookingUnblocked,
    BookingUpdated,
    ConflictDetector,
    Guest,
    MealPlan,
    PaymentMethod,
    TravelAgency,
)

# Поля, изменение которых требует повторной проверки пересечений
_ALLOCATION_FIELDS = frozenset({"room_id", "check_in_date", "check_out_date"})


class CreateBookingRequest(BaseModel):
    """Запрос на создание бронирования."""

    room_id: EntityId
    check_in_date: date
    check_out_date: date
    status: BookingStatus = BookingStatus.CONFIRMED
    guest: Optional[Guest] = None
    travel_agency: Optional[TravelAgency] = None
    adults: int = 1
    children: int = 0
    infants: int = 0
    # Если сумма не задана, считается как ночи * цена номера
    total_amount: Optional[Decimal] = None
    paid_amount: Decimal = ZERO
    tax_amount: Optional[Decimal] = None
    discount_amount: Optional[Decimal] = None
    payment_method: Optional[PaymentMethod] = None
    transaction_id: Optional[str] = None
    source: BookingSource = BookingSource.WALK_IN
    check_in_time: Optional[str] = None
    check_out_time: Optional[str] = None
    booking_type: Optional[BookingType] = None
    meal_plan: Optional[MealPlan] = None
    rate_plan: Optional[str] = None
    inclusions: List[str] = []
    special_instructions: Optional[str] = None
    internal_notes: Optional[str] = None


class UpdateBookingRequest(BaseModel):
    """
    Запрос на обновление бронирования.

    Учитываются только явно переданные поля; явный None очищает
    необязательное поле (например, турагентство).
    """

    booking_id: EntityId
    room_id: Optional[EntityId] = None
    check_in_date: Optional[date] = None
    check_out_date: Optional[date] = None
    status: Optional[BookingStatus] = None
    guest: Optional[Guest] = None
    travel_agency: Optional[TravelAgency] = None
    adults: Optional[int] = None
    children: Optional[int] = None
    infants: Optional[int] = None
    total_amount: Optional[Decimal] = None
    paid_amount: Optional[Decimal] = None
    tax_amount: Optional[Decimal] = None
    discount_amount: Optional[Decimal] = None
    payment_method: Optional[PaymentMethod] = None
    transaction_id: Optional[str] = None
    source: Optional[BookingSource] = None
    check_in_time: Optional[str] = None
    check_out_time: Optional[str] = None
    booking_type: Optional[BookingType] = None
    meal_plan: Optional[MealPlan] = None
    rate_plan: Optional[str] = None
    inclusions: Optional[List[str]] = None
    special_instructions: Optional[str] = None
    internal_notes: Optional[str] = None


class BookingApplicationService:
    """Сервис приложения для работы с бронированиями."""

    def __init__(
        self,
        store: IDocumentStore,
        snapshot: HotelSnapshot,
        event_bus: IEventBus,
        logger: ILogger,
        settings: Settings,
        rooms: Optional[RoomApplicationService] = None,
        clock: Callable[[], datetime] = now,
    ):
        self._store = store
        self._snapshot = snapshot
        self._event_bus = event_bus
        self._logger = logger
        self._settings = settings
        self._rooms = rooms
        self._clock = clock

    # --- Чтение ---

    def get_booking(self, booking_id: EntityId) -> Booking:
        """Возвращает бронирование по id, в том числе отмененное."""
        return self._snapshot.get_booking(booking_id)

    def list_bookings(
        self,
        room_id: Optional[EntityId] = None,
        status: Optional[BookingStatus] = None,
    ) -> List[Booking]:
        """Возвращает список бронирований с фильтрацией, по дате заезда."""
        bookings = [
            booking
            for booking in self._snapshot.bookings
            if (room_id is None or booking.room_id == room_id)
            and (status is None or booking.status == status)
        ]
        return sorted(bookings, key=lambda booking: (booking.check_in_date, booking.id))

    def list_blocks(self) -> List[Booking]:
        """Активные блокировки номеров."""
        return self.list_bookings(status=BookingStatus.BLOCKED)

    # --- Создание ---

    def create_booking(
        self, command: CreateBookingRequest, actor: Optional[str] = None
    ) -> Booking:
        """Создает новое бронирование."""
        room = self._snapshot.rooms.get(command.room_id)

        data: Dict[str, Any] = command.model_dump(exclude_none=True)
        if command.total_amount is None:
            if command.status == BookingStatus.BLOCKED:
                data["total_amount"] = ZERO
            else:
                nights = max((command.check_out_date - command.check_in_date).days, 0)
                data["total_amount"] = room.price_per_night * nights

        timestamp = self._clock()
        data.update(
            id=generate_id(),
            created_at=timestamp,
            created_by=actor,
            updated_at=timestamp,
            updated_by=actor,
        )
        booking = Booking.create(**data)

        self._ensure_available(booking)
        document = booking.model_dump(mode="json")
        if isinstance(self._store, ISupportsConditionalCreate):
            # Повторная проверка атомарно с записью закрывает гонку check-then-write
            self._store.create_if(BOOKINGS, booking.id, document, self._overlap_guard(booking))
        else:
            self._store.create(BOOKINGS, booking.id, document)

        self._logger.info(
            "Booking created",
            booking_id=booking.id,
            room_id=booking.room_id,
            status=booking.status.value,
            check_in=booking.check_in_date,
            check_out=booking.check_out_date,
        )
        self._event_bus.publish(
            BookingCreated(
                booking_id=booking.id,
                room_id=booking.room_id,
                status=booking.status,
                period=booking.period,
                actor=actor,
            )
        )
        return booking

    def block_room(
        self,
        room_id: EntityId,
        check_in_date: date,
        check_out_date: date,
        actor: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> Booking:
        """Блокирует номер на даты (ремонт, обслуживание)."""
        return self.create_booking(
            CreateBookingRequest(
                room_id=room_id,
                check_in_date=check_in_date,
                check_out_date=check_out_date,
                status=BookingStatus.BLOCKED,
                adults=0,
                internal_notes=notes,
            ),
            actor=actor,
        )

    # --- Изменение ---

    def update_booking(
        self, request: UpdateBookingRequest, actor: Optional[str] = None
    ) -> Booking:
        """Обновляет поля бронирования (даты, номер, финансы, гость, статус)."""
        booking = self._snapshot.get_booking(request.booking_id)
        BookingLifecycle.ensure_editable(booking, self._settings.lock_finalized_bookings)

        changes = request.model_dump(exclude_unset=True, exclude={"booking_id"})
        if not changes:
            return booking

        target = changes.get("status")
        if target is not None and target != booking.status:
            BookingLifecycle.ensure_transition(booking, target)
        elif "status" in changes and target is None:
            raise InvalidTransitionError("Статус бронирования не может быть пустым")
        if "room_id" in changes:
            self._snapshot.rooms.get(changes["room_id"])

        stamp = {"updated_at": self._clock(), "updated_by": actor}
        updated = build_model(Booking, {**booking.model_dump(), **changes, **stamp})

        if _ALLOCATION_FIELDS & changes.keys() and not updated.is_cancelled:
            self._ensure_available(updated)

        # Пишется весь проверенный документ: последняя запись заменяет его целиком
        self._store.update(BOOKINGS, booking.id, updated.model_dump(mode="json"))

        self._logger.info("Booking updated", booking_id=booking.id, fields=sorted(changes))
        self._event_bus.publish(
            BookingUpdated(booking_id=booking.id, changed_fields=sorted(changes), actor=actor)
        )
        if updated.status != booking.status:
            self._status_changed(booking, updated, actor)
        return updated

    def change_status(
        self, booking_id: EntityId, target: BookingStatus, actor: Optional[str] = None
    ) -> Booking:
        """Переводит бронирование в новый статус по правилам жизненного цикла."""
        booking = self._snapshot.get_booking(booking_id)
        BookingLifecycle.ensure_transition(booking, target)

        updated = booking.model_copy(
            update={"status": target, "updated_at": self._clock(), "updated_by": actor}
        )
        self._store.update(
            BOOKINGS,
            booking.id,
            updated.model_dump(mode="json", include={"status", "updated_at", "updated_by"}),
        )
        self._status_changed(booking, updated, actor)
        return updated

    def confirm_booking(self, booking_id: EntityId, actor: Optional[str] = None) -> Booking:
        return self.change_status(booking_id, BookingStatus.CONFIRMED, actor)

    def check_in(self, booking_id: EntityId, actor: Optional[str] = None) -> Booking:
        return self.change_status(booking_id, BookingStatus.CHECKED_IN, actor)

    def check_out(self, booking_id: EntityId, actor: Optional[str] = None) -> Booking:
        return self.change_status(booking_id, BookingStatus.CHECKED_OUT, actor)

    def cancel_booking(
        self,
        booking_id: EntityId,
        actor: Optional[str] = None,
        reason: Optional[str] = None,
    ) -> Booking:
        """Отменяет бронирование; запись остается для истории."""
        booking = self.change_status(booking_id, BookingStatus.CANCELLED, actor)
        if reason:
            self._logger.info("Booking cancelled", booking_id=booking_id, reason=reason)
        return booking

    def unblock(self, booking_id: EntityId, actor: Optional[str] = None) -> None:
        """Снимает блокировку номера, удаляя документ целиком."""
        booking = self._snapshot.get_booking(booking_id)
        if not booking.is_blocked:
            raise InvalidTransitionError(
                f"Бронирование {booking_id} не является блокировкой; его можно только отменить"
            )

        self._store.delete(BOOKINGS, booking.id)
        self._logger.info("Room unblocked", booking_id=booking.id, room_id=booking.room_id)
        self._event_bus.publish(
            BookingUnblocked(booking_id=booking.id, room_id=booking.room_id, actor=actor)
        )

    # --- Вспомогательные методы ---

    def _ensure_available(self, booking: Booking) -> None:
        detector = ConflictDetector(self._snapshot.bookings)
        try:
            detector.ensure_available(booking.room_id, booking.period, exclude_booking_id=booking.id)
        except OverlapError as exc:
            self._logger.warning(
                "Booking rejected: overlapping stay",
                room_id=booking.room_id,
                conflicting=exc.conflicting_booking_ids,
            )
            raise

    def _overlap_guard(self, booking: Booking) -> Callable[[List[Document]], None]:
        def guard(documents: List[Document]) -> None:
            current = parse_documents(Booking, documents, self._logger)
            ConflictDetector(current).ensure_available(
                booking.room_id, booking.period, exclude_booking_id=booking.id
            )

        return guard

    def _status_changed(self, before: Booking, after: Booking, actor: Optional[str]) -> None:
        self._logger.info(
            "Booking status changed",
            booking_id=after.id,
            previous=before.status.value,
            current=after.status.value,
        )
        self._event_bus.publish(
            BookingStatusChanged(
                booking_id=after.id, previous=before.status, current=after.status, actor=actor
            )
        )
        if (
            after.status == BookingStatus.CHECKED_OUT
            and self._settings.mark_room_dirty_on_checkout
            and self._rooms is not None
        ):
            self._rooms.set_status(after.room_id, HousekeepingStatus.DIRTY, actor)
