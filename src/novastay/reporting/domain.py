"""
Доменная модель контекста отчетности.

Содержит построитель шахматки (OccupancyGridBuilder) и финансовый
агрегатор (FinancialAggregator). Оба - чистые функции от снимка:
без побочных эффектов и без ввода-вывода.
"""

from datetime import date, timedelta
from decimal import Decimal
from enum import Enum
from typing import Callable, Dict, Iterable, List, Sequence, Tuple

from pydantic import BaseModel, ConfigDict, Field

from ..booking.domain import Booking, BookingStatus
from ..rooms.domain import Room
from ..shared_kernel import ZERO, EntityId, ValidationError


class DateWindow(BaseModel):
    """Видимое окно шахматки: days последовательных дат начиная со start."""

    model_config = ConfigDict(frozen=True)

    start: date
    days: int = Field(14, gt=0)

    @property
    def end(self) -> date:
        """Первая дата после окна (граница не включается)."""
        return self.start + timedelta(days=self.days)

    @property
    def dates(self) -> List[date]:
        return [self.start + timedelta(days=offset) for offset in range(self.days)]

    def shift(self, days: int) -> "DateWindow":
        return DateWindow(start=self.start + timedelta(days=days), days=self.days)

    def previous(self, step: int = 7) -> "DateWindow":
        return self.shift(-step)

    def next(self, step: int = 7) -> "DateWindow":
        return self.shift(step)


class Segment(BaseModel):
    """Отрезок брони на шахматке: смещение и ширина в ячейках-датах."""

    model_config = ConfigDict(frozen=True)

    booking_id: EntityId
    room_id: EntityId
    status: BookingStatus
    label: str
    offset: int
    width: int
    clipped_start: bool = False  # Бронь началась до окна
    clipped_end: bool = False  # Бронь заканчивается после окна


class GridRow(BaseModel):
    """Строка шахматки: номер и его отрезки."""

    room: Room
    segments: List[Segment]


class OccupancyGridBuilder:
    """Проецирует активные бронирования номера на видимое окно дат."""

    def segments(self, window: Sequence[date], bookings: Iterable[Booking]) -> List[Segment]:
        """
        Строит отрезки для бронирований одного номера.

        Args:
            window: Упорядоченные последовательные даты окна
            bookings: Бронирования номера (отмененные пропускаются)
        """
        window_start, window_end = self._bounds(window)
        segments = []

        for booking in bookings:
            if booking.is_cancelled:
                continue
            # Нет пересечения с [window_start, window_end)
            if booking.check_out_date <= window_start or booking.check_in_date >= window_end:
                continue

            visible_start = max(booking.check_in_date, window_start)
            visible_end = min(booking.check_out_date, window_end)
            segments.append(
                Segment(
                    booking_id=booking.id,
                    room_id=booking.room_id,
                    status=booking.status,
                    label=booking.label,
                    offset=(visible_start - window_start).days,
                    width=max(1, (visible_end - visible_start).days),
                    clipped_start=booking.check_in_date < window_start,
                    clipped_end=booking.check_out_date > window_end,
                )
            )

        return sorted(segments, key=lambda segment: (segment.offset, segment.booking_id))

    def build_rows(
        self, window: DateWindow, rooms: Iterable[Room], bookings: Iterable[Booking]
    ) -> List[GridRow]:
        """Строит шахматку: по строке на каждый номер в порядке каталога."""
        by_room: Dict[EntityId, List[Booking]] = {}
        for booking in bookings:
            by_room.setdefault(booking.room_id, []).append(booking)

        dates = window.dates
        return [
            GridRow(room=room, segments=self.segments(dates, by_room.get(room.id, [])))
            for room in rooms
        ]

    @staticmethod
    def _bounds(window: Sequence[date]) -> Tuple[date, date]:
        if not window:
            raise ValidationError("Окно шахматки не может быть пустым")
        for previous, current in zip(window, window[1:]):
            if current - previous != timedelta(days=1):
                raise ValidationError(
                    f"Даты окна должны идти подряд: {previous} -> {current}"
                )
        return window[0], window[-1] + timedelta(days=1)


class DailyFilter(str, Enum):
    """Фильтры списка ежедневных операций."""

    ALL = "ALL"
    ARRIVALS = "CHECK_IN"
    DEPARTURES = "CHECK_OUT"
    IN_HOUSE = "IN_HOUSE"
    CANCELLED = "CANCELLED"


class FinancialTotals(BaseModel):
    """Суммы по отфильтрованному набору бронирований."""

    total_amount: Decimal = ZERO
    paid_amount: Decimal = ZERO
    due: Decimal = ZERO
    count: int = 0


class FinancialAggregator:
    """Финансовые и загрузочные показатели по снимку бронирований."""

    @staticmethod
    def due(booking: Booking) -> Decimal:
        return booking.total_amount - booking.paid_amount

    @staticmethod
    def matches_search(booking: Booking, term: str) -> bool:
        """Поиск по имени гостя (без учета регистра), телефону или id."""
        term = term.strip()
        if not term:
            return True
        if term in booking.id:
            return True
        if booking.guest is None:
            return False
        return term.lower() in booking.guest.full_name.lower() or term in booking.guest.phone

    @staticmethod
    def predicate(filter_type: DailyFilter, on_date: date) -> Callable[[Booking], bool]:
        """Предикат выборки для даты."""

        def arrivals(booking: Booking) -> bool:
            return booking.check_in_date == on_date and not booking.is_cancelled

        def departures(booking: Booking) -> bool:
            return booking.check_out_date == on_date and not booking.is_cancelled

        def in_house(booking: Booking) -> bool:
            return booking.period.contains(on_date) and booking.status not in (
                BookingStatus.CANCELLED,
                BookingStatus.CHECKED_OUT,
            )

        def cancelled(booking: Booking) -> bool:
            return booking.is_cancelled

        return {
            DailyFilter.ALL: lambda booking: True,
            DailyFilter.ARRIVALS: arrivals,
            DailyFilter.DEPARTURES: departures,
            DailyFilter.IN_HOUSE: in_house,
            DailyFilter.CANCELLED: cancelled,
        }[filter_type]

    def select(
        self,
        bookings: Iterable[Booking],
        filter_type: DailyFilter,
        on_date: date,
        search: str = "",
    ) -> List[Booking]:
        matches = self.predicate(filter_type, on_date)
        return [
            booking
            for booking in bookings
            if self.matches_search(booking, search) and matches(booking)
        ]

    def rollup(self, bookings: Iterable[Booking]) -> FinancialTotals:
        """Суммы total/paid/due; отмененные бронирования не учитываются."""
        totals = FinancialTotals()
        for booking in bookings:
            if booking.is_cancelled:
                continue
            totals = FinancialTotals(
                total_amount=totals.total_amount + booking.total_amount,
                paid_amount=totals.paid_amount + booking.paid_amount,
                due=totals.due + self.due(booking),
                count=totals.count + 1,
            )
        return totals

    def daily_rollup(
        self,
        bookings: Iterable[Booking],
        filter_type: DailyFilter,
        on_date: date,
        search: str = "",
    ) -> FinancialTotals:
        return self.rollup(self.select(bookings, filter_type, on_date, search))

    @staticmethod
    def monthly_revenue(bookings: Iterable[Booking], reference_date: date) -> Decimal:
        """Выручка месяца: учитывается месяц заезда, а не выезда."""
        return sum(
            (
                booking.total_amount
                for booking in bookings
                if not booking.is_cancelled
                and booking.check_in_date.year == reference_date.year
                and booking.check_in_date.month == reference_date.month
            ),
            ZERO,
        )

    @staticmethod
    def total_revenue(bookings: Iterable[Booking]) -> Decimal:
        return sum(
            (booking.total_amount for booking in bookings if not booking.is_cancelled),
            ZERO,
        )

    def average_daily_rate(self, bookings: Iterable[Booking]) -> Decimal:
        active = [booking for booking in bookings if not booking.is_cancelled]
        return self.total_revenue(active) / max(1, len(active))

    @staticmethod
    def occupancy_rate(bookings: Iterable[Booking], room_count: int) -> float:
        """
        Доля номеров со статусом CHECKED_IN.

        Упрощение: считается по статусу брони, а не по датам, поэтому
        подтвержденная на сегодня бронь не учитывается до заселения.
        """
        if room_count <= 0:
            return 0.0
        checked_in = sum(1 for booking in bookings if booking.status == BookingStatus.CHECKED_IN)
        return checked_in / room_count

    @staticmethod
    def recent(bookings: Iterable[Booking], limit: int = 5) -> List[Booking]:
        ordered = sorted(bookings, key=lambda booking: booking.created_at, reverse=True)
        return ordered[:limit]

