"""
Прикладной слой контекста отчетности.

Собирает представления (шахматка, ежедневные операции, дашборд)
из последнего снимка. Каждое представление пересчитывается целиком;
инкрементальных обновлений нет.
"""

from datetime import date
from decimal import Decimal
from typing import Dict, List, Optional

from pydantic import BaseModel

from ..booking.domain import Booking
from ..config import Settings
from ..interfaces import Unsubscribe
from ..rooms.domain import HousekeepingStatus
from ..shared_kernel import EntityId, today
from ..snapshot import HotelSnapshot
from .domain import (
    DailyFilter,
    DateWindow,
    FinancialAggregator,
    FinancialTotals,
    GridRow,
    OccupancyGridBuilder,
)


class TapeChartView(BaseModel):
    """Шахматка для окна дат."""

    window: DateWindow
    dates: List[date]
    rows: List[GridRow]


class DailyOperationsView(BaseModel):
    """Список операций дня с финансовыми итогами."""

    on_date: date
    filter_type: DailyFilter
    search: str
    bookings: List[Booking]
    totals: FinancialTotals
    monthly_revenue: Decimal
    room_numbers: Dict[EntityId, str]


class DashboardView(BaseModel):
    """Ключевые показатели для дашборда."""

    on_date: date
    total_revenue: Decimal
    average_daily_rate: Decimal
    occupancy_rate: float
    arrivals: int
    departures: int
    room_count: int
    housekeeping: Dict[HousekeepingStatus, int]
    recent_bookings: List[Booking]


class ReportingService:
    """Сервис приложения, строящий представления из снимка."""

    def __init__(
        self,
        snapshot: HotelSnapshot,
        settings: Settings,
        grid_builder: Optional[OccupancyGridBuilder] = None,
        aggregator: Optional[FinancialAggregator] = None,
    ):
        self._snapshot = snapshot
        self._settings = settings
        self._grid = grid_builder or OccupancyGridBuilder()
        self._aggregator = aggregator or FinancialAggregator()

    def default_window(self, start: Optional[date] = None) -> DateWindow:
        return DateWindow(start=start or today(), days=self._settings.grid_window_days)

    def tape_chart(self, window: DateWindow) -> TapeChartView:
        rows = self._grid.build_rows(window, self._snapshot.rooms, self._snapshot.bookings)
        return TapeChartView(window=window, dates=window.dates, rows=rows)

    def daily_operations(
        self,
        on_date: date,
        filter_type: DailyFilter = DailyFilter.ARRIVALS,
        search: str = "",
    ) -> DailyOperationsView:
        bookings = self._snapshot.bookings
        selected = self._aggregator.select(bookings, filter_type, on_date, search)
        return DailyOperationsView(
            on_date=on_date,
            filter_type=filter_type,
            search=search,
            bookings=sorted(selected, key=lambda booking: (booking.check_in_date, booking.id)),
            totals=self._aggregator.rollup(selected),
            monthly_revenue=self._aggregator.monthly_revenue(bookings, on_date),
            room_numbers={room.id: room.number for room in self._snapshot.rooms},
        )

    def dashboard(self, on_date: Optional[date] = None) -> DashboardView:
        on_date = on_date or today()
        bookings = self._snapshot.bookings
        rooms = self._snapshot.rooms
        aggregator = self._aggregator
        return DashboardView(
            on_date=on_date,
            total_revenue=aggregator.total_revenue(bookings),
            average_daily_rate=aggregator.average_daily_rate(bookings),
            occupancy_rate=aggregator.occupancy_rate(bookings, len(rooms)),
            arrivals=len(aggregator.select(bookings, DailyFilter.ARRIVALS, on_date)),
            departures=len(aggregator.select(bookings, DailyFilter.DEPARTURES, on_date)),
            room_count=len(rooms),
            housekeeping=rooms.count_by_status(),
            recent_bookings=aggregator.recent(bookings, self._settings.recent_bookings_limit),
        )


class LiveTapeChart:
    """
    Шахматка, пересобираемая при каждом новом снимке.

    Хранит текущее окно; навигация сдвигает его на шаг из настроек.
    """

    def __init__(self, reporting: ReportingService, snapshot: HotelSnapshot, settings: Settings):
        self._reporting = reporting
        self._snapshot = snapshot
        self._step = settings.grid_step_days
        self.window = reporting.default_window()
        self.view: Optional[TapeChartView] = None
        self.refreshes = 0
        self._unsubscribe: Optional[Unsubscribe] = None

    def attach(self) -> None:
        self._unsubscribe = self._snapshot.on_change(lambda snapshot: self.refresh())
        self.refresh()

    def detach(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    def refresh(self) -> TapeChartView:
        self.view = self._reporting.tape_chart(self.window)
        self.refreshes += 1
        return self.view

    def go_to(self, start: date) -> TapeChartView:
        self.window = self._reporting.default_window(start)
        return self.refresh()

    def previous(self) -> TapeChartView:
        self.window = self.window.previous(self._step)
        return self.refresh()

    def next(self) -> TapeChartView:
        self.window = self.window.next(self._step)
        return self.refresh()
