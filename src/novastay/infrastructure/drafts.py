"""
Подготовка черновиков писем гостю вне основного потока.

Генерация текста может быть долгой (внешняя модель), поэтому она
запускается как asyncio-задача и никогда не блокирует пересчет
шахматки и финансов. Отмена - это просто отказ от результата.
"""

import asyncio
from typing import Dict, List, Optional

from ..booking.domain import Booking
from ..interfaces import DraftKind, IDraftGenerator, ILogger
from ..rooms.domain import Room
from ..shared_kernel import EntityId, ValidationError
from .loggers import StdLibLogger

_OPENINGS = {
    DraftKind.CONFIRMATION: "We are delighted to confirm your reservation with us.",
    DraftKind.WELCOME: "Welcome! We are glad to have you staying with us.",
    DraftKind.INVOICE: "Please find the summary of your stay charges below.",
}


class TemplateDraftGenerator(IDraftGenerator):
    """Генератор писем по шаблону, не требующий внешнего сервиса."""

    def __init__(self, hotel_name: str = "NovaStay", currency: str = "INR"):
        self._hotel_name = hotel_name
        self._currency = currency

    async def generate(self, booking: Booking, room: Room, kind: DraftKind) -> str:
        if booking.guest is None:
            raise ValidationError("Письмо можно подготовить только для брони с гостем")

        # Отдаем управление циклу событий, как это сделал бы сетевой клиент
        await asyncio.sleep(0)

        agency = booking.travel_agency.name if booking.travel_agency else "Direct Booking"
        lines = [
            f"Dear {booking.guest.full_name},",
            "",
            _OPENINGS[kind],
            "",
            f"Room: {room.number} ({room.type.value})",
            f"Check-in: {booking.check_in_date.isoformat()}",
            f"Check-out: {booking.check_out_date.isoformat()}",
            f"Total Amount: {booking.total_amount} {self._currency}",
        ]
        if kind == DraftKind.INVOICE:
            lines.append(f"Paid: {booking.paid_amount} {self._currency}")
            lines.append(f"Balance Due: {booking.due} {self._currency}")
        lines += [f"Travel Agency: {agency}", "", f"The {self._hotel_name} Team"]
        return "\n".join(lines)


class DraftRequests:
    """Запущенные генерации черновиков, по одной на бронирование."""

    def __init__(self, generator: IDraftGenerator, logger: Optional[ILogger] = None):
        self._generator = generator
        self._tasks: Dict[EntityId, "asyncio.Task[str]"] = {}
        self._logger = logger or StdLibLogger("novastay.drafts")

    def request(self, booking: Booking, room: Room, kind: DraftKind) -> "asyncio.Task[str]":
        """Запускает генерацию; предыдущий запрос для той же брони отбрасывается."""
        self.discard(booking.id)
        task = asyncio.create_task(self._generator.generate(booking, room, kind))
        self._tasks[booking.id] = task
        task.add_done_callback(lambda done, booking_id=booking.id: self._forget(booking_id, done))
        self._logger.debug("Draft requested", booking_id=booking.id, kind=kind.value)
        return task

    def discard(self, booking_id: EntityId) -> bool:
        """Отказывается от результата. Возвращает True, если задача была отменена."""
        task = self._tasks.pop(booking_id, None)
        if task is None or task.done():
            return False
        task.cancel()
        self._logger.debug("Draft discarded", booking_id=booking_id)
        return True

    def pending(self) -> List[EntityId]:
        return [booking_id for booking_id, task in self._tasks.items() if not task.done()]

    def _forget(self, booking_id: EntityId, task: "asyncio.Task[str]") -> None:
        if self._tasks.get(booking_id) is task:
            del self._tasks[booking_id]
