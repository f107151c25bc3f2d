"""
Снимок состояния отеля, поддерживаемый живой подпиской на хранилище.

Все представления (шахматка, финансы, дашборд) строятся как чистые
функции от последнего снимка и пересчитываются целиком при каждом
его изменении.
"""

from typing import Callable, Dict, List, Optional, Type, TypeVar

from pydantic import BaseModel

from .booking.domain import Booking
from .interfaces import BOOKINGS, ROOMS, Document, IDocumentStore, ILogger, Unsubscribe
from .infrastructure.loggers import StdLibLogger
from .rooms.domain import Room, RoomRegistry
from .shared_kernel import EntityId, NotFoundError, ValidationError, build_model

T = TypeVar("T", bound=BaseModel)

ChangeListener = Callable[["HotelSnapshot"], None]


def parse_documents(
    model_class: Type[T],
    documents: List[Document],
    logger: ILogger,
    rejected: Optional[List[EntityId]] = None,
) -> List[T]:
    """
    Разбирает документы коллекции, пропуская некорректные.

    Некорректный документ пишется в журнал и в rejected (если передан),
    остальные документы коллекции разбираются как обычно.
    """
    parsed = []
    for document in documents:
        try:
            parsed.append(build_model(model_class, document))
        except ValidationError as exc:
            doc_id = document.get("id") if isinstance(document, dict) else None
            logger.error(
                f"Invalid {model_class.__name__} document skipped",
                document_id=doc_id,
                error=str(exc),
            )
            if rejected is not None:
                rejected.append(doc_id)
    return parsed


class HotelSnapshot:
    """Последний полученный из хранилища набор номеров и бронирований."""

    def __init__(self, logger: Optional[ILogger] = None):
        self._rooms = RoomRegistry()
        self._bookings: Dict[EntityId, Booking] = {}
        self._listeners: List[ChangeListener] = []
        self._subscriptions: List[Unsubscribe] = []
        self._logger = logger or StdLibLogger("novastay.snapshot")
        # id документов, пропущенных при последнем разборе коллекции
        self.invalid_documents: Dict[str, List[EntityId]] = {ROOMS: [], BOOKINGS: []}
        self.rooms_loaded = False
        self.bookings_loaded = False
        self.version = 0

    def attach(self, store: IDocumentStore) -> None:
        """Подписывается на обе коллекции хранилища."""
        self._subscriptions.append(store.subscribe(ROOMS, self.apply_rooms))
        self._subscriptions.append(store.subscribe(BOOKINGS, self.apply_bookings))

    def detach(self) -> None:
        for unsubscribe in self._subscriptions:
            unsubscribe()
        self._subscriptions = []

    def apply_rooms(self, documents: List[Document]) -> None:
        rejected: List[EntityId] = []
        self._rooms = RoomRegistry(parse_documents(Room, documents, self._logger, rejected))
        self.invalid_documents[ROOMS] = rejected
        self.rooms_loaded = True
        self._changed()

    def apply_bookings(self, documents: List[Document]) -> None:
        rejected: List[EntityId] = []
        bookings = parse_documents(Booking, documents, self._logger, rejected)
        self._bookings = {booking.id: booking for booking in bookings}
        self.invalid_documents[BOOKINGS] = rejected
        self.bookings_loaded = True
        self._changed()

    def on_change(self, listener: ChangeListener) -> Unsubscribe:
        """Регистрирует обработчик, вызываемый после каждого нового снимка."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    @property
    def rooms(self) -> RoomRegistry:
        return self._rooms

    @property
    def bookings(self) -> List[Booking]:
        return list(self._bookings.values())

    def find_booking(self, booking_id: EntityId) -> Optional[Booking]:
        return self._bookings.get(booking_id)

    def get_booking(self, booking_id: EntityId) -> Booking:
        # Отмененные бронирования тоже доступны по id (история аудита)
        booking = self._bookings.get(booking_id)
        if booking is None:
            raise NotFoundError("Бронирование", booking_id)
        return booking

    def bookings_for_room(self, room_id: EntityId) -> List[Booking]:
        return [booking for booking in self._bookings.values() if booking.room_id == room_id]

    def _changed(self) -> None:
        self.version += 1
        self._logger.debug(
            "Snapshot updated",
            version=self.version,
            rooms=len(self._rooms),
            bookings=len(self._bookings),
        )
        for listener in list(self._listeners):
            listener(self)
