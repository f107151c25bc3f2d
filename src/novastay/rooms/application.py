"""
Прикладной слой контекста номеров.

Содержит DTO, сервис редактирования номеров и смены статуса уборки,
а также первичное заполнение каталога номеров.
"""

from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, Field

from ..interfaces import ROOMS, Document, IDocumentStore, IEventBus, ILogger, Unsubscribe
from ..shared_kernel import EntityId, PersistenceError, ValidationError, build_model
from ..snapshot import HotelSnapshot
from .domain import (
    SEED_ROOMS,
    HousekeepingStatus,
    Room,
    RoomStatusAdvanced,
    RoomStatusCycle,
    RoomType,
    RoomUpdated,
)


class UpdateRoomCommand(BaseModel):
    """Запрос на редактирование номера."""

    room_id: EntityId
    type: Optional[RoomType] = None
    price_per_night: Optional[Decimal] = Field(None, ge=0)
    amenities: Optional[List[str]] = None
    capacity: Optional[int] = Field(None, gt=0)


class RoomDTO(BaseModel):
    """DTO для представления номера."""

    id: EntityId
    number: str
    type: str
    price_per_night: Decimal
    status: str
    amenities: List[str]
    capacity: int

    @classmethod
    def from_domain(cls, room: Room) -> "RoomDTO":
        """Создает DTO из доменной модели."""
        return cls(
            id=room.id,
            number=room.number,
            type=room.type.value,
            price_per_night=room.price_per_night,
            status=room.status.value,
            amenities=list(room.amenities),
            capacity=room.capacity,
        )


class RoomApplicationService:
    """Сервис приложения для работы с номерами."""

    def __init__(
        self,
        store: IDocumentStore,
        snapshot: HotelSnapshot,
        event_bus: IEventBus,
        logger: ILogger,
    ):
        self._store = store
        self._snapshot = snapshot
        self._event_bus = event_bus
        self._logger = logger

    def list_rooms(self) -> List[RoomDTO]:
        return [RoomDTO.from_domain(room) for room in self._snapshot.rooms]

    def get_room(self, room_id: EntityId) -> RoomDTO:
        return RoomDTO.from_domain(self._snapshot.rooms.get(room_id))

    def toggle_room_status(self, room_id: EntityId, actor: Optional[str] = None) -> Room:
        """Переводит номер в следующий статус уборки по циклу."""
        room = self._snapshot.rooms.get(room_id)
        advanced = RoomStatusCycle.advance(room)
        self._write_status(room, advanced.status, actor)
        return advanced

    def set_status(
        self, room_id: EntityId, status: HousekeepingStatus, actor: Optional[str] = None
    ) -> Room:
        """Устанавливает статус уборки напрямую (например, DIRTY после выезда)."""
        room = self._snapshot.rooms.get(room_id)
        if room.status == status:
            return room
        self._write_status(room, status, actor)
        return room.model_copy(update={"status": status})

    def update_room(self, command: UpdateRoomCommand, actor: Optional[str] = None) -> Room:
        """Редактирует цену, удобства, тип и вместимость номера."""
        room = self._snapshot.rooms.get(command.room_id)
        changes = command.model_dump(exclude={"room_id"}, exclude_none=True)
        if not changes:
            return room

        updated = build_model(Room, {**room.model_dump(), **changes})
        self._store.update(
            ROOMS, room.id, updated.model_dump(mode="json", include=set(changes))
        )
        self._logger.info("Room updated", room_id=room.id, fields=sorted(changes))
        self._event_bus.publish(
            RoomUpdated(room_id=room.id, changed_fields=sorted(changes), actor=actor)
        )
        return updated

    def _write_status(
        self, room: Room, status: HousekeepingStatus, actor: Optional[str]
    ) -> None:
        self._store.update(ROOMS, room.id, {"status": status.value})
        self._logger.info(
            "Room status changed",
            room_id=room.id,
            previous=room.status.value,
            current=status.value,
        )
        self._event_bus.publish(
            RoomStatusAdvanced(
                room_id=room.id, previous=room.status, current=status, actor=actor
            )
        )


class RoomSeeder:
    """
    Заполняет пустую коллекцию номеров каталогом по умолчанию.

    Срабатывает один раз: после записи каталога хранилище пришлет
    непустой снимок, и дальнейшие вызовы ничего не делают.
    """

    def __init__(
        self,
        store: IDocumentStore,
        logger: ILogger,
        rooms: Optional[List[Room]] = None,
    ):
        self._store = store
        self._logger = logger
        self._rooms = list(SEED_ROOMS if rooms is None else rooms)
        self.seeded = False

    def attach(self) -> Unsubscribe:
        """
        Заполняет каталог сразу, если коллекция пуста, и подписывается.

        Ошибка первичного заполнения выбрасывается вызывающему коду.
        """
        self(self._store.documents(ROOMS))
        return self._store.subscribe(ROOMS, self)

    def __call__(self, documents: List[Document]) -> None:
        if documents or self.seeded:
            return
        if not self._rooms:
            raise ValidationError("Каталог номеров по умолчанию пуст")

        self._logger.info("Seeding rooms collection", rooms=len(self._rooms))
        written = 0
        try:
            for room in self._rooms:
                self._store.create(ROOMS, room.id, room.model_dump(mode="json"))
                written += 1
        except PersistenceError as exc:
            self._logger.error(
                "Seeding rooms collection failed",
                written=written,
                rooms=len(self._rooms),
                error=str(exc),
            )
            raise
        self.seeded = True
