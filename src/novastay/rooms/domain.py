"""
Доменная модель контекста номеров.

Содержит номер отеля, каталог номеров (RoomRegistry) и цикл
статусов уборки (RoomStatusCycle). Статус уборки не зависит
от статусов бронирований.
"""

from collections import Counter
from decimal import Decimal
from enum import Enum
from typing import Dict, Iterable, Iterator, List, Optional, Tuple

from pydantic import BaseModel, Field

from ..shared_kernel import DomainEvent, EntityId, NotFoundError


class RoomType(str, Enum):
    """Категории номеров."""

    SINGLE = "Single"
    DOUBLE = "Double"
    SUITE = "Suite"
    DELUXE = "Deluxe"
    KING = "King Size"
    DELUXE_QUEEN = "Deluxe Queen"
    DELUXE_KING = "Deluxe King"
    QUEEN = "Queen Size"


class HousekeepingStatus(str, Enum):
    """Статусы уборки номера."""

    CLEAN = "CLEAN"
    DIRTY = "DIRTY"
    MAINTENANCE = "MAINTENANCE"


class Room(BaseModel):
    """Номер в отеле."""

    id: EntityId
    number: str  # Номер комнаты, он же ключ сортировки ("101", "405")
    type: RoomType
    price_per_night: Decimal = Field(..., ge=0)
    status: HousekeepingStatus = HousekeepingStatus.CLEAN
    amenities: List[str] = Field(default_factory=list)
    capacity: int = Field(..., gt=0)

    @property
    def sort_key(self) -> Tuple[int, int, str]:
        # Числовые номера идут первыми по значению, остальные - лексикографически
        if self.number.isdigit():
            return (0, int(self.number), self.number)
        return (1, 0, self.number)


class RoomStatusAdvanced(DomainEvent):
    """Событие смены статуса уборки."""

    room_id: EntityId
    previous: HousekeepingStatus
    current: HousekeepingStatus


class RoomUpdated(DomainEvent):
    """Событие редактирования номера (цена, удобства, тип, вместимость)."""

    room_id: EntityId
    changed_fields: List[str]


class RoomStatusCycle:
    """Цикл статусов уборки: CLEAN -> DIRTY -> MAINTENANCE -> CLEAN."""

    NEXT_STATUS: Dict[HousekeepingStatus, HousekeepingStatus] = {
        HousekeepingStatus.CLEAN: HousekeepingStatus.DIRTY,
        HousekeepingStatus.DIRTY: HousekeepingStatus.MAINTENANCE,
        HousekeepingStatus.MAINTENANCE: HousekeepingStatus.CLEAN,
    }

    @classmethod
    def next_status(cls, status: HousekeepingStatus) -> HousekeepingStatus:
        return cls.NEXT_STATUS[status]

    @classmethod
    def advance(cls, room: Room) -> Room:
        """Возвращает копию номера со следующим статусом уборки."""
        return room.model_copy(update={"status": cls.next_status(room.status)})


class RoomRegistry:
    """
    Каталог номеров для одного снимка хранилища.

    Номера упорядочены по номеру комнаты; каталог неизменяем,
    при каждом новом снимке строится заново.
    """

    def __init__(self, rooms: Iterable[Room] = ()):
        ordered = sorted(rooms, key=lambda room: room.sort_key)
        self._rooms: Dict[EntityId, Room] = {room.id: room for room in ordered}

    def __iter__(self) -> Iterator[Room]:
        return iter(self._rooms.values())

    def __len__(self) -> int:
        return len(self._rooms)

    def __contains__(self, room_id: object) -> bool:
        return room_id in self._rooms

    def get(self, room_id: EntityId) -> Room:
        if room_id not in self._rooms:
            raise NotFoundError("Номер", room_id)
        return self._rooms[room_id]

    def find(self, room_id: EntityId) -> Optional[Room]:
        return self._rooms.get(room_id)

    def find_by_number(self, number: str) -> Optional[Room]:
        return next((room for room in self if room.number == number), None)

    def count_by_status(self) -> Dict[HousekeepingStatus, int]:
        """Сводка по статусам уборки (для дашборда)."""
        counts = Counter(room.status for room in self)
        return {status: counts.get(status, 0) for status in HousekeepingStatus}


def _room(
    number: str,
    room_type: RoomType,
    price: int,
    status: HousekeepingStatus,
    amenities: List[str],
    capacity: int,
) -> Room:
    return Room(
        id=number,
        number=number,
        type=room_type,
        price_per_night=Decimal(price),
        status=status,
        amenities=amenities,
        capacity=capacity,
    )


_BASIC = ["Wifi", "TV"]
_STANDARD = ["Wifi", "TV", "AC"]
_BALCONY = ["Wifi", "TV", "AC", "Balcony"]

_CLEAN = HousekeepingStatus.CLEAN
_DIRTY = HousekeepingStatus.DIRTY
_MAINTENANCE = HousekeepingStatus.MAINTENANCE

# Каталог по умолчанию, записывается только в пустое хранилище
SEED_ROOMS: List[Room] = [
    # 1 этаж
    _room("101", RoomType.KING, 5000, _CLEAN, _STANDARD, 3),
    _room("102", RoomType.KING, 5000, _DIRTY, _STANDARD, 3),
    _room("103", RoomType.DELUXE_QUEEN, 3500, _CLEAN, _BASIC, 2),
    _room("104", RoomType.DELUXE_KING, 4500, _CLEAN, _BALCONY, 2),
    _room("105", RoomType.DELUXE_KING, 4500, _MAINTENANCE, _BALCONY, 2),
    # 2 этаж
    _room("201", RoomType.KING, 5000, _CLEAN, _STANDARD, 3),
    _room("202", RoomType.KING, 5000, _CLEAN, _STANDARD, 3),
    _room("203", RoomType.DELUXE_QUEEN, 3500, _DIRTY, _BASIC, 2),
    _room("204", RoomType.DELUXE_KING, 4500, _CLEAN, _BALCONY, 2),
    _room("205", RoomType.DELUXE_KING, 4500, _CLEAN, _BALCONY, 2),
    # 3 этаж
    _room("301", RoomType.KING, 5000, _CLEAN, _STANDARD, 3),
    _room("302", RoomType.KING, 5000, _CLEAN, _STANDARD, 3),
    _room("303", RoomType.DELUXE_QUEEN, 3500, _CLEAN, _BASIC, 2),
    _room("304", RoomType.DELUXE_KING, 4500, _DIRTY, _BALCONY, 2),
    _room("305", RoomType.DELUXE_KING, 4500, _CLEAN, _BALCONY, 2),
    # 4 этаж
    _room("401", RoomType.QUEEN, 3000, _CLEAN, _BASIC, 2),
    _room("402", RoomType.QUEEN, 3200, _CLEAN, _BASIC, 3),
    _room("403", RoomType.DELUXE_QUEEN, 3500, _CLEAN, _BASIC, 2),
    _room("404", RoomType.DELUXE_KING, 4500, _CLEAN, _BALCONY, 2),
    _room("405", RoomType.DELUXE_KING, 4500, _MAINTENANCE, _BALCONY, 2),
]
