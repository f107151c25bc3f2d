"""
Конфигурация тестов для pytest.
Добавляет каталог src в PYTHONPATH и готовит общие фикстуры.
"""
import sys
from decimal import Decimal
from pathlib import Path
from typing import List

import pytest

# Добавляем каталог с исходниками в PYTHONPATH
root_dir = str(Path(__file__).parent.parent / "src")
if root_dir not in sys.path:
    sys.path.insert(0, root_dir)

from novastay.booking.application import BookingApplicationService  # noqa: E402
from novastay.booking.domain import Guest  # noqa: E402
from novastay.config import Settings  # noqa: E402
from novastay.infrastructure import (  # noqa: E402
    InMemoryDocumentStore,
    InMemoryEventBus,
    StdLibLogger,
)
from novastay.interfaces import ROOMS  # noqa: E402
from novastay.reporting.application import ReportingService  # noqa: E402
from novastay.rooms.application import RoomApplicationService  # noqa: E402
from novastay.rooms.domain import HousekeepingStatus, Room, RoomType  # noqa: E402
from novastay.shared_kernel import DomainEvent  # noqa: E402
from novastay.snapshot import HotelSnapshot  # noqa: E402


def make_room(number: str, price: int = 5000, status=HousekeepingStatus.CLEAN) -> Room:
    return Room(
        id=number,
        number=number,
        type=RoomType.KING,
        price_per_night=Decimal(price),
        status=status,
        amenities=["Wifi", "TV"],
        capacity=2,
    )


def make_guest(name: str = "Иван Иванов", phone: str = "+79001234567") -> Guest:
    return Guest(full_name=name, email="guest@example.com", phone=phone)


@pytest.fixture
def settings() -> Settings:
    """Настройки без .env-файла и без автозаполнения каталога."""
    return Settings(_env_file=None, seed_rooms_on_empty=False)


@pytest.fixture
def logger() -> StdLibLogger:
    return StdLibLogger("novastay.tests")


@pytest.fixture
def rooms() -> List[Room]:
    return [make_room("101", 5000), make_room("102", 3500), make_room("201", 4500)]


@pytest.fixture
def store(rooms, logger) -> InMemoryDocumentStore:
    """Хранилище в памяти с небольшим каталогом номеров."""
    store = InMemoryDocumentStore(logger)
    for room in rooms:
        store.create(ROOMS, room.id, room.model_dump(mode="json"))
    return store


@pytest.fixture
def snapshot(store, logger) -> HotelSnapshot:
    snapshot = HotelSnapshot(logger)
    snapshot.attach(store)
    return snapshot


@pytest.fixture
def event_bus(logger) -> InMemoryEventBus:
    return InMemoryEventBus(logger)


@pytest.fixture
def published(event_bus) -> List[DomainEvent]:
    """Список всех опубликованных доменных событий."""
    events: List[DomainEvent] = []
    event_bus.subscribe(DomainEvent, events.append)
    return events


@pytest.fixture
def room_service(store, snapshot, event_bus, logger) -> RoomApplicationService:
    return RoomApplicationService(store, snapshot, event_bus, logger)


@pytest.fixture
def booking_service(
    store, snapshot, event_bus, logger, settings, room_service
) -> BookingApplicationService:
    return BookingApplicationService(
        store, snapshot, event_bus, logger, settings, rooms=room_service
    )


@pytest.fixture
def reporting_service(snapshot, settings) -> ReportingService:
    return ReportingService(snapshot, settings)
