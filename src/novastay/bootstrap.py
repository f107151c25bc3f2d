from typing import Any, Dict, Optional

from .booking.application import BookingApplicationService
from .config import Settings, get_settings
from .infrastructure import (
    DraftRequests,
    InMemoryDocumentStore,
    InMemoryEventBus,
    JsonFileDocumentStore,
    StdLibLogger,
    TemplateDraftGenerator,
    audit_log_handler,
    configure_logging,
)
from .interfaces import IDocumentStore, IDraftGenerator
from .reporting.application import LiveTapeChart, ReportingService
from .rooms.application import RoomApplicationService, RoomSeeder
from .shared_kernel import DomainEvent
from .snapshot import HotelSnapshot


def bootstrap_app(
    settings: Optional[Settings] = None,
    store: Optional[IDocumentStore] = None,
    draft_generator: Optional[IDraftGenerator] = None,
) -> Dict[str, Any]:
    """Создает и настраивает все компоненты приложения."""
    settings = settings or get_settings()
    configure_logging(settings.log_level)
    logger = StdLibLogger("novastay")

    # 1. Хранилище документов: файлы, если задан каталог, иначе память
    if store is None:
        if settings.data_dir is not None:
            store = JsonFileDocumentStore(settings.data_dir, StdLibLogger("novastay.store"))
        else:
            store = InMemoryDocumentStore(StdLibLogger("novastay.store"))

    # 2. Шина событий и журнал аудита
    event_bus = InMemoryEventBus(StdLibLogger("novastay.events"))
    event_bus.subscribe(DomainEvent, audit_log_handler(StdLibLogger("novastay.audit")))

    # 3. Каталог по умолчанию для пустого хранилища (до подписки снимка)
    seeder = None
    if settings.seed_rooms_on_empty:
        seeder = RoomSeeder(store, logger)
        seeder.attach()

    # 4. Снимок, обновляемый живой подпиской
    snapshot = HotelSnapshot(logger)
    snapshot.attach(store)

    # 5. Сервисы приложения
    room_service = RoomApplicationService(store, snapshot, event_bus, logger)
    booking_service = BookingApplicationService(
        store, snapshot, event_bus, logger, settings, rooms=room_service
    )
    reporting_service = ReportingService(snapshot, settings)
    tape_chart = LiveTapeChart(reporting_service, snapshot, settings)
    tape_chart.attach()

    drafts = DraftRequests(
        draft_generator or TemplateDraftGenerator(settings.hotel_name, settings.currency),
        StdLibLogger("novastay.drafts"),
    )

    # Возвращаем настроенные компоненты
    return {
        "settings": settings,
        "store": store,
        "event_bus": event_bus,
        "snapshot": snapshot,
        "seeder": seeder,
        "room_service": room_service,
        "booking_service": booking_service,
        "reporting_service": reporting_service,
        "tape_chart": tape_chart,
        "drafts": drafts,
    }
