"""
Интерфейсы (порты), от которых зависит ядро распределения номеров.

Ядро знает только об этих протоколах и никогда не обращается
к конкретному хранилищу или внешнему сервису напрямую.
"""

from __future__ import annotations

from enum import Enum
from typing import (
    TYPE_CHECKING,
    Any,
    Callable,
    Dict,
    List,
    Protocol,
    Type,
    TypeVar,
    runtime_checkable,
)

from .shared_kernel import DomainEvent, EntityId

if TYPE_CHECKING:
    from .booking.domain import Booking
    from .rooms.domain import Room

T_Event = TypeVar("T_Event", bound=DomainEvent)

Document = Dict[str, Any]
SnapshotListener = Callable[[List[Document]], None]
Unsubscribe = Callable[[], None]
CreateGuard = Callable[[List[Document]], None]

ROOMS = "rooms"
BOOKINGS = "bookings"


class ILogger(Protocol):
    """Интерфейс для логгера."""

    def info(self, message: str, **kwargs: Any) -> None: ...
    def error(self, message: str, **kwargs: Any) -> None: ...
    def warning(self, message: str, **kwargs: Any) -> None: ...
    def debug(self, message: str, **kwargs: Any) -> None: ...


class IEventBus(Protocol):
    """Интерфейс для шины событий."""

    def publish(self, event: DomainEvent) -> None: ...
    def subscribe(
        self, event_type: Type[T_Event], handler: Callable[[T_Event], None]
    ) -> None: ...


@runtime_checkable
class IDocumentStore(Protocol):
    """
    Общее изменяемое хранилище документов с живой подпиской.

    Подписчик получает полный набор документов коллекции при подписке
    и после каждой фиксации любым клиентом. Записи затрагивают один
    документ; атомарность между документами не гарантируется.
    """

    def subscribe(self, collection: str, listener: SnapshotListener) -> Unsubscribe: ...
    def documents(self, collection: str) -> List[Document]: ...
    def create(self, collection: str, doc_id: EntityId, document: Document) -> None: ...
    def update(self, collection: str, doc_id: EntityId, fields: Document) -> None: ...
    def delete(self, collection: str, doc_id: EntityId) -> None: ...


@runtime_checkable
class ISupportsConditionalCreate(Protocol):
    """Хранилище, умеющее создавать документ только если guard не возразил."""

    def create_if(
        self,
        collection: str,
        doc_id: EntityId,
        document: Document,
        guard: CreateGuard,
    ) -> None: ...


class DraftKind(str, Enum):
    """Виды писем, которые умеет готовить внешний генератор."""

    CONFIRMATION = "CONFIRMATION"
    WELCOME = "WELCOME"
    INVOICE = "INVOICE"


class IDraftGenerator(Protocol):
    """Внешний генератор текстов писем гостю (например, LLM)."""

    async def generate(self, booking: Booking, room: Room, kind: DraftKind) -> str: ...
