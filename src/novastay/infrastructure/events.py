"""
Шина доменных событий в памяти и обработчик аудита.
"""

from typing import Callable, Dict, List, Optional, Type

from ..interfaces import IEventBus, ILogger
from ..shared_kernel import DomainEvent
from .loggers import StdLibLogger


class InMemoryEventBus(IEventBus):
    """Реализация шины событий в памяти."""

    def __init__(self, logger: Optional[ILogger] = None):
        self._subscribers: Dict[Type[DomainEvent], List[Callable]] = {}
        self._logger = logger or StdLibLogger("novastay.events")

    def publish(self, event: DomainEvent) -> None:
        """Публикует событие всем подписчикам его типа и базовых типов."""
        handlers = [
            handler
            for event_type, subscribed in self._subscribers.items()
            if isinstance(event, event_type)
            for handler in subscribed
        ]
        if not handlers:
            self._logger.debug(f"No subscribers for event type {event.event_type}")
            return

        for handler in handlers:
            try:
                handler(event)
            except Exception as e:
                self._logger.error(
                    f"Error in event handler for {event.event_type}",
                    error=str(e),
                    event=event.model_dump(mode="json"),
                )

    def subscribe(self, event_type: Type[DomainEvent], handler: Callable) -> None:
        """Подписывает обработчик на события указанного типа."""
        self._subscribers.setdefault(event_type, []).append(handler)
        self._logger.debug(f"Subscribed handler to {event_type.__name__} events")


def audit_log_handler(logger: ILogger) -> Callable[[DomainEvent], None]:
    """Обработчик, записывающий каждое доменное событие в журнал аудита."""

    def handle(event: DomainEvent) -> None:
        logger.info(f"Audit: {event.event_type}", event=event.model_dump(mode="json"))

    return handle
