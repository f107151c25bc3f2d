"""
Инфраструктурный слой.

Содержит реализации портов, зависимые от конкретных технологий:
хранилища документов, логгер, шину событий и генератор писем.
"""

from .drafts import DraftRequests, TemplateDraftGenerator
from .events import InMemoryEventBus, audit_log_handler
from .loggers import StdLibLogger, configure_logging
from .store import InMemoryDocumentStore, JsonFileDocumentStore

__all__ = [
    "DraftRequests",
    "TemplateDraftGenerator",
    "InMemoryEventBus",
    "audit_log_handler",
    "StdLibLogger",
    "configure_logging",
    "InMemoryDocumentStore",
    "JsonFileDocumentStore",
]
