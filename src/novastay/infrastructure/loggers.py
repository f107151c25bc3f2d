"""
Реализации порта ILogger.
"""

import json
import logging
from typing import Any, Optional

from ..interfaces import ILogger

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def configure_logging(level: str = "INFO") -> None:
    """Настраивает корневой логгер приложения."""
    logging.basicConfig(level=level.upper(), format=LOG_FORMAT)
    logging.getLogger("novastay").setLevel(level.upper())


class StdLibLogger(ILogger):
    """Логгер поверх модуля logging; контекст пишется в сообщение как JSON."""

    def __init__(self, name: str = "novastay", logger: Optional[logging.Logger] = None):
        self._logger = logger or logging.getLogger(name)

    def _log(self, level: int, message: str, context: dict) -> None:
        if not self._logger.isEnabledFor(level):
            return
        if context:
            message = f"{message} | {json.dumps(context, default=str, ensure_ascii=False)}"
        self._logger.log(level, message)

    def info(self, message: str, **kwargs: Any) -> None:
        self._log(logging.INFO, message, kwargs)

    def error(self, message: str, **kwargs: Any) -> None:
        self._log(logging.ERROR, message, kwargs)

    def warning(self, message: str, **kwargs: Any) -> None:
        self._log(logging.WARNING, message, kwargs)

    def debug(self, message: str, **kwargs: Any) -> None:
        self._log(logging.DEBUG, message, kwargs)
