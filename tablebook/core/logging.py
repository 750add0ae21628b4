"""
Логирование tablebook на structlog поверх стандартного logging.

Вывод подключается к логгеру пакета, а не к корневому: приложение,
встроившее tablebook, сохраняет свою настройку логирования.
В production пишет JSON, в разработке читаемый вывод в консоль.
"""

import logging
import sys
from typing import List, Optional

import structlog
from structlog.types import EventDict, Processor, WrappedLogger

from .config import Settings, get_settings

APP_LOGGER_NAME = "tablebook"


class AppContext:
    """Процессор, добавляющий к записи имя приложения и окружение."""

    def __init__(self, settings: Settings):
        self._app = settings.APP_NAME
        self._environment = settings.ENVIRONMENT

    def __call__(
        self, logger: WrappedLogger, method_name: str, event_dict: EventDict
    ) -> EventDict:
        event_dict.setdefault("app", self._app)
        event_dict.setdefault("env", self._environment)
        return event_dict


def _is_ours(handler: logging.Handler) -> bool:
    return isinstance(handler.formatter, structlog.stdlib.ProcessorFormatter)


def setup_logging(settings: Optional[Settings] = None) -> None:
    settings = settings or get_settings()
    production = settings.ENVIRONMENT == "production"

    shared_processors: List[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.StackInfoRenderer(),
    ]

    if production:
        shared_processors += [
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            AppContext(settings),
            structlog.processors.dict_tracebacks,
        ]
        # Сообщения на русском пишем без \u-экранирования
        renderer: Processor = structlog.processors.JSONRenderer(ensure_ascii=False)
    else:
        shared_processors.append(structlog.processors.TimeStamper(fmt="%H:%M:%S"))
        renderer = structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())

    structlog.configure(
        processors=[
            *shared_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                renderer,
            ]
        )
    )

    app_logger = logging.getLogger(APP_LOGGER_NAME)
    # Повторный вызов заменяет обработчик, а не добавляет второй
    for existing in [h for h in app_logger.handlers if _is_ours(h)]:
        app_logger.removeHandler(existing)
    app_logger.addHandler(handler)
    app_logger.setLevel(getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO))
    app_logger.propagate = False


def get_logger(name: str = APP_LOGGER_NAME) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)
