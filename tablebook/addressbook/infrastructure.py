"""
Инфраструктурный слой книги контактов.

Содержит реализации портов: хранение снимков в JSON-файле,
шину событий в памяти и Unit of Work с эксклюзивной блокировкой.
"""

import threading
from pathlib import Path
from typing import Callable, Dict, List, Optional, Type

from pydantic import ValidationError

from ..core.logging import get_logger
from ..shared_kernel import (
    DomainEvent,
    StorageException,
    ValidationException,
    format_validation_error,
)
from . import interfaces as ports
from .domain import AddressBook, AddressBookSnapshot


class JsonFileAddressBookStorage(ports.IAddressBookStorage):
    """Хранилище снимков книги контактов в JSON-файле."""

    def __init__(self, file_path: str, logger: Optional[ports.ILogger] = None):
        """
        Инициализирует хранилище.

        Args:
            file_path: Путь к JSON-файлу с данными
            logger: Логгер; по умолчанию логгер модуля
        """
        self._file_path = Path(file_path)
        self._logger = logger or get_logger(__name__)

    @property
    def file_path(self) -> Path:
        return self._file_path

    def load(self) -> Optional[AddressBookSnapshot]:
        """Загружает снимок. Возвращает None, если файла нет или он пуст."""
        if not self._file_path.exists():
            self._logger.info("Файл данных не найден", path=str(self._file_path))
            return None

        raw_data = self._file_path.read_text(encoding="utf-8")
        if not raw_data.strip():
            return None

        try:
            snapshot = AddressBookSnapshot.model_validate_json(raw_data)
        except ValidationError as e:
            raise ValidationException(
                f"Файл {self._file_path} поврежден: {format_validation_error(e)}"
            ) from e

        self._logger.info(
            "Данные загружены",
            path=str(self._file_path),
            persons=len(snapshot.persons),
            bookings=len(snapshot.bookings),
        )
        return snapshot

    def save(self, snapshot: AddressBookSnapshot) -> None:
        """Сохраняет снимок в файл."""
        try:
            # Создаем директорию, если она не существует
            self._file_path.parent.mkdir(parents=True, exist_ok=True)
            self._file_path.write_text(
                snapshot.model_dump_json(indent=2), encoding="utf-8"
            )
        except OSError as e:
            self._logger.error(
                "Не удалось сохранить данные", path=str(self._file_path), exc_info=True
            )
            raise StorageException(
                f"Не удалось сохранить данные в {self._file_path}: {e.strerror or e}"
            ) from e
        self._logger.debug("Данные сохранены", path=str(self._file_path))


class InMemoryEventBus(ports.IEventBus):
    """Реализация шины событий в памяти."""

    def __init__(self, logger: Optional[ports.ILogger] = None):
        self._subscribers: Dict[Type[DomainEvent], List[Callable]] = {}
        self._logger = logger or get_logger(__name__)

    def publish(self, event: DomainEvent) -> None:
        """Публикует событие."""
        event_type = type(event)
        handlers = self._subscribers.get(event_type, [])
        if not handlers:
            self._logger.debug(
                "Нет подписчиков на событие", event_type=event.event_type
            )
            return

        self._logger.info("Публикация события", event_type=event.event_type)

        for handler in handlers:
            try:
                handler(event)
            except Exception:
                self._logger.error(
                    "Ошибка в обработчике события",
                    event_type=event.event_type,
                    exc_info=True,
                )

    def subscribe(self, event_type: Type[DomainEvent], handler: Callable) -> None:
        """Подписывает обработчик на события указанного типа."""
        self._subscribers.setdefault(event_type, []).append(handler)
        self._logger.debug("Обработчик подписан", event_type=event_type.__name__)


class AddressBookUnitOfWork(ports.IAddressBookUnitOfWork):
    """Единица работы: эксклюзивный доступ к книге контактов на время команды.

    При фиксации публикует накопленные доменные события и, если задано
    хранилище, сохраняет снимок. При откате события отбрасываются.
    """

    def __init__(
        self,
        address_book: Optional[AddressBook] = None,
        event_bus: Optional[ports.IEventBus] = None,
        storage: Optional[ports.IAddressBookStorage] = None,
        logger: Optional[ports.ILogger] = None,
    ):
        self._address_book = address_book or AddressBook()
        self._logger = logger or get_logger(__name__)
        self._event_bus = event_bus or InMemoryEventBus(self._logger)
        self._storage = storage
        # Операции затрагивают и контакты, и бронирования: одна блокировка на всё
        self._lock = threading.RLock()
        # Число событий в агрегате на входе в каждый вложенный блок
        self._marks: List[int] = []

    @property
    def address_book(self) -> AddressBook:
        return self._address_book

    @property
    def event_bus(self) -> ports.IEventBus:
        return self._event_bus

    def commit(self) -> None:
        """Фиксирует изменения: сохраняет снимок и публикует события."""
        if not self._address_book.pending_event_count():
            return

        # Пока снимок не сохранен, события остаются в агрегате
        if self._storage is not None:
            self._storage.save(self._address_book.export_snapshot())

        events = self._address_book.pull_domain_events()
        for event in events:
            self._event_bus.publish(event)
        self._logger.info("AddressBookUnitOfWork committed", events=len(events))

    def rollback(self, keep: int = 0) -> None:
        """Откатывает изменения: отбрасывает события, накопленные после keep.

        События ранее не сохраненных команд остаются до следующей фиксации.
        """
        discarded = self._address_book.discard_domain_events(keep)
        self._logger.warning(
            "AddressBookUnitOfWork rolled back", discarded_events=len(discarded)
        )

    def __enter__(self) -> "AddressBookUnitOfWork":
        self._lock.acquire()
        self._marks.append(self._address_book.pending_event_count())
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        try:
            keep = self._marks.pop()
            if exc_type is None:
                self.commit()
            else:
                self.rollback(keep)
        finally:
            self._lock.release()
        return False  # Пробрасываем исключение дальше, если оно было
