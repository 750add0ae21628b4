"""
Интерфейсы (порты) для книги контактов и бронирований.
"""

from __future__ import annotations

from typing import Any, Callable, Optional, Protocol, Type, TypeVar

from ..shared_kernel import DomainEvent
from .domain import AddressBook, AddressBookSnapshot

T_Event = TypeVar("T_Event", bound=DomainEvent)


class ILogger(Protocol):
    """Интерфейс для логгера."""

    def info(self, message: str, **kwargs: Any) -> Any: ...
    def error(self, message: str, **kwargs: Any) -> Any: ...
    def warning(self, message: str, **kwargs: Any) -> Any: ...
    def debug(self, message: str, **kwargs: Any) -> Any: ...


class IEventBus(Protocol):
    """Интерфейс для шины событий."""

    def publish(self, event: DomainEvent) -> None: ...
    def subscribe(
        self, event_type: Type[T_Event], handler: Callable[[T_Event], None]
    ) -> None: ...


class IAddressBookStorage(Protocol):
    """Интерфейс хранилища снимков книги контактов."""

    def load(self) -> Optional[AddressBookSnapshot]: ...
    def save(self, snapshot: AddressBookSnapshot) -> None: ...


class IAddressBookUnitOfWork(Protocol):
    """Интерфейс Unit of Work: каждая команда выполняется в одной критической секции."""

    @property
    def address_book(self) -> AddressBook: ...
    @property
    def event_bus(self) -> IEventBus: ...

    def __enter__(self) -> IAddressBookUnitOfWork: ...
    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None: ...
    def commit(self) -> None: ...
    def rollback(self, keep: int = 0) -> None: ...
