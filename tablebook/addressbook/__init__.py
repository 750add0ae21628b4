"""
Книга контактов (AddressBook): контакты, их бронирования и команды над ними.

Отвечает за:
- Согласованность контактов и бронирований
- Фильтрацию бронирований
- Выполнение текстовых команд
"""

from .application import (
    AddBookingCommand,
    BookingApplicationService,
    ClearBookingsCommand,
    CommandResult,
    DeleteBookingCommand,
    DisplayedBookingList,
    EditBookingCommand,
    FilterBookingsCommand,
    ListBookingsCommand,
    MarkBookingCommand,
    TodayCommand,
)
from .domain import AddressBook, AddressBookSnapshot, PersonAdded, PersonRemoved
from .infrastructure import (
    AddressBookUnitOfWork,
    InMemoryEventBus,
    JsonFileAddressBookStorage,
)
from .parser import BookingCommandParser, CommandDispatcher
from .query import BookingFilterEngine, BookingQuery, FilterResult

__all__ = [
    # Домен
    "AddressBook",
    "AddressBookSnapshot",
    "PersonAdded",
    "PersonRemoved",
    # Запросы
    "BookingQuery",
    "BookingFilterEngine",
    "FilterResult",
    # Команды
    "AddBookingCommand",
    "EditBookingCommand",
    "DeleteBookingCommand",
    "MarkBookingCommand",
    "FilterBookingsCommand",
    "ListBookingsCommand",
    "ClearBookingsCommand",
    "TodayCommand",
    "CommandResult",
    "DisplayedBookingList",
    "BookingApplicationService",
    "BookingCommandParser",
    "CommandDispatcher",
    # Инфраструктура
    "AddressBookUnitOfWork",
    "InMemoryEventBus",
    "JsonFileAddressBookStorage",
]
