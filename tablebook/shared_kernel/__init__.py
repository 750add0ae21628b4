"""
Общее ядро (Shared Kernel) для книги контактов и бронирований.

Содержит общие типы данных и утилиты, используемые в различных модулях.
"""

from .domain import (
    BookingNotFoundException,
    DomainEvent,
    # Исключения
    DomainException,
    DuplicateBookingException,
    DuplicatePersonException,
    NoFieldsProvidedException,
    PersonNotFoundException,
    StorageException,
    # Объекты-значения
    Phone,
    TagName,
    ValidationException,
    format_validation_error,
    # Утилиты
    now,
    today,
)

__all__ = [
    # Объекты-значения
    "Phone",
    "TagName",
    "DomainEvent",
    # Исключения
    "DomainException",
    "ValidationException",
    "NoFieldsProvidedException",
    "PersonNotFoundException",
    "DuplicatePersonException",
    "BookingNotFoundException",
    "DuplicateBookingException",
    "StorageException",
    # Утилиты
    "format_validation_error",
    "now",
    "today",
]
