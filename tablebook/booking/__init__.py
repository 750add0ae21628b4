"""
Модуль бронирований (Booking).

Отвечает за:
- Сущность бронирования и его статусы
- Выдачу уникальных ID
- Хранилище бронирований с представлениями по статусу
"""

from .domain import (
    MAX_PAX,
    Booking,
    BookingCreated,
    BookingDeleted,
    BookingEdited,
    BookingIdAllocator,
    BookingPatch,
    BookingStatus,
    BookingStatusChanged,
    RetiredBookingsCleared,
    UniqueBookingList,
)

__all__ = [
    "MAX_PAX",
    "Booking",
    "BookingIdAllocator",
    "BookingPatch",
    "BookingStatus",
    "UniqueBookingList",
    # События
    "BookingCreated",
    "BookingEdited",
    "BookingStatusChanged",
    "BookingDeleted",
    "RetiredBookingsCleared",
]
