"""
Доменная модель бронирований.

Содержит сущность Booking, её статусы, частичное обновление (BookingPatch),
выдачу идентификаторов и хранилище бронирований с проверкой уникальности.
"""

from datetime import date, datetime
from enum import Enum
from typing import Dict, Iterable, Iterator, List, Optional, Set

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from ..shared_kernel import (
    BookingNotFoundException,
    DomainEvent,
    DuplicateBookingException,
    TagName,
    ValidationException,
    format_validation_error,
    now,
)

# Максимальное число гостей в одном бронировании
MAX_PAX = 9999


class BookingStatus(str, Enum):
    """Статусы бронирования."""

    UPCOMING = "upcoming"
    COMPLETED = "completed"
    CANCELLED = "cancelled"

    @property
    def label(self) -> str:
        return self.value.capitalize()

    @classmethod
    def parse(cls, raw: str) -> "BookingStatus":
        """Разбирает статус без учета регистра."""
        try:
            return cls(raw.strip().lower())
        except ValueError:
            raise ValidationException(
                "Некорректный статус! Используйте UPCOMING, COMPLETED или CANCELLED."
            ) from None


class BookingIdAllocator:
    """Выдает монотонно возрастающие ID бронирований.

    Принадлежит хранилищу бронирований; доступ сериализует вызывающий код.
    """

    def __init__(self, start: int = 1) -> None:
        self._next = start

    def next(self) -> int:
        booking_id = self._next
        self._next += 1
        return booking_id

    def peek(self) -> int:
        return self._next

    def advance_past(self, booking_id: int) -> None:
        """Гарантирует, что все следующие ID будут больше booking_id."""
        self._next = max(self._next, booking_id + 1)

    def reset(self, start: int = 1) -> None:
        self._next = start


class BookingPatch(BaseModel):
    """Частичное обновление бронирования: None означает «не менять»."""

    model_config = ConfigDict(frozen=True)

    scheduled_at: Optional[datetime] = None
    pax: Optional[int] = Field(None, ge=1, le=MAX_PAX)
    remarks: Optional[str] = None
    tags: Optional[Set[TagName]] = None

    def present_fields(self) -> Dict[str, object]:
        """Возвращает только переданные поля."""
        return {
            name: getattr(self, name)
            for name in type(self).model_fields
            if getattr(self, name) is not None
        }

    def is_empty(self) -> bool:
        return not self.present_fields()


class Booking(BaseModel):
    """Бронирование столика."""

    model_config = ConfigDict(validate_assignment=True)

    id: int = Field(..., ge=1, frozen=True)
    # Ссылка на владельца по имени; None только во время импорта
    person_name: Optional[str] = None
    scheduled_at: datetime
    created_at: datetime = Field(default_factory=now, frozen=True)
    pax: int = Field(..., ge=1, le=MAX_PAX)
    remarks: str = ""
    status: BookingStatus = BookingStatus.UPCOMING
    tags: Set[TagName] = Field(default_factory=set)

    @classmethod
    def create(
        cls,
        booking_id: int,
        person_name: str,
        scheduled_at: datetime,
        pax: int,
        remarks: str = "",
        tags: Iterable[str] = (),
    ) -> "Booking":
        """Создает новое бронирование в статусе UPCOMING."""
        try:
            return cls(
                id=booking_id,
                person_name=person_name,
                scheduled_at=scheduled_at,
                pax=pax,
                remarks=remarks,
                tags=set(tags),
            )
        except ValidationError as e:
            raise ValidationException(format_validation_error(e)) from e

    @property
    def is_retired(self) -> bool:
        return self.status != BookingStatus.UPCOMING

    def falls_on(self, day: date) -> bool:
        return self.scheduled_at.date() == day

    def apply(self, patch: BookingPatch) -> None:
        """Применяет к бронированию только переданные в patch поля."""
        for name, value in patch.present_fields().items():
            setattr(self, name, set(value) if name == "tags" else value)

    def mark(self, status: BookingStatus) -> BookingStatus:
        """Меняет статус и возвращает прежний."""
        previous = self.status
        self.status = status
        return previous


def _chronological(bookings: Iterable[Booking]) -> List[Booking]:
    return sorted(bookings, key=lambda b: (b.scheduled_at, b.id))


class UniqueBookingList:
    """Хранилище бронирований, уникальных по ID."""

    def __init__(self, allocator: Optional[BookingIdAllocator] = None) -> None:
        self._bookings: Dict[int, Booking] = {}
        self._allocator = allocator or BookingIdAllocator()

    @property
    def allocator(self) -> BookingIdAllocator:
        return self._allocator

    def __iter__(self) -> Iterator[Booking]:
        return iter(self.as_list())

    def __len__(self) -> int:
        return len(self._bookings)

    def contains(self, booking_id: int) -> bool:
        return booking_id in self._bookings

    def get(self, booking_id: int) -> Optional[Booking]:
        return self._bookings.get(booking_id)

    def next_id(self) -> int:
        """ID, который получит следующее бронирование."""
        return self._allocator.peek()

    def allocate_id(self) -> int:
        """Выдает ID для нового бронирования."""
        return self._allocator.next()

    def add(self, booking: Booking) -> None:
        if booking.id in self._bookings:
            raise DuplicateBookingException(booking.id)
        self._bookings[booking.id] = booking
        self._allocator.advance_past(booking.id)

    def remove_by_id(self, booking_id: int) -> Booking:
        if booking_id not in self._bookings:
            raise BookingNotFoundException(booking_id)
        return self._bookings.pop(booking_id)

    def remove(self, booking: Booking) -> Booking:
        return self.remove_by_id(booking.id)

    def set_status(self, booking_id: int, status: BookingStatus) -> BookingStatus:
        booking = self._bookings.get(booking_id)
        if booking is None:
            raise BookingNotFoundException(booking_id)
        return booking.mark(status)

    def as_list(self) -> List[Booking]:
        return _chronological(self._bookings.values())

    def upcoming(self) -> List[Booking]:
        return _chronological(b for b in self._bookings.values() if not b.is_retired)

    def cancelled_or_completed(self) -> List[Booking]:
        return _chronological(b for b in self._bookings.values() if b.is_retired)

    def replace_all(self, bookings: Iterable[Booking]) -> None:
        """Полностью заменяет содержимое и сдвигает счетчик ID за максимум."""
        fresh: Dict[int, Booking] = {}
        for booking in bookings:
            if booking.id in fresh:
                raise DuplicateBookingException(booking.id)
            fresh[booking.id] = booking
        self._bookings = fresh
        if fresh:
            self._allocator.advance_past(max(fresh))

    def clear(self, bookings: Iterable[Booking]) -> None:
        """Удаляет ровно переданные бронирования; отсутствующие пропускает."""
        for booking in bookings:
            self._bookings.pop(booking.id, None)


# Доменные события бронирований


class BookingCreated(DomainEvent):
    """Событие создания бронирования."""

    booking_id: int
    person_name: str


class BookingEdited(DomainEvent):
    """Событие изменения полей бронирования."""

    booking_id: int
    changed_fields: List[str]


class BookingStatusChanged(DomainEvent):
    """Событие смены статуса."""

    booking_id: int
    previous: BookingStatus
    current: BookingStatus


class BookingDeleted(DomainEvent):
    """Событие удаления бронирования."""

    booking_id: int
    person_name: Optional[str] = None


class RetiredBookingsCleared(DomainEvent):
    """Событие очистки завершенных и отмененных бронирований."""

    booking_ids: List[int]
