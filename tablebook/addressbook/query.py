"""
Фильтрация бронирований по телефону, дате и статусу.
"""

from dataclasses import dataclass
from datetime import date
from typing import Callable, List, Optional

from pydantic import BaseModel, ConfigDict

from ..booking import Booking, BookingStatus
from ..shared_kernel import Phone
from .domain import AddressBook

BookingPredicate = Callable[[Booking], bool]


def show_all(booking: Booking) -> bool:
    return True


class BookingQuery(BaseModel):
    """Набор необязательных условий; условия объединяются через И."""

    model_config = ConfigDict(frozen=True)

    phone: Optional[Phone] = None
    on_date: Optional[date] = None
    status: Optional[BookingStatus] = None

    def is_empty(self) -> bool:
        return self.phone is None and self.on_date is None and self.status is None

    def describe(self) -> str:
        """Описание, собранное ровно из переданных условий."""
        parts = []
        if self.phone is not None:
            parts.append(f"телефон {self.phone}")
        if self.on_date is not None:
            parts.append(f"дата {self.on_date.isoformat()}")
        if self.status is not None:
            parts.append(f"статус {self.status.label}")
        return ", ".join(parts) if parts else "все бронирования"


@dataclass(frozen=True)
class FilterResult:
    """Результат фильтрации."""

    bookings: List[Booking]
    description: str
    predicate: BookingPredicate


class BookingFilterEngine:
    """Строит предикат по запросу и применяет его к книге контактов."""

    def __init__(self, address_book: AddressBook):
        self._address_book = address_book

    def build_predicate(self, query: BookingQuery) -> BookingPredicate:
        predicates: List[BookingPredicate] = []

        if query.phone is not None:
            # Контакт должен существовать, иначе PersonNotFoundException
            owner_name = self._address_book.find_person_by_phone(query.phone).name
            predicates.append(lambda b: b.person_name == owner_name)
        if query.on_date is not None:
            on_date = query.on_date
            predicates.append(lambda b: b.falls_on(on_date))
        if query.status is not None:
            status = query.status
            predicates.append(lambda b: b.status == status)

        if not predicates:
            return show_all
        return lambda b: all(p(b) for p in predicates)

    def run(self, query: BookingQuery) -> FilterResult:
        predicate = self.build_predicate(query)
        return FilterResult(
            bookings=[b for b in self._address_book.bookings() if predicate(b)],
            description=query.describe(),
            predicate=predicate,
        )
