"""
Агрегат «Книга контактов» (AddressBook).

Владеет списком контактов и хранилищем бронирований и следит за тем,
чтобы обратные ссылки Person.booking_ids всегда совпадали с бронированиями
в хранилище. Любая мутация, затрагивающая обе коллекции, сначала проверяет
все условия и только потом меняет состояние.
"""

from datetime import datetime
from typing import Dict, Iterable, List, Optional

from pydantic import BaseModel, Field

from ..booking import (
    Booking,
    BookingCreated,
    BookingDeleted,
    BookingEdited,
    BookingPatch,
    BookingStatus,
    BookingStatusChanged,
    RetiredBookingsCleared,
    UniqueBookingList,
)
from ..contacts import Person, UniquePersonList
from ..shared_kernel import (
    BookingNotFoundException,
    DomainEvent,
    NoFieldsProvidedException,
    Phone,
    PersonNotFoundException,
    ValidationException,
)


class PersonAdded(DomainEvent):
    """Событие добавления контакта."""

    name: str


class PersonRemoved(DomainEvent):
    """Событие удаления контакта вместе с его бронированиями."""

    name: str
    booking_ids: List[int]


class AddressBookSnapshot(BaseModel):
    """Снимок состояния для выгрузки и загрузки."""

    persons: List[Person] = Field(default_factory=list)
    bookings: List[Booking] = Field(default_factory=list)


class AddressBook:
    """Агрегат, объединяющий контакты и их бронирования."""

    def __init__(self) -> None:
        self._persons = UniquePersonList()
        self._bookings = UniqueBookingList()
        self._events: List[DomainEvent] = []

    @classmethod
    def from_snapshot(cls, snapshot: AddressBookSnapshot) -> "AddressBook":
        address_book = cls()
        address_book.reset_data(snapshot.persons, snapshot.bookings)
        return address_book

    # ------------------------------------------------------------------
    # Доменные события
    # ------------------------------------------------------------------

    def pending_event_count(self) -> int:
        return len(self._events)

    def discard_domain_events(self, keep: int = 0) -> List[DomainEvent]:
        """Отбрасывает события, записанные после первых keep."""
        discarded = self._events[keep:]
        del self._events[keep:]
        return discarded

    def pull_domain_events(self) -> List[DomainEvent]:
        events = list(self._events)
        self._events.clear()
        return events

    def _record(self, event: DomainEvent) -> None:
        self._events.append(event)

    # ------------------------------------------------------------------
    # Загрузка и выгрузка
    # ------------------------------------------------------------------

    def export_snapshot(self) -> AddressBookSnapshot:
        return AddressBookSnapshot(
            persons=[p.model_copy(deep=True) for p in self._persons],
            bookings=[b.model_copy(deep=True) for b in self._bookings],
        )

    def reset_data(
        self, persons: Iterable[Person], bookings: Iterable[Booking]
    ) -> None:
        """Заменяет все данные. Владельцы бронирований восстанавливаются
        по Person.booking_ids; счетчик ID сдвигается за максимальный ID.
        """
        persons = [p.model_copy(deep=True) for p in persons]
        bookings = [b.model_copy(deep=True) for b in bookings]

        new_persons = UniquePersonList()
        new_persons.replace_all(persons)
        # Проверяем на отдельном хранилище, чтобы не сдвинуть общий счетчик ID
        staged = UniqueBookingList()
        staged.replace_all(bookings)

        owners: Dict[int, str] = {}
        for person in persons:
            for booking_id in person.booking_ids:
                if not staged.contains(booking_id):
                    raise ValidationException(
                        f"Контакт {person.name} ссылается на отсутствующее "
                        f"бронирование {booking_id}."
                    )
                if booking_id in owners:
                    raise ValidationException(
                        f"Бронирование {booking_id} принадлежит сразу "
                        f"{owners[booking_id]} и {person.name}."
                    )
                owners[booking_id] = person.name

        unowned = [b.id for b in bookings if b.id not in owners]
        if unowned:
            raise ValidationException(
                f"У бронирований {unowned} нет владельца."
            )

        for booking in bookings:
            booking.person_name = owners[booking.id]
        new_bookings = UniqueBookingList(self._bookings.allocator)
        new_bookings.replace_all(bookings)
        self._persons = new_persons
        self._bookings = new_bookings

    # ------------------------------------------------------------------
    # Операции с контактами
    # ------------------------------------------------------------------

    def persons(self) -> List[Person]:
        return list(self._persons)

    def has_person(self, person: Person) -> bool:
        return self._persons.contains(person)

    def add_person(self, person: Person) -> None:
        self._persons.add(person)
        self._record(PersonAdded(name=person.name))

    def find_person_by_phone(self, phone: Phone) -> Person:
        person = self._persons.find_by_phone(phone)
        if person is None:
            raise PersonNotFoundException(
                f"Контакт с телефоном {phone} не найден."
            )
        return person

    def set_person(self, target: Person, edited: Person) -> None:
        """Заменяет контакт, перенося на него обратные ссылки на бронирования."""
        stored = self._require_person(target)
        self._persons.set_person(stored, edited)
        edited.booking_ids = set(stored.booking_ids)
        for booking_id in edited.booking_ids:
            self._bookings.get(booking_id).person_name = edited.name

    def remove_person(self, person: Person) -> List[Booking]:
        """Удаляет контакт и каскадно все его бронирования."""
        stored = self._require_person(person)
        missing = [i for i in stored.booking_ids if not self._bookings.contains(i)]
        assert not missing, f"{stored.name} ссылается на удаленные {missing}"

        removed = [self._bookings.remove_by_id(i) for i in sorted(stored.booking_ids)]
        self._persons.remove(stored)
        stored.booking_ids.clear()
        self._record(
            PersonRemoved(name=stored.name, booking_ids=[b.id for b in removed])
        )
        return removed

    def _require_person(self, person: Person) -> Person:
        stored = self._persons.find_by_name(person.name)
        if stored is None:
            raise PersonNotFoundException(f"Контакт {person.name} не найден.")
        return stored

    # ------------------------------------------------------------------
    # Операции с бронированиями
    # ------------------------------------------------------------------

    def has_booking(self, booking_id: int) -> bool:
        return self._bookings.contains(booking_id)

    def get_booking(self, booking_id: int) -> Optional[Booking]:
        return self._bookings.get(booking_id)

    def add_booking(
        self,
        phone: Phone,
        scheduled_at: datetime,
        pax: int,
        remarks: str = "",
        tags: Iterable[str] = (),
    ) -> Booking:
        """Создает бронирование для контакта с указанным телефоном."""
        # Сначала ищем контакт и валидируем данные, потом меняем состояние
        person = self.find_person_by_phone(phone)
        booking = Booking.create(
            booking_id=self._bookings.next_id(),
            person_name=person.name,
            scheduled_at=scheduled_at,
            pax=pax,
            remarks=remarks,
            tags=tags,
        )
        # ID выдается только после успешной валидации
        booking_id = self._bookings.allocate_id()
        assert booking_id == booking.id, "Счетчик ID сдвинулся во время создания"
        self._bookings.add(booking)
        person.add_booking_id(booking.id)
        self._record(BookingCreated(booking_id=booking.id, person_name=person.name))
        return booking

    def delete_booking(self, booking_id: int) -> Booking:
        booking = self._require_booking(booking_id)
        owner = self.owner_of(booking)
        self._bookings.remove_by_id(booking_id)
        owner.remove_booking_id(booking_id)
        self._record(BookingDeleted(booking_id=booking_id, person_name=owner.name))
        return booking

    def edit_booking(self, booking_id: int, patch: BookingPatch) -> Booking:
        booking = self._require_booking(booking_id)
        if patch.is_empty():
            raise NoFieldsProvidedException()
        booking.apply(patch)
        self._record(
            BookingEdited(
                booking_id=booking_id, changed_fields=sorted(patch.present_fields())
            )
        )
        return booking

    def mark_booking(self, booking_id: int, status: BookingStatus) -> Booking:
        booking = self._require_booking(booking_id)
        previous = self._bookings.set_status(booking_id, status)
        self._record(
            BookingStatusChanged(
                booking_id=booking_id, previous=previous, current=status
            )
        )
        return booking

    def clear_retired_bookings(self) -> int:
        """Удаляет завершенные и отмененные бронирования. Возвращает их число."""
        retired = self._bookings.cancelled_or_completed()
        if not retired:
            return 0
        owners = [self.owner_of(b) for b in retired]
        for booking, owner in zip(retired, owners):
            owner.remove_booking_id(booking.id)
        self._bookings.clear(retired)
        self._record(RetiredBookingsCleared(booking_ids=[b.id for b in retired]))
        return len(retired)

    def _require_booking(self, booking_id: int) -> Booking:
        booking = self._bookings.get(booking_id)
        if booking is None:
            raise BookingNotFoundException(booking_id)
        return booking

    # ------------------------------------------------------------------
    # Представления только для чтения
    # ------------------------------------------------------------------

    def bookings(self) -> List[Booking]:
        return self._bookings.as_list()

    def upcoming_bookings(self) -> List[Booking]:
        return self._bookings.upcoming()

    def retired_bookings(self) -> List[Booking]:
        return self._bookings.cancelled_or_completed()

    def owner_of(self, booking: Booking) -> Person:
        owner = self._persons.find_by_name(booking.person_name)
        assert owner is not None, f"У бронирования {booking.id} нет владельца"
        assert booking.id in owner.booking_ids, (
            f"{owner.name} не ссылается на свое бронирование {booking.id}"
        )
        return owner

    def bookings_of(self, person: Person) -> List[Booking]:
        return [b for b in self._bookings if b.person_name == person.name]

    def booking_summary(self, person: Person) -> Dict[BookingStatus, int]:
        summary = {status: 0 for status in BookingStatus}
        for booking in self.bookings_of(person):
            summary[booking.status] += 1
        return summary

    def verify_integrity(self) -> None:
        """Проверяет согласованность обратных ссылок.

        Нарушение означает ошибку в коде.
        """
        for person in self._persons:
            owned = {b.id for b in self._bookings if b.person_name == person.name}
            assert person.booking_ids == owned, (
                f"{person.name}: booking_ids={sorted(person.booking_ids)}, "
                f"в хранилище={sorted(owned)}"
            )
        for booking in self._bookings:
            assert self._persons.find_by_name(booking.person_name) is not None, (
                f"Бронирование {booking.id} ссылается на удаленный контакт"
            )
