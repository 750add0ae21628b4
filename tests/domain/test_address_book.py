"""
Тесты агрегата AddressBook: согласованность контактов и бронирований.
"""

from datetime import date, datetime

import pytest

from tablebook.addressbook import AddressBook, PersonAdded, PersonRemoved
from tablebook.booking import (
    Booking,
    BookingCreated,
    BookingDeleted,
    BookingEdited,
    BookingPatch,
    BookingStatus,
    BookingStatusChanged,
    RetiredBookingsCleared,
)
from tablebook.contacts import Person
from tablebook.shared_kernel import (
    BookingNotFoundException,
    DuplicateBookingException,
    NoFieldsProvidedException,
    Phone,
    PersonNotFoundException,
    ValidationException,
)

BIRTHDAY = datetime(2030, 4, 1, 18, 0)


class TestAddBooking:
    """Создание бронирований."""

    def test_book_for_existing_person(self, address_book, alice, alice_phone):
        """Бронирование появляется в хранилище и в обратных ссылках контакта."""
        booking = address_book.add_booking(
            alice_phone, BIRTHDAY, 4, remarks="Birthday"
        )

        assert address_book.bookings() == [booking]
        assert booking.status == BookingStatus.UPCOMING
        assert booking.person_name == alice.name
        assert alice.booking_ids == {booking.id}
        address_book.verify_integrity()

    def test_book_for_unknown_phone_leaves_store_unchanged(self, address_book):
        with pytest.raises(PersonNotFoundException):
            address_book.add_booking(Phone.of("11112222"), BIRTHDAY, 2)

        assert address_book.bookings() == []
        assert address_book.pull_domain_events() == []

    def test_invalid_pax_leaves_state_unchanged(self, address_book, alice, alice_phone):
        with pytest.raises(ValidationException):
            address_book.add_booking(alice_phone, BIRTHDAY, 0)

        assert address_book.bookings() == []
        assert alice.booking_ids == set()

    def test_failed_validation_does_not_consume_an_id(self, address_book, alice_phone):
        with pytest.raises(ValidationException):
            address_book.add_booking(alice_phone, BIRTHDAY, 0)

        assert address_book.add_booking(alice_phone, BIRTHDAY, 2).id == 1

    def test_ids_are_unique_and_increasing(self, address_book, alice_phone, bob_phone):
        ids = [
            address_book.add_booking(alice_phone, BIRTHDAY, 2).id,
            address_book.add_booking(bob_phone, BIRTHDAY, 2).id,
            address_book.add_booking(alice_phone, BIRTHDAY, 2).id,
        ]

        assert ids == [1, 2, 3]

    def test_records_created_event(self, address_book, alice, alice_phone):
        booking = address_book.add_booking(alice_phone, BIRTHDAY, 2)

        events = address_book.pull_domain_events()
        assert len(events) == 1
        assert isinstance(events[0], BookingCreated)
        assert events[0].booking_id == booking.id
        assert events[0].person_name == alice.name


class TestMarkAndClear:
    """Смена статуса и очистка завершенных бронирований."""

    def test_mark_completed_then_clear(self, address_book, alice, alice_phone):
        booking = address_book.add_booking(alice_phone, BIRTHDAY, 4)

        address_book.mark_booking(booking.id, BookingStatus.COMPLETED)
        assert address_book.get_booking(booking.id).status == BookingStatus.COMPLETED

        assert address_book.clear_retired_bookings() == 1
        assert address_book.bookings() == []
        assert alice.booking_ids == set()
        address_book.verify_integrity()

    def test_clear_keeps_upcoming(self, address_book, alice, alice_phone, bob_phone):
        kept = address_book.add_booking(alice_phone, BIRTHDAY, 2)
        done = address_book.add_booking(alice_phone, BIRTHDAY, 2)
        cancelled = address_book.add_booking(bob_phone, BIRTHDAY, 2)
        address_book.mark_booking(done.id, BookingStatus.COMPLETED)
        address_book.mark_booking(cancelled.id, BookingStatus.CANCELLED)
        address_book.pull_domain_events()

        assert address_book.clear_retired_bookings() == 2

        assert address_book.bookings() == [kept]
        assert alice.booking_ids == {kept.id}
        events = address_book.pull_domain_events()
        assert isinstance(events[0], RetiredBookingsCleared)
        assert sorted(events[0].booking_ids) == [done.id, cancelled.id]

    def test_clear_with_nothing_retired(self, address_book, alice_phone):
        address_book.add_booking(alice_phone, BIRTHDAY, 2)
        address_book.pull_domain_events()

        assert address_book.clear_retired_bookings() == 0
        assert address_book.pull_domain_events() == []

    def test_terminal_booking_can_be_marked_upcoming_again(
        self, address_book, alice_phone
    ):
        booking = address_book.add_booking(alice_phone, BIRTHDAY, 2)
        address_book.mark_booking(booking.id, BookingStatus.CANCELLED)
        address_book.mark_booking(booking.id, BookingStatus.UPCOMING)

        assert address_book.upcoming_bookings() == [booking]
        events = address_book.pull_domain_events()
        assert isinstance(events[-1], BookingStatusChanged)
        assert events[-1].previous == BookingStatus.CANCELLED

    def test_mark_missing_booking(self, address_book):
        with pytest.raises(BookingNotFoundException):
            address_book.mark_booking(5, BookingStatus.COMPLETED)


class TestEditBooking:
    """Частичное изменение бронирований."""

    def test_empty_patch_fails(self, address_book, alice_phone):
        booking = address_book.add_booking(alice_phone, BIRTHDAY, 2)

        with pytest.raises(NoFieldsProvidedException):
            address_book.edit_booking(booking.id, BookingPatch())

    def test_missing_booking_reported_before_empty_patch(self, address_book):
        with pytest.raises(BookingNotFoundException):
            address_book.edit_booking(99, BookingPatch())

    def test_edit_changes_only_supplied_fields(self, address_book, alice_phone):
        booking = address_book.add_booking(
            alice_phone, BIRTHDAY, 2, remarks="Window seat", tags=["VIP"]
        )
        address_book.pull_domain_events()

        address_book.edit_booking(booking.id, BookingPatch(pax=5))

        assert booking.pax == 5
        assert booking.remarks == "Window seat"
        assert booking.tags == {"VIP"}
        events = address_book.pull_domain_events()
        assert isinstance(events[0], BookingEdited)
        assert events[0].changed_fields == ["pax"]

    def test_edit_keeps_id_and_owner(self, address_book, alice, alice_phone):
        booking = address_book.add_booking(alice_phone, BIRTHDAY, 2)
        address_book.edit_booking(
            booking.id, BookingPatch(scheduled_at=datetime(2030, 5, 1, 20, 0))
        )

        assert booking.id == 1
        assert alice.booking_ids == {1}
        address_book.verify_integrity()


class TestDeletion:
    """Удаление бронирований и каскадное удаление контактов."""

    def test_delete_booking_updates_back_reference(
        self, address_book, alice, alice_phone
    ):
        first = address_book.add_booking(alice_phone, BIRTHDAY, 2)
        second = address_book.add_booking(alice_phone, BIRTHDAY, 3)
        address_book.pull_domain_events()

        address_book.delete_booking(first.id)

        assert address_book.bookings() == [second]
        assert alice.booking_ids == {second.id}
        events = address_book.pull_domain_events()
        assert isinstance(events[0], BookingDeleted)
        assert events[0].person_name == alice.name

    def test_delete_missing_booking(self, address_book):
        with pytest.raises(BookingNotFoundException, match="ID 3"):
            address_book.delete_booking(3)

    def test_remove_person_cascades(
        self, address_book, alice, bob, alice_phone, bob_phone
    ):
        address_book.add_booking(alice_phone, BIRTHDAY, 2)
        address_book.add_booking(alice_phone, BIRTHDAY, 3)
        bobs = address_book.add_booking(bob_phone, BIRTHDAY, 4)
        address_book.pull_domain_events()

        removed = address_book.remove_person(alice)

        assert [b.id for b in removed] == [1, 2]
        assert address_book.bookings() == [bobs]
        assert not address_book.has_person(alice)
        assert bob.booking_ids == {bobs.id}
        events = address_book.pull_domain_events()
        assert isinstance(events[0], PersonRemoved)
        assert events[0].booking_ids == [1, 2]
        address_book.verify_integrity()

    def test_remove_unknown_person(self, address_book):
        stranger = Person(
            name="Stranger",
            phone="55555",
            email="s@example.com",
            address="nowhere",
        )
        with pytest.raises(PersonNotFoundException):
            address_book.remove_person(stranger)


class TestPersons:
    def test_add_person_records_event(self):
        book = AddressBook()
        book.add_person(
            Person(name="Carl", phone="95352563", email="c@example.com", address="x")
        )

        events = book.pull_domain_events()
        assert isinstance(events[0], PersonAdded)
        assert events[0].name == "Carl"

    def test_set_person_carries_bookings(self, address_book, alice, alice_phone):
        booking = address_book.add_booking(alice_phone, BIRTHDAY, 2)
        renamed = Person(
            name="Alice Tan",
            phone="85355255",
            email="alice@example.com",
            address="123, Jurong West Ave 6",
        )

        address_book.set_person(alice, renamed)

        assert renamed.booking_ids == {booking.id}
        assert booking.person_name == "Alice Tan"
        address_book.verify_integrity()

    def test_booking_summary(self, address_book, alice, alice_phone):
        first = address_book.add_booking(alice_phone, BIRTHDAY, 2)
        address_book.add_booking(alice_phone, BIRTHDAY, 2)
        address_book.mark_booking(first.id, BookingStatus.COMPLETED)

        assert address_book.booking_summary(alice) == {
            BookingStatus.UPCOMING: 1,
            BookingStatus.COMPLETED: 1,
            BookingStatus.CANCELLED: 0,
        }


class TestSnapshots:
    """Выгрузка и загрузка состояния."""

    def test_round_trip_preserves_back_references(self, address_book, alice_phone):
        address_book.add_booking(alice_phone, BIRTHDAY, 2)

        restored = AddressBook.from_snapshot(address_book.export_snapshot())

        alice = restored.find_person_by_phone(alice_phone)
        assert alice.booking_ids == {1}
        assert restored.get_booking(1).person_name == alice.name
        restored.verify_integrity()

    def test_export_is_a_copy(self, address_book, alice_phone):
        booking = address_book.add_booking(alice_phone, BIRTHDAY, 2)
        snapshot = address_book.export_snapshot()

        snapshot.bookings[0].pax = 9

        assert booking.pax == 2

    def test_reset_data_advances_allocator(self, address_book, alice, alice_phone):
        alice.booking_ids = {7}
        booking = Booking(id=7, scheduled_at=BIRTHDAY, pax=2)

        address_book.reset_data([alice], [booking])
        created = address_book.add_booking(alice_phone, BIRTHDAY, 2)

        assert created.id == 8
        address_book.verify_integrity()

    def test_rejected_snapshot_keeps_state_and_allocator(
        self, address_book, alice, alice_phone
    ):
        """Отклоненный снимок не меняет ни данные, ни счетчик ID."""
        with pytest.raises(ValidationException, match="нет владельца"):
            address_book.reset_data(
                [alice], [Booking(id=50, scheduled_at=BIRTHDAY, pax=2)]
            )

        assert len(address_book.persons()) == 2
        assert address_book.add_booking(alice_phone, BIRTHDAY, 2).id == 1

    def test_reset_data_resolves_owner_from_back_references(self, alice):
        alice.booking_ids = {3}
        book = AddressBook()
        book.reset_data([alice], [Booking(id=3, scheduled_at=BIRTHDAY, pax=2)])

        assert book.get_booking(3).person_name == alice.name

    def test_reset_data_rejects_dangling_reference(self, alice):
        alice.booking_ids = {4}
        with pytest.raises(ValidationException, match="отсутствующее"):
            AddressBook().reset_data([alice], [])

    def test_reset_data_rejects_unowned_booking(self, alice):
        with pytest.raises(ValidationException, match="нет владельца"):
            AddressBook().reset_data(
                [alice], [Booking(id=1, scheduled_at=BIRTHDAY, pax=1)]
            )

    def test_reset_data_rejects_shared_booking(self, alice, bob):
        alice.booking_ids = {1}
        bob.booking_ids = {1}
        with pytest.raises(ValidationException, match="принадлежит сразу"):
            AddressBook().reset_data(
                [alice, bob], [Booking(id=1, scheduled_at=BIRTHDAY, pax=1)]
            )

    def test_reset_data_rejects_duplicate_ids(self, alice):
        alice.booking_ids = {1}
        bookings = [Booking(id=1, scheduled_at=BIRTHDAY, pax=1)] * 2
        with pytest.raises(DuplicateBookingException):
            AddressBook().reset_data([alice], bookings)

    def test_retired_bookings_view(self, address_book, alice_phone):
        booking = address_book.add_booking(alice_phone, BIRTHDAY, 2)
        address_book.mark_booking(booking.id, BookingStatus.CANCELLED)

        assert address_book.retired_bookings() == [booking]
        assert address_book.upcoming_bookings() == []
        assert address_book.bookings_of(address_book.owner_of(booking)) == [booking]
        assert address_book.has_booking(booking.id)
        assert not address_book.has_booking(booking.id + 1)
        assert booking.scheduled_at.date() == date(2030, 4, 1)
