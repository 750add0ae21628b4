"""
Общие фикстуры для тестов книги контактов.
"""

import pytest

from tablebook.addressbook import (
    AddressBook,
    AddressBookUnitOfWork,
    BookingApplicationService,
    CommandDispatcher,
)
from tablebook.contacts import Person
from tablebook.shared_kernel import Phone

ALICE_PHONE = "85355255"
BOB_PHONE = "98765432"


@pytest.fixture
def alice() -> Person:
    return Person(
        name="Alice Pauline",
        phone=ALICE_PHONE,
        email="alice@example.com",
        address="123, Jurong West Ave 6",
        tags={"friends"},
    )


@pytest.fixture
def bob() -> Person:
    return Person(
        name="Bob Choo",
        phone=BOB_PHONE,
        email="bob@example.com",
        address="Block 123, Bobby Street 3",
    )


@pytest.fixture
def alice_phone() -> Phone:
    return Phone(value=ALICE_PHONE)


@pytest.fixture
def bob_phone() -> Phone:
    return Phone(value=BOB_PHONE)


@pytest.fixture
def address_book(alice: Person, bob: Person) -> AddressBook:
    """Книга контактов с двумя контактами и без бронирований."""
    book = AddressBook()
    book.add_person(alice)
    book.add_person(bob)
    book.pull_domain_events()
    return book


@pytest.fixture
def uow(address_book: AddressBook) -> AddressBookUnitOfWork:
    return AddressBookUnitOfWork(address_book=address_book)


@pytest.fixture
def service(uow: AddressBookUnitOfWork) -> BookingApplicationService:
    """Фикстура, предоставляющая сервис приложения над книгой с контактами."""
    return BookingApplicationService(uow)


@pytest.fixture
def dispatcher(service: BookingApplicationService) -> CommandDispatcher:
    return CommandDispatcher(service)
