"""
Доменная модель контактов.

Содержит сущность Person и коллекцию, которая следит
за уникальностью контактов по имени и номеру телефона.
"""

import re
from datetime import datetime
from typing import Iterable, Iterator, List, Optional, Set

from pydantic import BaseModel, Field, field_validator, model_validator

from ..shared_kernel import (
    DuplicatePersonException,
    Phone,
    PersonNotFoundException,
    TagName,
    now,
)


class Person(BaseModel):
    """Контакт (гость ресторана)."""

    name: str
    phone: Phone
    email: str
    address: str
    tags: Set[TagName] = Field(default_factory=set)
    is_member: bool = False
    date_joined: Optional[datetime] = None
    # Обратные ссылки на бронирования: только ID, не владение
    booking_ids: Set[int] = Field(default_factory=set)

    @field_validator("name")
    @classmethod
    def name_is_alphanumeric(cls, v: str) -> str:
        v = v.strip()
        if not re.fullmatch(r"[A-Za-z0-9][A-Za-z0-9 ]*", v):
            raise ValueError("Имя может содержать только буквы, цифры и пробелы")
        return v

    @field_validator("phone", mode="before")
    @classmethod
    def phone_from_string(cls, v):
        if isinstance(v, str):
            return {"value": v}
        return v

    @field_validator("email")
    @classmethod
    def email_has_domain(cls, v: str) -> str:
        v = v.strip()
        if not re.fullmatch(r"[\w.+-]+@[\w-]+(\.[\w-]+)*", v):
            raise ValueError("Email должен иметь вид local-part@domain")
        return v

    @field_validator("address")
    @classmethod
    def address_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Адрес не может быть пустым")
        return v.strip()

    @model_validator(mode="after")
    def derive_date_joined(self) -> "Person":
        if not self.is_member:
            self.date_joined = None
        elif self.date_joined is None:
            self.date_joined = now()
        return self

    def is_same_person(self, other: Optional["Person"]) -> bool:
        """Слабое равенство: контакты совпадают, если совпадают имена."""
        return other is not None and other.name == self.name

    def add_booking_id(self, booking_id: int) -> None:
        self.booking_ids.add(booking_id)

    def remove_booking_id(self, booking_id: int) -> None:
        self.booking_ids.discard(booking_id)

    def update_membership_status(self, is_member: bool) -> bool:
        """Меняет статус членства. Возвращает False, если статус не изменился."""
        if self.is_member == is_member:
            return False
        self.is_member = is_member
        self.date_joined = now() if is_member else None
        return True


class UniquePersonList:
    """Список контактов без дубликатов по имени и телефону."""

    def __init__(self) -> None:
        self._persons: List[Person] = []

    def __iter__(self) -> Iterator[Person]:
        return iter(list(self._persons))

    def __len__(self) -> int:
        return len(self._persons)

    def contains(self, person: Person) -> bool:
        return any(p.is_same_person(person) for p in self._persons)

    def find_by_phone(self, phone: Phone) -> Optional[Person]:
        for person in self._persons:
            if person.phone == phone:
                return person
        return None

    def find_by_name(self, name: str) -> Optional[Person]:
        for person in self._persons:
            if person.name == name:
                return person
        return None

    def add(self, person: Person) -> None:
        self._check_unique(person)
        self._persons.append(person)

    def set_person(self, target: Person, edited: Person) -> None:
        """Заменяет контакт target на edited, сохраняя позицию в списке."""
        index = self._index_of(target)
        self._check_unique(edited, ignore=self._persons[index])
        self._persons[index] = edited

    def remove(self, person: Person) -> None:
        self._persons.pop(self._index_of(person))

    def replace_all(self, persons: Iterable[Person]) -> None:
        """Заменяет содержимое списка. Дубликаты не допускаются."""
        fresh = UniquePersonList()
        for person in persons:
            fresh.add(person)
        self._persons = fresh._persons

    def _index_of(self, person: Person) -> int:
        for index, existing in enumerate(self._persons):
            if existing.is_same_person(person):
                return index
        raise PersonNotFoundException(f"Контакт {person.name} не найден.")

    def _check_unique(self, person: Person, ignore: Optional[Person] = None) -> None:
        for existing in self._persons:
            if existing is ignore:
                continue
            if existing.is_same_person(person):
                raise DuplicatePersonException(
                    f"Контакт с именем {person.name} уже существует."
                )
            if existing.phone == person.phone:
                raise DuplicatePersonException(
                    f"Контакт с телефоном {person.phone} уже существует."
                )
