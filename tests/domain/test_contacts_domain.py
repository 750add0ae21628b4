"""
Тесты контактов и списка уникальных контактов.
"""

import pytest
from pydantic import ValidationError

from tablebook.contacts import Person, UniquePersonList
from tablebook.shared_kernel import (
    DuplicatePersonException,
    Phone,
    PersonNotFoundException,
    ValidationException,
)


def make_person(name: str = "Carl Kurz", phone: str = "95352563", **kwargs) -> Person:
    return Person(
        name=name,
        phone=phone,
        email=kwargs.pop("email", "heinz@example.com"),
        address=kwargs.pop("address", "wall street"),
        **kwargs,
    )


class TestPhone:
    def test_of_strips_whitespace(self):
        assert str(Phone.of(" 12345 ")) == "12345"

    @pytest.mark.parametrize("raw", ["12", "91a234", ""])
    def test_of_rejects_invalid_number(self, raw):
        with pytest.raises(ValidationException, match="Номер телефона"):
            Phone.of(raw)

    def test_phones_compare_by_value(self):
        assert Phone.of("12345") == Phone(value="12345")


class TestPerson:
    """Тесты сущности Person."""

    def test_phone_accepts_string(self):
        person = make_person()
        assert person.phone == Phone(value="95352563")

    @pytest.mark.parametrize(
        "field, value",
        [("name", "R@chel"), ("email", "no-domain"), ("address", "   ")],
    )
    def test_invalid_fields_are_rejected(self, field, value):
        with pytest.raises(ValidationError):
            make_person(**{field: value})

    def test_date_joined_only_for_members(self):
        assert make_person().date_joined is None
        assert make_person(is_member=True).date_joined is not None

    def test_update_membership_status(self):
        person = make_person()

        assert person.update_membership_status(True)
        assert person.date_joined is not None
        assert not person.update_membership_status(True)
        assert person.update_membership_status(False)
        assert person.date_joined is None

    def test_booking_ids_are_plain_ids(self):
        person = make_person()
        person.add_booking_id(3)
        person.add_booking_id(3)
        person.remove_booking_id(42)

        assert person.booking_ids == {3}


class TestUniquePersonList:
    """Тесты уникального списка контактов."""

    def test_add_and_find(self):
        persons = UniquePersonList()
        carl = make_person()
        persons.add(carl)

        assert persons.contains(carl)
        assert persons.find_by_phone(Phone.of("95352563")) is carl
        assert persons.find_by_name("Carl Kurz") is carl
        assert persons.find_by_name("Nobody") is None

    def test_duplicate_name_rejected(self):
        persons = UniquePersonList()
        persons.add(make_person())

        with pytest.raises(DuplicatePersonException, match="именем"):
            persons.add(make_person(phone="11111111"))

    def test_duplicate_phone_rejected(self):
        persons = UniquePersonList()
        persons.add(make_person())

        with pytest.raises(DuplicatePersonException, match="телефоном"):
            persons.add(make_person(name="Daniel Meier"))

    def test_set_person_keeps_position(self):
        persons = UniquePersonList()
        carl, daniel = make_person(), make_person("Daniel Meier", "87652533")
        persons.add(carl)
        persons.add(daniel)

        renamed = make_person("Carl Kurzweil")
        persons.set_person(carl, renamed)

        assert list(persons) == [renamed, daniel]

    def test_remove_missing_person_fails(self):
        with pytest.raises(PersonNotFoundException):
            UniquePersonList().remove(make_person())

    def test_replace_all_rejects_duplicates(self):
        persons = UniquePersonList()
        with pytest.raises(DuplicatePersonException):
            persons.replace_all([make_person(), make_person()])
