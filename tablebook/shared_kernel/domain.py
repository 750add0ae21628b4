"""
Основные доменные типы и утилиты общего ядра.
"""

import re
from datetime import date, datetime
from typing import Annotated, ClassVar
from uuid import UUID, uuid4

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    StringConstraints,
    ValidationError,
    field_validator,
)

# Имя метки: только буквы и цифры
TagName = Annotated[
    str, StringConstraints(strip_whitespace=True, pattern=r"^[A-Za-z0-9]+$")
]


class Phone(BaseModel):
    """Номер телефона (Value Object)."""

    model_config = ConfigDict(frozen=True)

    MESSAGE_CONSTRAINTS: ClassVar[str] = (
        "Номер телефона должен состоять только из цифр и содержать не менее 3 цифр"
    )

    value: str

    @field_validator("value")
    @classmethod
    def digits_only(cls, v: str) -> str:
        v = v.strip()
        if not re.fullmatch(r"\d{3,}", v):
            raise ValueError(cls.MESSAGE_CONSTRAINTS)
        return v

    @classmethod
    def of(cls, value: str) -> "Phone":
        """Создает номер телефона, переводя ошибку pydantic в доменную."""
        try:
            return cls(value=value)
        except ValidationError as e:
            raise ValidationException(cls.MESSAGE_CONSTRAINTS) from e

    def __str__(self) -> str:
        return self.value


class DomainEvent(BaseModel):
    """Базовый класс для всех доменных событий."""

    event_id: UUID = Field(default_factory=uuid4)
    occurred_on: datetime = Field(default_factory=lambda: now())

    @property
    def event_type(self) -> str:
        return type(self).__name__


# Общие исключения
class DomainException(Exception):
    """Базовое исключение для доменных ошибок."""

    pass


class ValidationException(DomainException):
    """Некорректные или выходящие за допустимые границы данные."""

    pass


class NoFieldsProvidedException(ValidationException):
    """Запрошено редактирование без единого поля."""

    def __init__(self, message: str = "Нужно указать хотя бы одно поле для изменения."):
        super().__init__(message)


class PersonNotFoundException(DomainException):
    """Исключение: контакт не найден."""

    pass


class DuplicatePersonException(DomainException):
    """Исключение: контакт с таким именем или телефоном уже существует."""

    pass


class StorageException(DomainException):
    """Исключение: не удалось прочитать или записать данные."""

    pass


class BookingNotFoundException(DomainException):
    """Исключение: бронирование не найдено."""

    def __init__(self, booking_id: int):
        super().__init__(f"Бронирование с ID {booking_id} не найдено.")
        self.booking_id = booking_id


class DuplicateBookingException(DomainException):
    """Исключение: два бронирования с одинаковым ID."""

    def __init__(self, booking_id: int):
        super().__init__(f"Бронирование с ID {booking_id} уже существует.")
        self.booking_id = booking_id


def format_validation_error(error: ValidationError) -> str:
    """Собирает сообщения pydantic в одну строку для пользователя."""
    parts = []
    for item in error.errors():
        field = ".".join(str(loc) for loc in item["loc"])
        message = item["msg"].removeprefix("Value error, ")
        parts.append(f"{field}: {message}" if field else message)
    return "; ".join(parts)


# Общие утилиты
def now() -> datetime:
    """Возвращает текущую дату и время."""
    return datetime.now()


def today() -> date:
    """Возвращает текущую дату."""
    return date.today()
