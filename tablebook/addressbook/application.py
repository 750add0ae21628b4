"""
Прикладной слой книги контактов.

Содержит команды (DTO), сервис приложения, который выполняет их
внутри Unit of Work, и состояние «отображаемого списка бронирований».
"""

from dataclasses import dataclass
from datetime import date, datetime
from typing import List, Optional, Set, Type, TypeVar

from pydantic import BaseModel, Field, ValidationError, model_validator

from ..booking import MAX_PAX, Booking, BookingPatch, BookingStatus
from ..contacts import Person
from ..core.logging import get_logger
from ..shared_kernel import (
    Phone,
    TagName,
    ValidationException,
    format_validation_error,
    now,
    today,
)
from . import interfaces as ports
from .domain import AddressBook
from .query import BookingFilterEngine, BookingPredicate, BookingQuery, show_all

# Сообщения для пользователя

MESSAGE_BOOKING_ADDED = "Добавлено новое бронирование:\n{}"
MESSAGE_BOOKING_EDITED = "Бронирование изменено: {}"
MESSAGE_PAST_DATE_WARNING = "Внимание: дата бронирования уже прошла."
MESSAGE_BOOKING_DELETED = "Бронирование удалено: {}"
MESSAGE_BOOKING_MARKED = "Бронирование {} отмечено как {}."
MESSAGE_FILTER_SUCCESS = "Бронирования ({}):"
MESSAGE_FILTER_EMPTY = "Нет бронирований ({})."
MESSAGE_LIST_UPCOMING = "Предстоящие бронирования:"
MESSAGE_LIST_NO_UPCOMING = "Нет предстоящих бронирований."
MESSAGE_LIST_ALL = "Все бронирования:"
MESSAGE_LIST_EMPTY = "Бронирований нет."
MESSAGE_CLEARED = "Очищено отмененных и завершенных бронирований: {}."
MESSAGE_NOTHING_TO_CLEAR = "Нет отмененных или завершенных бронирований для очистки!"
MESSAGE_TODAY = "Бронирования на {}:\nПредстоящих: {}, завершенных: {}, отмененных: {}"
MESSAGE_NO_BOOKINGS_TODAY = "На {} бронирований нет."
MESSAGE_PERSON_ADDED = "Добавлен контакт: {}"
MESSAGE_PERSON_DELETED = "Удален контакт {} и его бронирований: {}"

DATETIME_DISPLAY_FORMAT = "%Y-%m-%d %H:%M"


# DTO (Data Transfer Objects) для входящих команд

T_Command = TypeVar("T_Command", bound=BaseModel)


def build_command(command_class: Type[T_Command], **data) -> T_Command:
    """Создает команду, переводя ошибки pydantic в ValidationException."""
    try:
        return command_class(**data)
    except ValidationError as e:
        raise ValidationException(format_validation_error(e)) from e


class AddBookingCommand(BaseModel):
    """Команда `book`: новое бронирование для контакта с телефоном phone."""

    phone: Phone
    scheduled_at: datetime
    pax: int = Field(..., ge=1, le=MAX_PAX)
    remarks: str = ""
    tags: Set[TagName] = Field(default_factory=set)


class EditBookingCommand(BaseModel):
    """Команда `bedit`: частичное изменение бронирования."""

    booking_id: int = Field(..., ge=1)
    patch: BookingPatch


class DeleteBookingCommand(BaseModel):
    """Команда `bdelete`."""

    booking_id: int = Field(..., ge=1)


class MarkBookingCommand(BaseModel):
    """Команда `mark`: смена статуса бронирования."""

    booking_id: int = Field(..., ge=1)
    status: BookingStatus


class FilterBookingsCommand(BaseModel):
    """Команда `filter`: нужно хотя бы одно условие."""

    query: BookingQuery

    @model_validator(mode="after")
    def at_least_one_condition(self) -> "FilterBookingsCommand":
        if self.query.is_empty():
            raise ValueError("Укажите телефон, дату или статус для фильтрации")
        return self


class ListBookingsCommand(BaseModel):
    """Команда `blist`: предстоящие или все бронирования."""

    show_all: bool = False


class ClearBookingsCommand(BaseModel):
    """Команда `clearbookings`."""


class TodayCommand(BaseModel):
    """Команда `today`: бронирования на день со сводкой по статусам."""

    on_date: date = Field(default_factory=today)


@dataclass(frozen=True)
class CommandResult:
    """Результат выполнения команды для отображения пользователю."""

    feedback: str
    is_error: bool = False


# Форматирование


def format_booking(booking: Booking, person: Optional[Person] = None) -> str:
    """Строка с описанием бронирования."""
    owner = booking.person_name
    if person is not None:
        owner = f"{person.name} ({person.phone})"
    scheduled_at = booking.scheduled_at.strftime(DATETIME_DISPLAY_FORMAT)
    line = (
        f"#{booking.id} {owner}: {scheduled_at}, "
        f"гостей: {booking.pax}, статус: {booking.status.label}"
    )
    if booking.remarks:
        line += f", примечание: {booking.remarks}"
    if booking.tags:
        line += f", метки: [{', '.join(sorted(booking.tags))}]"
    return line


# Состояние представления


class DisplayedBookingList:
    """Текущий отображаемый список бронирований.

    Хранит только последний предикат; список всегда читается заново.
    """

    def __init__(self, address_book: AddressBook):
        self._address_book = address_book
        self._predicate: BookingPredicate = show_all

    def update(self, predicate: BookingPredicate) -> None:
        self._predicate = predicate

    def reset(self) -> None:
        self._predicate = show_all

    def current(self) -> List[Booking]:
        return [b for b in self._address_book.bookings() if self._predicate(b)]


def is_upcoming(booking: Booking) -> bool:
    return not booking.is_retired


# Сервисы приложения


class BookingApplicationService:
    """Сервис приложения для работы с бронированиями."""

    def __init__(
        self,
        uow: ports.IAddressBookUnitOfWork,
        logger: Optional[ports.ILogger] = None,
    ):
        """Инициализирует сервис."""
        self._uow = uow
        self._logger = logger or get_logger(__name__)
        self._filter_engine = BookingFilterEngine(uow.address_book)
        self._displayed = DisplayedBookingList(uow.address_book)

    @property
    def displayed_bookings(self) -> DisplayedBookingList:
        return self._displayed

    def _format(self, booking: Booking) -> str:
        return format_booking(booking, self._uow.address_book.owner_of(booking))

    def _format_list(self, bookings: List[Booking]) -> str:
        return "\n".join(self._format(b) for b in bookings)

    def add_booking(self, command: AddBookingCommand) -> CommandResult:
        """Создает новое бронирование."""
        with self._uow as uow:
            booking = uow.address_book.add_booking(
                phone=command.phone,
                scheduled_at=command.scheduled_at,
                pax=command.pax,
                remarks=command.remarks,
                tags=command.tags,
            )
            self._displayed.reset()
            self._logger.info(
                "Бронирование создано", booking_id=booking.id, phone=str(command.phone)
            )
            return CommandResult(MESSAGE_BOOKING_ADDED.format(self._format(booking)))

    def edit_booking(self, command: EditBookingCommand) -> CommandResult:
        """Изменяет переданные поля бронирования."""
        with self._uow as uow:
            booking = uow.address_book.edit_booking(command.booking_id, command.patch)
            self._displayed.reset()
            feedback = MESSAGE_BOOKING_EDITED.format(self._format(booking))

            scheduled_at = command.patch.scheduled_at
            if scheduled_at is not None and scheduled_at < now():
                # Прошедшая дата допускается, но пользователя предупреждаем
                self._logger.warning(
                    "Дата бронирования в прошлом", booking_id=booking.id
                )
                feedback += "\n" + MESSAGE_PAST_DATE_WARNING
            return CommandResult(feedback)

    def delete_booking(self, command: DeleteBookingCommand) -> CommandResult:
        """Удаляет бронирование."""
        with self._uow as uow:
            booking = uow.address_book.get_booking(command.booking_id)
            description = self._format(booking) if booking is not None else ""
            uow.address_book.delete_booking(command.booking_id)
            self._logger.info("Бронирование удалено", booking_id=command.booking_id)
            return CommandResult(MESSAGE_BOOKING_DELETED.format(description))

    def mark_booking(self, command: MarkBookingCommand) -> CommandResult:
        """Меняет статус бронирования."""
        with self._uow as uow:
            uow.address_book.mark_booking(command.booking_id, command.status)
            self._displayed.reset()
            self._logger.info(
                "Статус бронирования изменен",
                booking_id=command.booking_id,
                status=command.status.value,
            )
            return CommandResult(
                MESSAGE_BOOKING_MARKED.format(command.booking_id, command.status.label)
            )

    def filter_bookings(self, command: FilterBookingsCommand) -> CommandResult:
        """Фильтрует бронирования и делает результат отображаемым списком."""
        with self._uow:
            result = self._filter_engine.run(command.query)
            self._displayed.update(result.predicate)
            if not result.bookings:
                return CommandResult(MESSAGE_FILTER_EMPTY.format(result.description))
            return CommandResult(
                MESSAGE_FILTER_SUCCESS.format(result.description)
                + "\n"
                + self._format_list(result.bookings)
            )

    def list_bookings(self, command: ListBookingsCommand) -> CommandResult:
        """Показывает предстоящие (или все) бронирования."""
        with self._uow as uow:
            if command.show_all:
                self._displayed.update(show_all)
                bookings = uow.address_book.bookings()
                header, empty = MESSAGE_LIST_ALL, MESSAGE_LIST_EMPTY
            else:
                self._displayed.update(is_upcoming)
                bookings = uow.address_book.upcoming_bookings()
                header, empty = MESSAGE_LIST_UPCOMING, MESSAGE_LIST_NO_UPCOMING

            if not bookings:
                return CommandResult(empty)
            return CommandResult(header + "\n" + self._format_list(bookings))

    def clear_bookings(self, command: ClearBookingsCommand) -> CommandResult:
        """Удаляет все завершенные и отмененные бронирования."""
        with self._uow as uow:
            cleared = uow.address_book.clear_retired_bookings()
            if cleared == 0:
                return CommandResult(MESSAGE_NOTHING_TO_CLEAR)
            self._logger.info("Бронирования очищены", count=cleared)
            return CommandResult(MESSAGE_CLEARED.format(cleared))

    def today(self, command: TodayCommand) -> CommandResult:
        """Показывает бронирования на день и сводку по статусам."""
        with self._uow:
            result = self._filter_engine.run(BookingQuery(on_date=command.on_date))
            self._displayed.update(result.predicate)
            day = command.on_date.isoformat()
            if not result.bookings:
                return CommandResult(MESSAGE_NO_BOOKINGS_TODAY.format(day))

            counts = {status: 0 for status in BookingStatus}
            for booking in result.bookings:
                counts[booking.status] += 1
            return CommandResult(
                MESSAGE_TODAY.format(
                    day,
                    counts[BookingStatus.UPCOMING],
                    counts[BookingStatus.COMPLETED],
                    counts[BookingStatus.CANCELLED],
                )
            )

    def add_person(self, person: Person) -> CommandResult:
        """Добавляет контакт."""
        with self._uow as uow:
            uow.address_book.add_person(person)
            return CommandResult(MESSAGE_PERSON_ADDED.format(person.name))

    def delete_person(self, phone: Phone) -> CommandResult:
        """Удаляет контакт и каскадно его бронирования."""
        with self._uow as uow:
            person = uow.address_book.find_person_by_phone(phone)
            removed = uow.address_book.remove_person(person)
            self._logger.info("Контакт удален", name=person.name, bookings=len(removed))
            return CommandResult(
                MESSAGE_PERSON_DELETED.format(person.name, len(removed))
            )
