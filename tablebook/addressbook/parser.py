"""
Разбор текстовых команд и их диспетчеризация.

Аргументы задаются префиксами: d/ дата, p/ телефон, x/ число гостей,
r/ примечание, t/ метка, b/ ID бронирования, s/ статус.
"""

import re
from datetime import date, datetime
from typing import Callable, Dict, List, Optional, Type

from ..booking import BookingPatch, BookingStatus
from ..core.logging import get_logger
from ..shared_kernel import (
    DomainException,
    NoFieldsProvidedException,
    Phone,
    ValidationException,
)
from . import interfaces as ports
from .application import (
    AddBookingCommand,
    BookingApplicationService,
    ClearBookingsCommand,
    CommandResult,
    DeleteBookingCommand,
    EditBookingCommand,
    FilterBookingsCommand,
    ListBookingsCommand,
    MarkBookingCommand,
    TodayCommand,
    build_command,
)
from .query import BookingQuery

PREFIX_DATE = "d/"
PREFIX_PHONE = "p/"
PREFIX_PAX = "x/"
PREFIX_REMARK = "r/"
PREFIX_TAG = "t/"
PREFIX_BOOKING_ID = "b/"
PREFIX_STATUS = "s/"

DATETIME_FORMATS = ("%Y-%m-%d %H:%M", "%Y-%m-%d %I:%M %p")
DATE_FORMAT = "%Y-%m-%d"
SHOW_ALL_FLAG = "/all"

MESSAGE_INVALID_FORMAT = "Неверный формат команды!\n{}"
MESSAGE_UNKNOWN_COMMAND = "Неизвестная команда: {}"
MESSAGE_EMPTY_COMMAND = "Введите команду."
MESSAGE_DUPLICATE_PREFIXES = "Префиксы указаны несколько раз: {}"
MESSAGE_INVALID_DATETIME = (
    "Некорректные дата и время! Используйте YYYY-MM-DD HH:MM "
    "или YYYY-MM-DD h:mm AM/PM."
)
MESSAGE_INVALID_DATE = "Некорректная дата! Используйте YYYY-MM-DD."
MESSAGE_INVALID_BOOKING_ID = "ID бронирования должен быть положительным целым числом."
MESSAGE_INVALID_PAX = "Число гостей должно быть целым числом."

USAGE_BOOK = "book d/YYYY-MM-DD HH:MM p/PHONE x/PAX [r/REMARK] [t/TAG]..."
USAGE_BEDIT = "bedit b/ID [d/YYYY-MM-DD HH:MM] [x/PAX] [r/REMARK] [t/TAG]..."
USAGE_BDELETE = "bdelete ID"
USAGE_MARK = "mark b/ID s/UPCOMING|COMPLETED|CANCELLED"
USAGE_FILTER = "filter [p/PHONE] [d/YYYY-MM-DD] [s/STATUS]"
USAGE_BLIST = "blist [/all]"


class ArgumentMultimap:
    """Значения аргументов, сгруппированные по префиксам."""

    def __init__(self, preamble: str = ""):
        self._preamble = preamble
        self._values: Dict[str, List[str]] = {}

    @property
    def preamble(self) -> str:
        return self._preamble

    def put(self, prefix: str, value: str) -> None:
        self._values.setdefault(prefix, []).append(value)

    def has(self, prefix: str) -> bool:
        return prefix in self._values

    def get_value(self, prefix: str) -> Optional[str]:
        """Последнее значение префикса или None."""
        values = self._values.get(prefix)
        return values[-1] if values else None

    def get_all_values(self, prefix: str) -> List[str]:
        return list(self._values.get(prefix, []))

    def verify_no_duplicate_prefixes_for(self, *prefixes: str) -> None:
        duplicated = [p for p in prefixes if len(self._values.get(p, [])) > 1]
        if duplicated:
            raise ValidationException(
                MESSAGE_DUPLICATE_PREFIXES.format(" ".join(duplicated))
            )


def tokenize(args: str, *prefixes: str) -> ArgumentMultimap:
    """Разбивает строку аргументов по префиксам.

    Префикс распознается только в начале строки или после пробела.
    """
    if not prefixes:
        return ArgumentMultimap(args.strip())

    pattern = re.compile(
        r"(?<!\S)(" + "|".join(re.escape(p) for p in prefixes) + ")"
    )
    matches = list(pattern.finditer(args))
    if not matches:
        return ArgumentMultimap(args.strip())

    multimap = ArgumentMultimap(args[: matches[0].start()].strip())
    for match, following in zip(matches, matches[1:] + [None]):
        end = following.start() if following is not None else len(args)
        multimap.put(match.group(1), args[match.end() : end].strip())
    return multimap


def parse_datetime(raw: str) -> datetime:
    value = " ".join(raw.split())
    for fmt in DATETIME_FORMATS:
        try:
            return datetime.strptime(value, fmt)
        except ValueError:
            continue
    raise ValidationException(MESSAGE_INVALID_DATETIME)


def parse_date(raw: str) -> date:
    try:
        return datetime.strptime(raw.strip(), DATE_FORMAT).date()
    except ValueError:
        raise ValidationException(MESSAGE_INVALID_DATE) from None


def parse_integer(raw: str, message: str, signed: bool = False) -> int:
    """Разбирает целое из ASCII-цифр; любая ошибка становится ValidationException."""
    value = raw.strip()
    pattern = r"[+-]?[0-9]+" if signed else r"[0-9]+"
    if not re.fullmatch(pattern, value):
        raise ValidationException(message)
    try:
        return int(value)
    except ValueError:
        # Слишком длинное число для преобразования
        raise ValidationException(message) from None


def parse_booking_id(raw: str) -> int:
    booking_id = parse_integer(raw, MESSAGE_INVALID_BOOKING_ID)
    if booking_id < 1:
        raise ValidationException(MESSAGE_INVALID_BOOKING_ID)
    return booking_id


def parse_pax(raw: str) -> int:
    return parse_integer(raw, MESSAGE_INVALID_PAX, signed=True)


def parse_tags(values: List[str]) -> set:
    # Единственный пустой t/ очищает метки
    if values == [""]:
        return set()
    return set(values)


class BookingCommandParser:
    """Превращает строку команды в типизированную команду."""

    def __init__(self) -> None:
        self._parsers: Dict[str, Callable[[str], object]] = {
            "book": self._parse_book,
            "bedit": self._parse_bedit,
            "bdelete": self._parse_bdelete,
            "mark": self._parse_mark,
            "filter": self._parse_filter,
            "blist": self._parse_blist,
            "clearbookings": lambda args: ClearBookingsCommand(),
            "today": lambda args: TodayCommand(),
        }

    def parse(self, line: str) -> object:
        stripped = line.strip()
        if not stripped:
            raise ValidationException(MESSAGE_EMPTY_COMMAND)

        word, _, args = stripped.partition(" ")
        parser = self._parsers.get(word)
        if parser is None:
            raise ValidationException(MESSAGE_UNKNOWN_COMMAND.format(word))
        return parser(args)

    def _parse_book(self, args: str) -> AddBookingCommand:
        argmap = tokenize(
            args, PREFIX_DATE, PREFIX_PHONE, PREFIX_PAX, PREFIX_REMARK, PREFIX_TAG
        )
        required = (PREFIX_DATE, PREFIX_PHONE, PREFIX_PAX)
        if argmap.preamble or not all(argmap.has(p) for p in required):
            raise ValidationException(MESSAGE_INVALID_FORMAT.format(USAGE_BOOK))
        argmap.verify_no_duplicate_prefixes_for(
            PREFIX_DATE, PREFIX_PHONE, PREFIX_PAX, PREFIX_REMARK
        )

        return build_command(
            AddBookingCommand,
            phone=Phone.of(argmap.get_value(PREFIX_PHONE)),
            scheduled_at=parse_datetime(argmap.get_value(PREFIX_DATE)),
            pax=parse_pax(argmap.get_value(PREFIX_PAX)),
            remarks=argmap.get_value(PREFIX_REMARK) or "",
            tags=set(argmap.get_all_values(PREFIX_TAG)),
        )

    def _parse_bedit(self, args: str) -> EditBookingCommand:
        argmap = tokenize(
            args, PREFIX_BOOKING_ID, PREFIX_DATE, PREFIX_PAX, PREFIX_REMARK, PREFIX_TAG
        )
        if argmap.preamble or not argmap.has(PREFIX_BOOKING_ID):
            raise ValidationException(MESSAGE_INVALID_FORMAT.format(USAGE_BEDIT))
        argmap.verify_no_duplicate_prefixes_for(
            PREFIX_BOOKING_ID, PREFIX_DATE, PREFIX_PAX, PREFIX_REMARK
        )

        booking_id = parse_booking_id(argmap.get_value(PREFIX_BOOKING_ID))
        patch_data: Dict[str, object] = {}
        if argmap.has(PREFIX_DATE):
            patch_data["scheduled_at"] = parse_datetime(argmap.get_value(PREFIX_DATE))
        if argmap.has(PREFIX_PAX):
            patch_data["pax"] = parse_pax(argmap.get_value(PREFIX_PAX))
        if argmap.has(PREFIX_REMARK):
            patch_data["remarks"] = argmap.get_value(PREFIX_REMARK)
        if argmap.has(PREFIX_TAG):
            patch_data["tags"] = parse_tags(argmap.get_all_values(PREFIX_TAG))
        if not patch_data:
            raise NoFieldsProvidedException()

        return build_command(
            EditBookingCommand,
            booking_id=booking_id,
            patch=build_command(BookingPatch, **patch_data),
        )

    def _parse_bdelete(self, args: str) -> DeleteBookingCommand:
        if not args.strip():
            raise ValidationException(MESSAGE_INVALID_FORMAT.format(USAGE_BDELETE))
        return DeleteBookingCommand(booking_id=parse_booking_id(args))

    def _parse_mark(self, args: str) -> MarkBookingCommand:
        argmap = tokenize(args, PREFIX_BOOKING_ID, PREFIX_STATUS)
        required = (PREFIX_BOOKING_ID, PREFIX_STATUS)
        if argmap.preamble or not all(argmap.has(p) for p in required):
            raise ValidationException(MESSAGE_INVALID_FORMAT.format(USAGE_MARK))
        argmap.verify_no_duplicate_prefixes_for(*required)

        return MarkBookingCommand(
            booking_id=parse_booking_id(argmap.get_value(PREFIX_BOOKING_ID)),
            status=BookingStatus.parse(argmap.get_value(PREFIX_STATUS)),
        )

    def _parse_filter(self, args: str) -> FilterBookingsCommand:
        argmap = tokenize(args, PREFIX_PHONE, PREFIX_DATE, PREFIX_STATUS)
        if argmap.preamble:
            raise ValidationException(MESSAGE_INVALID_FORMAT.format(USAGE_FILTER))
        argmap.verify_no_duplicate_prefixes_for(
            PREFIX_PHONE, PREFIX_DATE, PREFIX_STATUS
        )

        phone = argmap.get_value(PREFIX_PHONE)
        on_date = argmap.get_value(PREFIX_DATE)
        status = argmap.get_value(PREFIX_STATUS)
        query = BookingQuery(
            phone=Phone.of(phone) if phone is not None else None,
            on_date=parse_date(on_date) if on_date is not None else None,
            status=BookingStatus.parse(status) if status is not None else None,
        )
        return build_command(FilterBookingsCommand, query=query)

    def _parse_blist(self, args: str) -> ListBookingsCommand:
        flag = args.strip()
        if flag not in ("", SHOW_ALL_FLAG):
            raise ValidationException(MESSAGE_INVALID_FORMAT.format(USAGE_BLIST))
        return ListBookingsCommand(show_all=flag == SHOW_ALL_FLAG)


class CommandDispatcher:
    """Выполняет строку команды и возвращает результат для пользователя.

    Доменные ошибки превращаются в результат с is_error=True.
    """

    def __init__(
        self,
        service: BookingApplicationService,
        parser: Optional[BookingCommandParser] = None,
        logger: Optional[ports.ILogger] = None,
    ):
        self._service = service
        self._parser = parser or BookingCommandParser()
        self._logger = logger or get_logger(__name__)
        self._handlers: Dict[Type, Callable[..., CommandResult]] = {
            AddBookingCommand: service.add_booking,
            EditBookingCommand: service.edit_booking,
            DeleteBookingCommand: service.delete_booking,
            MarkBookingCommand: service.mark_booking,
            FilterBookingsCommand: service.filter_bookings,
            ListBookingsCommand: service.list_bookings,
            ClearBookingsCommand: service.clear_bookings,
            TodayCommand: service.today,
        }

    @property
    def service(self) -> BookingApplicationService:
        return self._service

    def execute(self, line: str) -> CommandResult:
        try:
            command = self._parser.parse(line)
            return self._handlers[type(command)](command)
        except DomainException as e:
            self._logger.warning("Команда отклонена", command=line, error=str(e))
            return CommandResult(str(e), is_error=True)
