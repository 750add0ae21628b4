from functools import partial
from typing import Any, Dict, Optional

from .addressbook import (
    AddressBook,
    AddressBookUnitOfWork,
    BookingApplicationService,
    CommandDispatcher,
    JsonFileAddressBookStorage,
    PersonAdded,
    PersonRemoved,
)
from .addressbook.interfaces import ILogger
from .booking import (
    BookingCreated,
    BookingDeleted,
    BookingEdited,
    BookingStatusChanged,
    RetiredBookingsCleared,
)
from .core.config import Settings, get_settings
from .core.logging import get_logger, setup_logging
from .shared_kernel import DomainEvent

AUDITED_EVENTS = (
    BookingCreated,
    BookingEdited,
    BookingStatusChanged,
    BookingDeleted,
    RetiredBookingsCleared,
    PersonAdded,
    PersonRemoved,
)


def log_domain_event(event: DomainEvent, logger: ILogger) -> None:
    """Обработчик, записывающий доменное событие в журнал."""
    logger.info(
        "Доменное событие",
        event_type=event.event_type,
        payload=event.model_dump(mode="json", exclude={"event_id", "occurred_on"}),
    )


def bootstrap_app(settings: Optional[Settings] = None) -> Dict[str, Any]:
    """Создает и настраивает все компоненты приложения."""
    settings = settings or get_settings()

    # 1. Логирование
    setup_logging(settings)
    logger = get_logger(__name__)

    # 2. Загружаем сохраненные данные, если они есть
    storage = JsonFileAddressBookStorage(settings.DATA_FILE, logger)
    snapshot = storage.load()
    address_book = (
        AddressBook.from_snapshot(snapshot) if snapshot is not None else AddressBook()
    )

    # 3. Unit of Work сохраняет снимок при фиксации, если включено автосохранение
    uow = AddressBookUnitOfWork(
        address_book=address_book,
        storage=storage if settings.AUTOSAVE else None,
        logger=logger,
    )

    # 4. Сервис и диспетчер команд
    service = BookingApplicationService(uow, logger)
    dispatcher = CommandDispatcher(service, logger=logger)

    # 5. Подписываем обработчики на события
    handler = partial(log_domain_event, logger=logger)
    for event_type in AUDITED_EVENTS:
        uow.event_bus.subscribe(event_type, handler)

    # Возвращаем настроенные компоненты
    return {
        "settings": settings,
        "storage": storage,
        "uow": uow,
        "service": service,
        "dispatcher": dispatcher,
    }
