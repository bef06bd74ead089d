"""Application bootstrap and lifecycle management."""

from datetime import datetime
from typing import Any, Callable, Protocol

from telegram import Update
from telegram.ext import Application as PollingApplication
from telegram.ext import CallbackQueryHandler, ContextTypes, MessageHandler, filters

from .bot import CommandRouter
from .config import Settings
from .dialogue import DialogContinuation
from .holidays import HolidayService
from .lifecycle import ReviewLifecycle, ReviewMessageBuilder
from .logging_config import get_logger
from .notifications import NotificationScheduler
from .storage import IStorage, Storage
from .tracker import ITracker, Tracker
from .translation import TranslateProvider
from .transport import ITransport, TelegramTransport, parse_update

logger = get_logger(__name__)


class IApplication(Protocol):
    """Bootstrap and lifecycle."""

    async def start(self) -> None:
        """Initialize components in dependency order."""
        ...

    async def stop(self) -> None:
        """Shutdown in reverse order."""
        ...

    async def reset(self) -> None:
        """Reset data between test runs."""
        ...

    async def handle_update(self, update: dict[str, Any]) -> bool:
        """Route one raw Telegram update; False if it was ignored."""
        ...

    @property
    def storage(self) -> IStorage: ...


class Application:
    """Main application bootstrap."""

    def __init__(
        self,
        settings: Settings | None = None,
        transport: ITransport | None = None,
        clock: Callable[[], datetime] | None = None,
        run_background: bool = True,
    ):
        self._settings = settings or Settings.from_env()
        self._injected_transport = transport
        self._clock = clock
        self._run_background = run_background

        # Components (will be initialized in start())
        self._storage: Storage | None = None
        self._tracker: ITracker | None = None
        self._transport: ITransport | None = None
        self._dialogs: DialogContinuation | None = None
        self._holidays: HolidayService | None = None
        self._lifecycle: ReviewLifecycle | None = None
        self._router: CommandRouter | None = None
        self._scheduler: NotificationScheduler | None = None
        self._polling: PollingApplication | None = None

    async def start(self) -> None:
        """Initialize components in dependency order."""
        logger.info("Starting application")
        settings = self._settings

        # 1. Storage (no dependencies)
        self._storage = Storage(settings.db_path)
        await self._storage.init()
        logger.info("Storage initialized")

        # 2. Tracker (depends on Storage)
        self._tracker = Tracker(self._storage)

        # 3. Transport (Telegram unless one was injected)
        self._transport = self._injected_transport or TelegramTransport(
            settings.bot_token or ""
        )
        translate = TranslateProvider()
        messages = ReviewMessageBuilder(translate)

        # 4. Domain services
        self._dialogs = DialogContinuation(self._storage)
        self._holidays = HolidayService(
            self._storage, settings.holidays_cache_ttl, self._clock
        )
        self._lifecycle = ReviewLifecycle(
            tasks=self._storage,
            teams=self._storage,
            transport=self._transport,
            messages=messages,
            tracker=self._tracker,
            notification_interval=settings.workday.notification_interval,
            clock=self._clock,
        )
        self._router = CommandRouter(
            settings=settings,
            dialogs=self._dialogs,
            tasks=self._storage,
            teams=self._storage,
            lifecycle=self._lifecycle,
            transport=self._transport,
            translate_provider=translate,
            tracker=self._tracker,
        )
        self._scheduler = NotificationScheduler(
            tasks=self._storage,
            holidays=self._holidays,
            transport=self._transport,
            messages=messages,
            tracker=self._tracker,
            options=settings.workday,
            batch_size=settings.notifications_batch,
            delay=settings.notifications_delay,
            clock=self._clock,
        )
        logger.info("Components initialized")

        # 5. Background loops
        if self._run_background:
            await self._scheduler.start()
            if settings.use_polling and isinstance(self._transport, TelegramTransport):
                await self._start_polling(self._transport)

        logger.info("All components initialized successfully")

    async def stop(self) -> None:
        """Shutdown in reverse order."""
        if self._polling:
            await self._polling.updater.stop()
            await self._polling.stop()
            await self._polling.shutdown()
            self._polling = None
            logger.info("Long polling stopped")
        if self._scheduler:
            await self._scheduler.stop()
        if isinstance(self._transport, TelegramTransport):
            await self._transport.close()
        if self._storage:
            await self._storage.close()
            logger.info("Storage closed")

    async def reset(self) -> None:
        """Reset data between test runs."""
        if self._storage:
            await self._storage.clear()
            logger.info("Storage cleared")
        if self._dialogs:
            self._dialogs.forget_all()
        if self._holidays:
            await self._holidays.refresh()
        logger.info("Reset complete")

    async def handle_update(self, update: dict[str, Any]) -> bool:
        """Route one raw Telegram update; False if it was ignored."""
        bot = self._transport.bot if isinstance(self._transport, TelegramTransport) else None
        try:
            parsed = Update.de_json(update, bot)
        except (KeyError, TypeError, ValueError) as e:
            logger.warning("Malformed update %s: %s", update.get("update_id"), e)
            return False
        return await self._route(parsed)

    async def _route(self, update: Update) -> bool:
        message = parse_update(update)
        if isinstance(self._transport, TelegramTransport):
            await self._transport.acknowledge(update)
        if message is None:
            return False
        await self.router.handle(message)
        return True

    async def _start_polling(self, transport: TelegramTransport) -> None:
        polling = (
            PollingApplication.builder()
            .bot(transport.bot)
            .concurrent_updates(True)  # the router serializes per user
            .build()
        )
        polling.add_handler(MessageHandler(filters.TEXT, self._on_polled_update))
        polling.add_handler(CallbackQueryHandler(self._on_polled_update))
        polling.add_error_handler(self._on_polling_error)

        await polling.initialize()
        await polling.start()
        await polling.updater.start_polling(
            allowed_updates=[Update.MESSAGE, Update.CALLBACK_QUERY]
        )
        self._polling = polling
        logger.info("Long polling started")

    async def _on_polled_update(
        self, update: Update, context: ContextTypes.DEFAULT_TYPE
    ) -> None:
        await self._route(update)

    async def _on_polling_error(
        self, update: object, context: ContextTypes.DEFAULT_TYPE
    ) -> None:
        update_id = update.update_id if isinstance(update, Update) else None
        logger.error(
            "Polled update %s failed: %s", update_id, context.error, exc_info=context.error
        )

    @property
    def settings(self) -> Settings:
        return self._settings

    @property
    def storage(self) -> IStorage:
        """Get storage instance."""
        if not self._storage:
            raise RuntimeError("Application not started")
        return self._storage

    @property
    def router(self) -> CommandRouter:
        """Get command router instance."""
        if not self._router:
            raise RuntimeError("Application not started")
        return self._router

    @property
    def lifecycle(self) -> ReviewLifecycle:
        if not self._lifecycle:
            raise RuntimeError("Application not started")
        return self._lifecycle

    @property
    def scheduler(self) -> NotificationScheduler:
        if not self._scheduler:
            raise RuntimeError("Application not started")
        return self._scheduler

    @property
    def holidays(self) -> HolidayService:
        if not self._holidays:
            raise RuntimeError("Application not started")
        return self._holidays
