"""
Application context.

Builds the store handle once and wires every component through its
constructor. Endpoint functions receive the context explicitly.
"""

import logging
from typing import Optional

from physiobook.config import Settings, get_settings
from physiobook.logging_config import setup_logging
from physiobook.physiobook.notifications.appointment import OutboxNotifier
from physiobook.physiobook.scheduling.booking import BookingService
from physiobook.physiobook.scheduling.calendar_service import CalendarService
from physiobook.physiobook.scheduling.lifecycle import AppointmentLifecycle
from physiobook.physiobook.scheduling.overlap import ConflictResolver
from physiobook.physiobook.scheduling.series import SeriesExpander
from physiobook.physiobook.scheduling.timezone import TimeZoneNormalizer
from physiobook.physiobook.storage.store import CalendarStore

logger = logging.getLogger(__name__)


class AppContext:
	"""Container for the wired components."""

	def __init__(self, settings: Settings, store: CalendarStore, normalizer: TimeZoneNormalizer):
		self.settings = settings
		self.store = store
		self.normalizer = normalizer

		self.notifier = OutboxNotifier(normalizer)
		self.resolver = ConflictResolver(store)
		self.series = SeriesExpander(store, self.resolver, normalizer)
		self.booking = BookingService(store, self.resolver, self.notifier)
		self.lifecycle = AppointmentLifecycle(store, self.notifier)
		self.calendar = CalendarService(store, self.resolver, self.series)

	def close(self) -> None:
		self.store.dispose()


def build_context(
	settings: Optional[Settings] = None,
	create_schema: bool = True,
	configure_logging: bool = True,
) -> AppContext:
	"""
	Build the application context.

	Args:
		settings: process settings (default: environment / .env)
		create_schema: create missing tables
		configure_logging: install console/file handlers on the package logger

	Returns:
		AppContext
	"""
	settings = settings or get_settings()

	if configure_logging:
		setup_logging(
			"physiobook",
			log_level=settings.log_level,
			log_file=settings.log_file,
			log_dir=settings.log_dir,
		)

	normalizer = TimeZoneNormalizer(settings.timezone)
	store = CalendarStore(
		settings.database_url,
		busy_timeout_ms=settings.busy_timeout_ms,
		echo=settings.database_echo,
	)
	if create_schema:
		store.create_all()

	logger.info(f"Physiobook context ready (tz={settings.timezone})")
	return AppContext(settings, store, normalizer)
