# Copyright (c) 2026, Sebastian Ortiz Valencia and contributors
# For license information, please see license.txt

"""
Calendar Store

SQLAlchemy engine and session handling for the scheduling engine:
- serializable write transactions (SQLite: BEGIN IMMEDIATE)
- overlap range queries over appointments and blockers
- scoped deletes by series / blocker group
- practice settings key/value access
"""

import logging
from contextlib import contextmanager
from typing import Dict, Iterable, Iterator, List, Optional, Sequence

from sqlalchemy import create_engine, delete, event, select
from sqlalchemy.exc import DBAPIError, SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from physiobook.physiobook.exceptions import SchedulingError, SerializationFailure, StorageError
from physiobook.physiobook.models import (
	ACTIVE_STATUSES,
	Appointment,
	Base,
	Blocker,
	PracticeSettings,
	Setting,
)
from physiobook.physiobook.utils import load_model

logger = logging.getLogger(__name__)

# Opción de ejecución que marca las conexiones de escritura serializable en SQLite
IMMEDIATE_OPTION = "physiobook_begin_immediate"

# SQLSTATE de fallo de serialización (PostgreSQL y otros)
SERIALIZATION_SQLSTATES = ("40001", "40P01")


def _is_memory_url(database_url: str) -> bool:
	return database_url in ("sqlite://", "sqlite:///:memory:") or "mode=memory" in database_url


def _is_serialization_failure(error: DBAPIError) -> bool:
	orig = getattr(error, "orig", None)
	sqlstate = getattr(orig, "pgcode", None) or getattr(orig, "sqlstate", None)
	if sqlstate in SERIALIZATION_SQLSTATES:
		return True

	# SQLite: busy_timeout agotado esperando el lock de escritura
	message = str(orig or error).lower()
	return "database is locked" in message or "database is busy" in message


class CalendarStore:
	"""
	Authoritative store handle. Built once and passed to every component.

	Args:
		database_url: SQLAlchemy URL (default store is a SQLite file)
		busy_timeout_ms: SQLite busy timeout for competing writers
		echo: log every SQL statement
	"""

	def __init__(self, database_url: str, busy_timeout_ms: int = 5000, echo: bool = False):
		self.database_url = database_url
		self.busy_timeout_ms = busy_timeout_ms

		engine_config = {"echo": echo, "future": True}
		if database_url.startswith("sqlite"):
			engine_config["connect_args"] = {"check_same_thread": False}
			if _is_memory_url(database_url):
				# Una sola conexión compartida, si no cada sesión ve una base vacía
				engine_config["poolclass"] = StaticPool
		else:
			engine_config["pool_pre_ping"] = True

		self.engine = create_engine(database_url, **engine_config)
		self.is_sqlite = self.engine.dialect.name == "sqlite"

		if self.is_sqlite:
			self._install_sqlite_hooks()
			write_bind = self.engine.execution_options(**{IMMEDIATE_OPTION: True})
		else:
			write_bind = self.engine.execution_options(isolation_level="SERIALIZABLE")

		self._session_factory = sessionmaker(
			bind=self.engine, expire_on_commit=False, autoflush=False
		)
		self._serializable_factory = sessionmaker(
			bind=write_bind, expire_on_commit=False, autoflush=False
		)

	def _install_sqlite_hooks(self) -> None:
		"""
		Desactiva el manejo implícito de transacciones de pysqlite para que el
		propio engine emita BEGIN o BEGIN IMMEDIATE.
		"""
		busy_timeout_ms = int(self.busy_timeout_ms)

		@event.listens_for(self.engine, "connect")
		def _on_connect(dbapi_connection, connection_record):
			dbapi_connection.isolation_level = None
			cursor = dbapi_connection.cursor()
			try:
				cursor.execute("PRAGMA foreign_keys = ON")
				cursor.execute(f"PRAGMA busy_timeout = {busy_timeout_ms}")
				cursor.execute("PRAGMA journal_mode = WAL")
			finally:
				cursor.close()

		@event.listens_for(self.engine, "begin")
		def _on_begin(conn):
			if conn.get_execution_options().get(IMMEDIATE_OPTION):
				conn.exec_driver_sql("BEGIN IMMEDIATE")
			else:
				conn.exec_driver_sql("BEGIN")

	def create_all(self) -> None:
		"""Crea las tablas que falten."""
		try:
			Base.metadata.create_all(self.engine)
		except SQLAlchemyError as e:
			raise StorageError(f"Could not create schema: {e}") from e

	def dispose(self) -> None:
		self.engine.dispose()

	# ===== SESSIONS =====

	@contextmanager
	def transaction(self, serializable: bool = True) -> Iterator[Session]:
		"""
		Transacción de escritura: commit al salir, rollback ante cualquier error.

		Args:
			serializable: True para la ruta de reserva pública (SQLite: BEGIN
				IMMEDIATE, resto: SERIALIZABLE). False para escrituras admin.

		Raises:
			SerializationFailure: la base abortó por una escritura concurrente
			StorageError: cualquier otro fallo de SQLAlchemy
		"""
		factory = self._serializable_factory if serializable else self._session_factory
		session = factory()
		try:
			yield session
			session.commit()
		except SchedulingError:
			session.rollback()
			raise
		except DBAPIError as e:
			session.rollback()
			if _is_serialization_failure(e):
				raise SerializationFailure(f"Concurrent write aborted the transaction: {e.orig}") from e
			logger.error(f"Database error: {e}")
			raise StorageError(f"Database error: {e.orig}") from e
		except SQLAlchemyError as e:
			session.rollback()
			logger.error(f"Database error: {e}")
			raise StorageError(f"Database error: {e}") from e
		except Exception:
			session.rollback()
			raise
		finally:
			session.close()

	@contextmanager
	def read(self) -> Iterator[Session]:
		"""Sesión de solo lectura, sin lock. Los datos pueden quedar obsoletos."""
		session = self._session_factory()
		try:
			yield session
		except SQLAlchemyError as e:
			logger.error(f"Database read error: {e}")
			raise StorageError(f"Database error: {e}") from e
		finally:
			session.close()

	@contextmanager
	def _use(self, session: Optional[Session]) -> Iterator[Session]:
		if session is not None:
			yield session
		else:
			with self.read() as own:
				yield own

	# ===== WRITES =====

	def insert(self, session: Session, row) -> None:
		"""Valida (hook validate() del modelo) e inserta la fila en la transacción."""
		if hasattr(row, "validate"):
			row.validate()
		session.add(row)
		session.flush()

	def delete_appointment(self, session: Session, appointment_id: str) -> int:
		result = session.execute(delete(Appointment).where(Appointment.id == appointment_id))
		return result.rowcount

	def delete_series(self, session: Session, series_id: str) -> int:
		result = session.execute(delete(Appointment).where(Appointment.series_id == series_id))
		return result.rowcount

	def delete_blocker(self, session: Session, blocker_id: str) -> int:
		result = session.execute(delete(Blocker).where(Blocker.id == blocker_id))
		return result.rowcount

	def delete_blocker_group(self, session: Session, group_id: str) -> int:
		result = session.execute(delete(Blocker).where(Blocker.blocker_group_id == group_id))
		return result.rowcount

	# ===== QUERIES =====

	def find_overlapping_appointments(
		self,
		start: int,
		end: int,
		statuses: Sequence[str] = ACTIVE_STATUSES,
		exclude_ids: Iterable[str] = (),
		session: Optional[Session] = None,
	) -> List[Appointment]:
		"""
		Appointments cuyo intervalo se solapa con [start, end).

		Condición de overlap: start_time < end AND end_time > start
		"""
		stmt = select(Appointment).where(
			Appointment.start_time < end,
			Appointment.end_time > start,
		)
		if statuses:
			stmt = stmt.where(Appointment.status.in_(list(statuses)))
		exclude_ids = [i for i in exclude_ids if i]
		if exclude_ids:
			stmt = stmt.where(Appointment.id.not_in(exclude_ids))
		stmt = stmt.order_by(Appointment.start_time)

		with self._use(session) as s:
			return list(s.scalars(stmt))

	def find_overlapping_blockers(
		self,
		start: int,
		end: int,
		exclude_ids: Iterable[str] = (),
		session: Optional[Session] = None,
	) -> List[Blocker]:
		stmt = select(Blocker).where(Blocker.start_time < end, Blocker.end_time > start)
		exclude_ids = [i for i in exclude_ids if i]
		if exclude_ids:
			stmt = stmt.where(Blocker.id.not_in(exclude_ids))
		stmt = stmt.order_by(Blocker.start_time)

		with self._use(session) as s:
			return list(s.scalars(stmt))

	def get_appointment(self, appointment_id: str, session: Optional[Session] = None) -> Optional[Appointment]:
		with self._use(session) as s:
			return s.get(Appointment, appointment_id)

	def get_blocker(self, blocker_id: str, session: Optional[Session] = None) -> Optional[Blocker]:
		with self._use(session) as s:
			return s.get(Blocker, blocker_id)

	def series_members(
		self,
		series_id: str,
		starting_at: Optional[int] = None,
		session: Optional[Session] = None,
	) -> List[Appointment]:
		stmt = select(Appointment).where(Appointment.series_id == series_id)
		if starting_at is not None:
			stmt = stmt.where(Appointment.start_time >= starting_at)
		stmt = stmt.order_by(Appointment.start_time)

		with self._use(session) as s:
			return list(s.scalars(stmt))

	def stale_requests(self, created_before: int, session: Optional[Session] = None) -> List[str]:
		"""IDs de appointments REQUESTED creados antes de `created_before`."""
		stmt = (
			select(Appointment.id)
			.where(Appointment.status == "REQUESTED", Appointment.created_at < created_before)
			.order_by(Appointment.created_at)
		)
		with self._use(session) as s:
			return list(s.scalars(stmt))

	# ===== SETTINGS =====

	def get_settings(self, session: Optional[Session] = None) -> PracticeSettings:
		"""Settings de la consulta con defaults para las claves ausentes."""
		with self._use(session) as s:
			rows = s.scalars(select(Setting)).all()
			stored = {row.key: row.value for row in rows}
		return load_model(PracticeSettings, stored)

	def update_settings(self, values: Dict[str, str]) -> PracticeSettings:
		"""
		Valida y guarda settings. Las claves desconocidas se ignoran.

		Args:
			values: dict con claves camelCase (morningStart, slotDuration...)

		Returns:
			PracticeSettings: configuración resultante
		"""
		with self.transaction(serializable=False) as session:
			current = self.get_settings(session=session).to_mapping()
			known = {key: value for key, value in values.items() if key in current}
			merged = load_model(PracticeSettings, {**current, **known})

			mapping = merged.to_mapping()
			for key in known:
				session.merge(Setting(key=key, value=mapping[key]))

		logger.info(f"Practice settings updated: {', '.join(sorted(known)) or 'nothing'}")
		return merged
