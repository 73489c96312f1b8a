"""
Appointment API Endpoints

Thin functions for the web layer. Each one validates raw input, calls the
scheduling core and returns a structured outcome:

	{"ok": True, "status": 200|201, ...}
	{"ok": False, "status": 400|404|409|500, "error": {"code", "message", ...}}

Authentication, CSRF and rate limiting are handled by the caller.
"""

import functools
import logging
from typing import Any, Callable, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field

from physiobook.api.context import AppContext
from physiobook.api.shared import (
	sanitize_string,
	validate_date_string,
	validate_docname,
	validate_epoch_ms,
	validate_scope,
)
from physiobook.physiobook.exceptions import SchedulingError
from physiobook.physiobook.scheduling.booking import BookingRequest
from physiobook.physiobook.scheduling.calendar_service import (
	APPOINTMENT_DELETE_SCOPES,
	APPOINTMENT_UPDATE_SCOPES,
	BLOCKER_DELETE_SCOPES,
)
from physiobook.physiobook.scheduling.slots import get_available_slots as available_slots_for_day
from physiobook.physiobook.scheduling.tasks import expire_stale_requests
from physiobook.physiobook.utils import load_model

logger = logging.getLogger(__name__)

Outcome = Dict[str, Any]


class SeriesOptions(BaseModel):
	model_config = ConfigDict(populate_by_name=True, extra="ignore")

	count: int
	interval_days: int = Field(default=1, alias="intervalDays")


class AppointmentCreate(BaseModel):
	model_config = ConfigDict(populate_by_name=True, extra="ignore")

	patient_name: str = Field(alias="patientName")
	start_time: int = Field(alias="startTime")
	duration_minutes: int = Field(alias="durationMinutes")
	status: Optional[str] = None
	contact_email: Optional[str] = Field(default=None, alias="contactEmail")
	contact_phone: Optional[str] = Field(default=None, alias="contactPhone")
	notes: Optional[str] = None
	series: Optional[SeriesOptions] = None


class AppointmentUpdate(BaseModel):
	model_config = ConfigDict(populate_by_name=True, extra="ignore")

	patient_name: Optional[str] = Field(default=None, alias="patientName")
	start_time: Optional[int] = Field(default=None, alias="startTime")
	duration_minutes: Optional[int] = Field(default=None, alias="durationMinutes")
	contact_email: Optional[str] = Field(default=None, alias="contactEmail")
	contact_phone: Optional[str] = Field(default=None, alias="contactPhone")
	notes: Optional[str] = None
	status: Optional[str] = None


class BlockerCreate(BaseModel):
	model_config = ConfigDict(populate_by_name=True, extra="ignore")

	title: str
	start_time: int = Field(alias="startTime")
	end_time: int = Field(alias="endTime")
	series: Optional[SeriesOptions] = None


def api_endpoint(success_status: int = 200) -> Callable:
	"""
	Convert engine results and SchedulingError into outcome dicts.

	Unexpected exceptions are logged and propagate.
	"""
	def decorator(func: Callable) -> Callable:
		@functools.wraps(func)
		def wrapper(*args, **kwargs) -> Outcome:
			try:
				result = func(*args, **kwargs)
			except SchedulingError as e:
				if e.http_status >= 500:
					logger.error(f"{func.__name__} failed: {e.message}")
				return {"ok": False, "status": e.http_status, "error": e.to_dict()}
			except Exception:
				logger.exception(f"Unexpected error in {func.__name__}")
				raise

			outcome = {"ok": True, "status": success_status}
			outcome.update(result or {})
			return outcome
		return wrapper
	return decorator


# ===== PUBLIC =====

@api_endpoint()
def get_available_slots(ctx: AppContext, date: str, now_ms: Optional[int] = None) -> Outcome:
	"""
	Slots libres de un día para el widget público.

	Example Response:
		{"ok": True, "status": 200, "date": "2026-06-15",
		 "slots": [{"startInstant": 1781503200000, "endInstant": 1781505000000}, ...]}
	"""
	date = validate_date_string(date)
	slots = available_slots_for_day(ctx.store, ctx.normalizer, date, now_ms=now_ms)
	return {"date": date, "slots": slots}


@api_endpoint(success_status=201)
def request_appointment(ctx: AppContext, payload: Dict[str, Any]) -> Outcome:
	"""
	Solicitud pública de cita (queda REQUESTED hasta que el admin confirme).

	Args:
		payload: {"slotStartMs", "durationMinutes", "patientName", "contactEmail",
				  "contactPhone", "consentGiven"}
	"""
	request = load_model(BookingRequest, payload)
	request.patient_name = sanitize_string(request.patient_name)
	request.contact_phone = sanitize_string(request.contact_phone, max_length=50)

	result = ctx.booking.book_slot(request)
	return {
		"id": result["id"],
		"message": "Your request has been sent. You will receive an email once it is confirmed.",
	}


# ===== LIFECYCLE =====

def _transition_outcome(result: Dict[str, Any]) -> Outcome:
	# "status" del outcome es el código HTTP
	return {"appointmentStatus": result["status"], "changed": result["changed"]}


@api_endpoint()
def confirm_request(ctx: AppContext, appointment_id: str) -> Outcome:
	return _transition_outcome(ctx.lifecycle.confirm(validate_docname(appointment_id)))


@api_endpoint()
def reject_request(ctx: AppContext, appointment_id: str) -> Outcome:
	return _transition_outcome(ctx.lifecycle.reject(validate_docname(appointment_id)))


@api_endpoint()
def cancel_appointment(ctx: AppContext, appointment_id: str) -> Outcome:
	return _transition_outcome(ctx.lifecycle.cancel(validate_docname(appointment_id)))


# ===== ADMIN CALENDAR =====

@api_endpoint(success_status=201)
def create_appointment(ctx: AppContext, payload: Dict[str, Any]) -> Outcome:
	"""
	Crea un appointment (o una serie semanal con "series": {"count": n}).

	Returns:
		{"id"} o {"seriesId", "created", "skipped"}
	"""
	data = load_model(AppointmentCreate, payload)
	series = {"count": data.series.count} if data.series else None

	result = ctx.calendar.create_appointment(
		patient_name=sanitize_string(data.patient_name),
		start_time=data.start_time,
		duration_minutes=data.duration_minutes,
		status=data.status,
		contact_email=data.contact_email,
		contact_phone=sanitize_string(data.contact_phone, max_length=50),
		notes=data.notes,
		series=series,
	)
	if "series_id" in result:
		return {"seriesId": result["series_id"], "created": result["created"], "skipped": result["skipped"]}
	return result


@api_endpoint()
def update_appointment(
	ctx: AppContext,
	appointment_id: str,
	payload: Dict[str, Any],
	scope: Optional[str] = None,
) -> Outcome:
	scope = validate_scope(scope, APPOINTMENT_UPDATE_SCOPES)
	changes = load_model(AppointmentUpdate, payload).model_dump(exclude_unset=True)
	if "patient_name" in changes:
		changes["patient_name"] = sanitize_string(changes["patient_name"])
	if "contact_phone" in changes:
		changes["contact_phone"] = sanitize_string(changes["contact_phone"], max_length=50)
	return ctx.calendar.update_appointment(validate_docname(appointment_id), changes, scope=scope)


@api_endpoint()
def delete_appointment(ctx: AppContext, appointment_id: str, scope: Optional[str] = None) -> Outcome:
	scope = validate_scope(scope, APPOINTMENT_DELETE_SCOPES)
	return ctx.calendar.delete_appointment(validate_docname(appointment_id), scope=scope)


@api_endpoint()
def get_appointment(ctx: AppContext, appointment_id: str) -> Outcome:
	appointment = ctx.calendar.get_appointment(validate_docname(appointment_id))
	return {"appointment": appointment.to_dict()}


@api_endpoint()
def list_appointments(ctx: AppContext, range_from: Any, range_to: Any) -> Outcome:
	appointments = ctx.calendar.list_appointments(
		validate_epoch_ms(range_from, "from"), validate_epoch_ms(range_to, "to")
	)
	return {"appointments": [a.to_dict() for a in appointments]}


@api_endpoint(success_status=201)
def create_blocker(ctx: AppContext, payload: Dict[str, Any]) -> Outcome:
	"""
	Crea un blocker (o un grupo con "series": {"count": n, "intervalDays": d}).

	Returns:
		{"id"} o {"blockerGroupId", "created", "skipped"}
	"""
	data = load_model(BlockerCreate, payload)
	series = (
		{"count": data.series.count, "interval_days": data.series.interval_days}
		if data.series else None
	)

	result = ctx.calendar.create_blocker(
		sanitize_string(data.title), data.start_time, data.end_time, series=series
	)
	if "blocker_group_id" in result:
		return {
			"blockerGroupId": result["blocker_group_id"],
			"created": result["created"],
			"skipped": result["skipped"],
		}
	return result


@api_endpoint()
def delete_blocker(ctx: AppContext, blocker_id: str, scope: Optional[str] = None) -> Outcome:
	scope = validate_scope(scope, BLOCKER_DELETE_SCOPES)
	return ctx.calendar.delete_blocker(validate_docname(blocker_id), scope=scope)


@api_endpoint()
def list_blockers(ctx: AppContext, range_from: Any, range_to: Any) -> Outcome:
	blockers = ctx.calendar.list_blockers(
		validate_epoch_ms(range_from, "from"), validate_epoch_ms(range_to, "to")
	)
	return {"blockers": [b.to_dict() for b in blockers]}


# ===== SETTINGS & TASKS =====

@api_endpoint()
def get_settings(ctx: AppContext) -> Outcome:
	return {"settings": ctx.store.get_settings().to_mapping()}


@api_endpoint()
def update_settings(ctx: AppContext, payload: Dict[str, Any]) -> Outcome:
	values = {key: "" if value is None else str(value) for key, value in payload.items()}
	return {"settings": ctx.store.update_settings(values).to_mapping()}


@api_endpoint()
def run_expiry_sweep(ctx: AppContext, now_ms: Optional[int] = None) -> Outcome:
	"""Endpoint del cron: expira solicitudes sin respuesta."""
	return {"expired": expire_stale_requests(ctx.store, ctx.lifecycle, now_ms=now_ms)}
