# Copyright (c) 2026, Sebastian Ortiz Valencia and contributors
# For license information, please see license.txt

"""
Scheduling Exceptions

Structured error taxonomy for the scheduling engine. Every error carries a
machine-readable code and the HTTP-equivalent status the API layer uses when
turning it into an outcome dict.
"""

from typing import Any, Dict, List, Optional


class SchedulingError(Exception):
	"""Base exception for scheduling operations."""

	code = "SCHEDULING_ERROR"
	http_status = 500

	def __init__(self, message: str):
		super().__init__(message)
		self.message = message

	def to_dict(self) -> Dict[str, Any]:
		return {"code": self.code, "message": self.message}


class ValidationError(SchedulingError):
	"""Raised when input is malformed. Always raised before touching storage."""

	code = "VALIDATION_ERROR"
	http_status = 400

	def __init__(self, field: str, message: str):
		super().__init__(message)
		self.field = field

	def to_dict(self) -> Dict[str, Any]:
		data = super().to_dict()
		data["field"] = self.field
		return data


class ConflictError(SchedulingError):
	"""Raised when a requested interval overlaps an active commitment."""

	code = "SLOT_TAKEN"
	http_status = 409

	def __init__(
		self,
		message: str = "This time slot is already taken. Please pick another time.",
		conflicts: Optional[List[Dict[str, Any]]] = None
	):
		super().__init__(message)
		self.conflicts = conflicts or []

	def to_dict(self) -> Dict[str, Any]:
		data = super().to_dict()
		if self.conflicts:
			data["conflicts"] = self.conflicts
		return data


class InvalidTransitionError(SchedulingError):
	"""Raised when a lifecycle transition is not allowed from the current status."""

	code = "INVALID_TRANSITION"
	http_status = 409

	def __init__(self, current: str, target: str, message: Optional[str] = None):
		super().__init__(
			message or f"Cannot move appointment from {current} to {target}"
		)
		self.current = current
		self.target = target

	def to_dict(self) -> Dict[str, Any]:
		data = super().to_dict()
		data["current_status"] = self.current
		data["target_status"] = self.target
		return data


class NotFoundError(SchedulingError):
	"""Raised when an appointment or blocker does not exist."""

	code = "NOT_FOUND"
	http_status = 404

	def __init__(self, entity: str, entity_id: str):
		super().__init__(f"{entity} '{entity_id}' not found")
		self.entity = entity
		self.entity_id = entity_id


class StorageError(SchedulingError):
	"""Raised when the storage layer fails. Propagated, never retried here."""

	code = "STORAGE_ERROR"
	http_status = 500


class SerializationFailure(StorageError):
	"""Raised when the database aborts a transaction because of a concurrent write."""

	code = "SERIALIZATION_FAILURE"
