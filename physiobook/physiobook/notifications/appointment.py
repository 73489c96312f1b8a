# Copyright (c) 2026, Sebastian Ortiz Valencia and contributors
# For license information, please see license.txt

"""
Appointment Notification Service

Builds the admin/patient emails for appointment events and enqueues them
in the email outbox inside the caller's transaction. Delivery (SMTP) is
done by an external worker reading PENDING rows.
"""

import html
import logging
from typing import Optional, Tuple

from sqlalchemy.orm import Session

from physiobook.physiobook.models import Appointment, OutboxMessage
from physiobook.physiobook.models.outbox import OUTBOX_PENDING
from physiobook.physiobook.utils import new_id, now_ms

logger = logging.getLogger(__name__)

Message = Tuple[str, str]


def build_request_message(appointment: Appointment, when: str) -> Message:
	"""
	Email al admin por una nueva solicitud pública.

	Returns:
		tuple: (subject, html)
	"""
	name = html.escape(appointment.patient_name)
	lines = [
		f"<p>Neue Terminanfrage von <strong>{name}</strong></p>",
		f"<p>E-Mail: {html.escape(appointment.contact_email or '')}</p>",
	]
	if appointment.contact_phone:
		lines.append(f"<p>Telefon: {html.escape(appointment.contact_phone)}</p>")
	lines.append(f"<p>Zeitpunkt: {when}</p>")
	lines.append(f"<p>Dauer: {appointment.duration_minutes} Minuten</p>")

	return f"Neue Terminanfrage von {appointment.patient_name}", "\n".join(lines)


def build_confirmation_message(appointment: Appointment, when: str) -> Message:
	name = html.escape(appointment.patient_name)
	body = (
		f"<p>Hallo {name},</p>\n"
		f"<p>Ihr Termin am <strong>{when}</strong> ({appointment.duration_minutes} Min.) "
		"wurde bestätigt.</p>\n"
		"<p>Wir freuen uns auf Ihren Besuch!</p>"
	)
	return "Ihr Termin wurde bestätigt", body


def build_rejection_message(appointment: Appointment, when: str) -> Message:
	name = html.escape(appointment.patient_name)
	body = (
		f"<p>Hallo {name},</p>\n"
		f"<p>Ihre Terminanfrage für den <strong>{when}</strong> konnte leider nicht "
		"bestätigt werden.</p>\n"
		"<p>Bitte versuchen Sie es mit einem anderen Zeitpunkt.</p>"
	)
	return "Ihre Terminanfrage konnte nicht bestätigt werden", body


class OutboxNotifier:
	"""
	Fire-and-forget notifier backed by the email_outbox table.

	Args:
		normalizer: TimeZoneNormalizer para formatear fechas en los emails
	"""

	def __init__(self, normalizer):
		self.normalizer = normalizer

	def enqueue(self, session: Session, to_address: str, subject: str, html_body: str) -> OutboxMessage:
		"""Escribe una fila PENDING en el outbox dentro de la transacción del llamador."""
		message = OutboxMessage(
			id=new_id(),
			to_address=to_address,
			subject=subject,
			html=html_body,
			status=OUTBOX_PENDING,
			attempts=0,
			created_at=now_ms(),
		)
		session.add(message)
		logger.debug(f"Queued email {message.id} to {to_address}: {subject}")
		return message

	def notify_new_request(
		self,
		session: Session,
		appointment: Appointment,
		admin_email: Optional[str],
	) -> Optional[OutboxMessage]:
		"""
		Encola el aviso al admin. Sin adminNotifyEmail configurado no se envía nada.
		"""
		if not admin_email:
			logger.warning(
				f"Admin notification skipped for appointment {appointment.id}: "
				"adminNotifyEmail is not configured."
			)
			return None

		subject, body = build_request_message(appointment, self.normalizer.format(appointment.start_time))
		return self.enqueue(session, admin_email, subject, body)

	def notify_confirmed(self, session: Session, appointment: Appointment) -> Optional[OutboxMessage]:
		if not appointment.contact_email:
			return None

		subject, body = build_confirmation_message(appointment, self.normalizer.format(appointment.start_time))
		return self.enqueue(session, appointment.contact_email, subject, body)

	def notify_rejected(self, session: Session, appointment: Appointment) -> Optional[OutboxMessage]:
		if not appointment.contact_email:
			return None

		subject, body = build_rejection_message(appointment, self.normalizer.format(appointment.start_time))
		return self.enqueue(session, appointment.contact_email, subject, body)
