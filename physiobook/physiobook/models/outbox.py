# Copyright (c) 2026, Sebastian Ortiz Valencia and contributors
# For license information, please see license.txt

"""
Email outbox row. The engine only writes PENDING rows; delivery happens elsewhere.
"""

from sqlalchemy import BigInteger, CheckConstraint, Column, Index, Integer, String, Text

from physiobook.physiobook.models.base import Base

OUTBOX_PENDING = "PENDING"
OUTBOX_SENT = "SENT"
OUTBOX_FAILED = "FAILED"


class OutboxMessage(Base):
	__tablename__ = "email_outbox"

	id = Column(String(36), primary_key=True)
	to_address = Column(String(254), nullable=False)
	subject = Column(String(255), nullable=False)
	html = Column(Text, nullable=False)
	status = Column(String(16), nullable=False, default=OUTBOX_PENDING)
	attempts = Column(Integer, nullable=False, default=0)
	created_at = Column(BigInteger, nullable=False)
	sent_at = Column(BigInteger, nullable=True)

	__table_args__ = (
		CheckConstraint("status IN ('PENDING', 'SENT', 'FAILED')", name="ck_email_outbox_status"),
		Index("idx_email_outbox_status", "status"),
	)

	def __repr__(self) -> str:
		return f"<OutboxMessage {self.id} to={self.to_address} {self.status}>"
