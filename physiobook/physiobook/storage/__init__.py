"""
Storage layer: SQLAlchemy engine, sessions and calendar queries.
"""

from physiobook.physiobook.storage.store import CalendarStore

__all__ = ["CalendarStore"]
