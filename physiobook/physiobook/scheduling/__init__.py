"""
Scheduling Services Module

This module provides core business logic for appointment scheduling:
- Overlap detection and conflict resolution (overlap.py)
- Civil time <-> instant conversion (timezone.py)
- Slot generation (slots.py)
- Race-safe public booking (booking.py)
- Recurring series (series.py)
- Appointment lifecycle (lifecycle.py)
- Admin calendar operations (calendar_service.py)
- Notes moderation (notes_filter.py)
- Scheduled tasks (tasks.py)
"""
