"""
Notification outbox for appointment events.
"""
