"""
Physiobook scheduling engine.

Slot allocation, conflict resolution and appointment lifecycle for a
single-practitioner practice.
"""
