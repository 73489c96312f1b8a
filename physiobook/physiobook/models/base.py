# Copyright (c) 2026, Sebastian Ortiz Valencia and contributors
# For license information, please see license.txt

"""
Declarative base for the scheduling tables.
"""

from sqlalchemy.orm import declarative_base

Base = declarative_base()
