# src/sittr/__init__.py
"""
Sittr background maintenance service.

Scheduled jobs that keep the pet-sitting data store tidy and tell people
about overdue tasks, unclaimed tasks and pet birthdays.
"""

__version__ = "1.0.0"
