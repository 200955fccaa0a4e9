# src/sittr/services/__init__.py
"""
Services: the notification dispatcher, the maintenance jobs and the
in-process scheduler.
"""
