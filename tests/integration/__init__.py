# tests/integration/__init__.py
"""
Integration tests for the maintenance service.

These drive the FastAPI app end to end: cron authentication, job routes and
the error envelope, against a temp SQLite store wired through the container.
"""
