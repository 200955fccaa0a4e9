# src/sittr/api/__init__.py
"""
HTTP surface: cron trigger routes and the shared response envelope.
"""
