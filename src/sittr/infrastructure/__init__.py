# src/sittr/infrastructure/__init__.py
"""
Infrastructure clients shared by the adapters.
"""
