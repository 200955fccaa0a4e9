# tests/unit/__init__.py
"""
Unit tests for the maintenance service.

Unit tests cover models, adapters, config and the dispatcher in isolation
from the job runner and the HTTP layer.
"""
