# src/sittr/core/__init__.py
"""
Core layer: domain models, ports, clock, errors and the DI container.
"""
