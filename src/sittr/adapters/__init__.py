# src/sittr/adapters/__init__.py
"""
Adapters implementing the core ports (entity store, object storage).
"""
