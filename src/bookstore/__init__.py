"""Bookstore service with a field-level change audit trail."""

__version__ = "0.1.0"
