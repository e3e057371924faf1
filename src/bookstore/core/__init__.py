"""Core infrastructure: database, audit trail, errors and logging."""
