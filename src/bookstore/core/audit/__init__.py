"""Audit trail for tracking data changes.

Provides:
- AuditLog model for storing audit entries
- CapabilityRegistry describing which entity types are audited
- AuditCommitHook capturing changes at flush time via SQLAlchemy events
"""

from bookstore.core.audit.actor import (
    ActorContextMiddleware,
    ActorResolver,
    get_current_actor,
    resolve_actor,
)
from bookstore.core.audit.classifier import MutationKind, PendingMutation
from bookstore.core.audit.diff import ChangeRecord
from bookstore.core.audit.hook import AuditCommitHook, setup_audit_trail
from bookstore.core.audit.models import AuditLog
from bookstore.core.audit.registry import (
    AuditCapability,
    CapabilityRegistry,
    SensitivityPolicy,
)


__all__ = [
    "ActorContextMiddleware",
    "ActorResolver",
    "AuditCapability",
    "AuditCommitHook",
    "AuditLog",
    "CapabilityRegistry",
    "ChangeRecord",
    "MutationKind",
    "PendingMutation",
    "SensitivityPolicy",
    "get_current_actor",
    "resolve_actor",
    "setup_audit_trail",
]
