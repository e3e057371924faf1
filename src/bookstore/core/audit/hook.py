"""Automatic audit capture via SQLAlchemy event listeners.

``AuditCommitHook`` listens on a session class. Every flush snapshots
the audited creates, updates and deletes it is about to write and merges
them per entity into the transaction's pending changes. When the
transaction commits, the merged changes become one audit log entry per
entity, written in the same transaction as the changes they describe.
A rollback discards the pending changes together with the data.
"""

from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any
from uuid import UUID

import structlog
from sqlalchemy import event, inspect
from sqlalchemy.orm import Session

from bookstore.core.audit.actor import ActorResolver, get_current_actor, resolve_actor
from bookstore.core.audit.builder import build_audit_entry, serialize_changes
from bookstore.core.audit.classifier import (
    MutationKind,
    PendingMutation,
    classify_mutations,
)
from bookstore.core.audit.diff import ChangeRecord, diff_snapshots
from bookstore.core.audit.models import AuditLog
from bookstore.core.audit.registry import AuditCapability, CapabilityRegistry
from bookstore.core.constants import REDACTION_TOKEN
from bookstore.core.errors import AuditSerializationError


log = structlog.get_logger()

Snapshot = dict[str, Any]

# session.info key of the transaction's pending changes
PENDING_CHANGES_KEY = "audit_pending_changes"


def utc_now() -> datetime:
    return datetime.now(UTC)


def collect_pending_mutations(session: Session) -> list[PendingMutation]:
    """Read the session's unit of work as a mutation batch.

    Order: new objects, then modified, then deleted.
    """
    mutations = [PendingMutation(obj, MutationKind.CREATED) for obj in session.new]
    mutations.extend(
        PendingMutation(obj, MutationKind.MODIFIED)
        for obj in session.dirty
        if session.is_modified(obj, include_collections=False)
    )
    mutations.extend(
        PendingMutation(obj, MutationKind.DELETED) for obj in session.deleted
    )
    return mutations


def take_snapshots(
    mutation: PendingMutation,
    capability: AuditCapability,
) -> tuple[Snapshot, Snapshot]:
    """Build the original and current field snapshots of a mutation.

    A created entity is compared against the type defaults, with
    unassigned attributes taking the column default the INSERT will
    write. A deleted entity has identical snapshots. Attributes that
    were never loaded are left out of both.
    """
    state = inspect(mutation.entity)

    if mutation.kind is MutationKind.CREATED:
        original = dict(capability.defaults)
        current = {
            name: state.dict.get(name, capability.defaults.get(name))
            for name in capability.fields
        }
        return original, current

    original = {}
    for name in capability.fields:
        history = state.attrs[name].history
        if history.deleted:
            original[name] = history.deleted[0]
        elif history.unchanged:
            original[name] = history.unchanged[0]
        elif name in state.dict:
            original[name] = state.dict[name]

    if mutation.kind is MutationKind.DELETED:
        return original, dict(original)

    current = {name: state.dict[name] for name in capability.fields if name in state.dict}
    return original, current


def resolve_entity_id(entity: Any, capability: AuditCapability) -> UUID | None:
    """Read the entity's UUID without triggering a load.

    Returns:
        The identifier, or None when the type has no single identifier
        column or the value is not a UUID
    """
    if capability.identifier is None:
        return None

    state = inspect(entity)
    value = state.dict.get(capability.identifier)
    if value is None and state.identity:
        value = state.identity[0]

    if isinstance(value, UUID):
        return value
    if isinstance(value, str):
        try:
            return UUID(value)
        except ValueError:
            return None
    return None


@dataclass
class TrackedChange:
    """Net change of one entity within a transaction.

    Attributes:
        entity: The changed instance
        kind: Net mutation kind
        capability: Audit description of the entity's type
        entity_id: Resolved identifier
        original: Field values before the first change
        current: Field values after the latest change
    """

    entity: Any
    kind: MutationKind
    capability: AuditCapability
    entity_id: UUID
    original: Snapshot = field(default_factory=dict)
    current: Snapshot = field(default_factory=dict)


def merge_changes(earlier: TrackedChange, later: TrackedChange) -> TrackedChange | None:
    """Fold a later flush's change of an entity into the earlier one.

    The first original snapshot is kept. Creating then modifying stays
    Created, and modifying then deleting becomes Deleted.

    Returns:
        The merged change, or None when an entity created in the
        transaction is deleted again before commit
    """
    if later.kind is MutationKind.DELETED:
        if earlier.kind is MutationKind.CREATED:
            return None
        original = {**later.original, **earlier.original}
        return TrackedChange(
            entity=earlier.entity,
            kind=MutationKind.DELETED,
            capability=earlier.capability,
            entity_id=earlier.entity_id,
            original=original,
            current=dict(original),
        )

    if earlier.kind is MutationKind.DELETED:
        return later

    return TrackedChange(
        entity=earlier.entity,
        kind=earlier.kind,
        capability=earlier.capability,
        entity_id=earlier.entity_id,
        original={**later.original, **earlier.original},
        current={**earlier.current, **later.current},
    )


def _keep_previous_value(_target: Any, _value: Any, _oldvalue: Any, _initiator: Any) -> None:
    """No-op "set" listener registered with active_history=True."""


class AuditCommitHook:
    """Turns a transaction's audited mutations into audit log entries.

    Everything the hook depends on is passed in: the capability
    registry, the actor resolver, the clock and the logger. Pending
    changes live in ``session.info``, so one hook serves concurrent
    sessions.
    """

    def __init__(
        self,
        registry: CapabilityRegistry,
        actor_resolver: ActorResolver = get_current_actor,
        clock: Callable[[], datetime] = utc_now,
        logger: Any = None,
        redaction_token: str = REDACTION_TOKEN,
    ) -> None:
        self.registry = registry
        self.actor_resolver = actor_resolver
        self.clock = clock
        self.logger = logger or log
        self.redaction_token = redaction_token
        self._targets: list[Any] = []

    # Session events

    def before_flush(self, session: Session, _flush_context: Any, _instances: Any) -> None:
        """Merge the flush's mutations into the transaction's pending changes.

        Raises:
            AuditSerializationError: If a change brought in by this flush
                cannot be encoded, so the flush that introduced it fails
        """
        pending = session.info.setdefault(PENDING_CHANGES_KEY, {})
        touched = self.track(collect_pending_mutations(session), pending)
        if not pending:
            del session.info[PENDING_CHANGES_KEY]
        for change in touched:
            self._check_encodable(change)

    def before_commit(self, session: Session) -> None:
        """Write one entry per entity changed in the committing transaction.

        Flushes first so changes made since the last flush are included.
        The entries themselves go out with the commit's final flush.
        """
        session.flush()
        pending = session.info.pop(PENDING_CHANGES_KEY, None)
        if not pending:
            return

        entries = self.entries_for(pending.values())
        if entries:
            session.add_all(entries)
            self.logger.debug("audit_batch_recorded", entry_count=len(entries))

    def discard(self, session: Session, *_args: Any) -> None:
        """Drop pending changes when the transaction rolls back."""
        if session.info.pop(PENDING_CHANGES_KEY, None):
            self.logger.debug("audit_pending_discarded")

    # Batch processing

    def track(
        self,
        mutations: Iterable[PendingMutation],
        pending: dict[int, TrackedChange],
    ) -> list[TrackedChange]:
        """Snapshot audited mutations and merge them into ``pending``.

        Entities without a usable identifier are skipped with a warning.

        Returns:
            The merged changes of the entities touched by ``mutations``
        """
        touched: list[TrackedChange] = []

        for mutation in classify_mutations(mutations, self.registry):
            capability = self.registry.get(mutation.entity_type)
            if capability is None:
                continue

            entity_id = resolve_entity_id(mutation.entity, capability)
            if entity_id is None:
                self.logger.warning(
                    "audit_skipped_no_identifier",
                    entity_name=capability.entity_name,
                    action=mutation.kind.value,
                )
                continue

            original, current = take_snapshots(mutation, capability)
            change = TrackedChange(
                entity=mutation.entity,
                kind=mutation.kind,
                capability=capability,
                entity_id=entity_id,
                original=original,
                current=current,
            )

            # The stored change keeps the entity alive, so its id() is stable
            key = id(mutation.entity)
            if key in pending:
                merged = merge_changes(pending[key], change)
                if merged is None:
                    del pending[key]
                    continue
                change = merged
            pending[key] = change
            touched.append(change)

        return touched

    def diff(self, change: TrackedChange) -> list[ChangeRecord]:
        return diff_snapshots(
            change.capability.fields,
            change.original,
            change.current,
            sensitive_fields=change.capability.sensitive_fields,
            mask_all=self.registry.masks_all_fields(type(change.entity)),
            redaction_token=self.redaction_token,
            logger=self.logger,
        )

    def entries_for(self, changes: Iterable[TrackedChange]) -> list[AuditLog]:
        """Build one entry per tracked change.

        The actor and the timestamp are resolved once for the batch.

        Raises:
            AuditSerializationError: If any entry's change details
                cannot be encoded
        """
        changes = list(changes)
        if not changes:
            return []

        actor = resolve_actor(self.actor_resolver, self.logger)
        timestamp = self.clock()
        entries: list[AuditLog] = []

        for change in changes:
            records = self.diff(change)
            try:
                entry = build_audit_entry(
                    PendingMutation(change.entity, change.kind),
                    entity_name=change.capability.entity_name,
                    entity_id=change.entity_id,
                    changes=records,
                    actor=actor,
                    timestamp=timestamp,
                )
            except AuditSerializationError:
                self._log_serialization_failure(change)
                raise

            self.logger.info(
                "audit_entry_added",
                entity_name=entry.entity_name,
                entity_id=str(entry.entity_id),
                action=entry.action,
                changed_by=entry.changed_by,
                change_count=len(records),
            )
            entries.append(entry)

        return entries

    def build_entries(self, mutations: Iterable[PendingMutation]) -> list[AuditLog]:
        """Classify, diff and build entries for a single mutation batch.

        Raises:
            AuditSerializationError: If any entry's change details
                cannot be encoded
        """
        pending: dict[int, TrackedChange] = {}
        self.track(mutations, pending)
        return self.entries_for(pending.values())

    def _check_encodable(self, change: TrackedChange) -> None:
        try:
            serialize_changes(self.diff(change))
        except AuditSerializationError:
            self._log_serialization_failure(change)
            raise

    def _log_serialization_failure(self, change: TrackedChange) -> None:
        self.logger.error(
            "audit_serialization_failed",
            entity_name=change.capability.entity_name,
            entity_id=str(change.entity_id),
            action=change.kind.value,
        )

    # Installation

    def _listeners(self) -> list[tuple[str, Callable[..., None]]]:
        return [
            ("before_flush", self.before_flush),
            ("before_commit", self.before_commit),
            ("after_rollback", self.discard),
            ("after_soft_rollback", self.discard),
        ]

    def install(self, target: Any) -> None:
        """Listen on ``target`` (Session subclass, sessionmaker or session).

        Also enables active history on the tracked columns of every
        audited type so replaced values of expired attributes are
        loaded before they are lost.
        """
        for entity_type in self.registry.audited_types():
            capability = self.registry.get(entity_type)
            if capability is None:
                continue
            for name in capability.fields:
                attribute = getattr(entity_type, name)
                if not event.contains(attribute, "set", _keep_previous_value):
                    event.listen(
                        attribute, "set", _keep_previous_value, active_history=True
                    )

        for identifier, listener in self._listeners():
            event.listen(target, identifier, listener)
        self._targets.append(target)

    def remove(self) -> None:
        """Detach from every target passed to install()."""
        for target in self._targets:
            for identifier, listener in self._listeners():
                event.remove(target, identifier, listener)
        self._targets.clear()


def setup_audit_trail(
    target: Any,
    registry: CapabilityRegistry,
    **kwargs: Any,
) -> AuditCommitHook:
    """Create an AuditCommitHook and install it on ``target``.

    Call this during application startup, after the registry has been
    built from the mapped models.
    """
    hook = AuditCommitHook(registry, **kwargs)
    hook.install(target)
    return hook
