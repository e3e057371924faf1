"""Assembly of audit log entries and encoding of change details."""

import json
from collections.abc import Sequence
from datetime import UTC, date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any
from uuid import UUID

from bookstore.core.audit.classifier import PendingMutation
from bookstore.core.audit.diff import ChangeRecord
from bookstore.core.audit.models import AuditLog
from bookstore.core.errors import AuditSerializationError


def _serialize_value(value: Any) -> Any:
    """Serialize a value to JSON-compatible primitives.

    Recursively converts non-JSON-serializable types to their
    string or primitive representations.
    """
    if value is None or isinstance(value, str | int | float | bool):
        return value

    result: Any
    if isinstance(value, UUID):
        result = str(value)
    elif isinstance(value, datetime | date):
        result = value.isoformat()
    elif isinstance(value, Decimal):
        result = str(value)
    elif isinstance(value, Enum):
        result = _serialize_value(value.value)
    elif isinstance(value, dict):
        result = {str(k): _serialize_value(v) for k, v in value.items()}
    elif isinstance(value, list | tuple):
        result = [_serialize_value(item) for item in value]
    elif isinstance(value, set | frozenset):
        # Sets have no stable iteration order
        result = sorted((_serialize_value(item) for item in value), key=repr)
    elif isinstance(value, bytes):
        result = value.hex()
    else:
        result = str(value)

    return result


def serialize_changes(changes: Sequence[ChangeRecord]) -> list[dict[str, Any]]:
    """Convert change records to the stored ``details`` payload.

    Returns:
        ``[{field: {"old_value": ..., "new_value": ...}}, ...]`` in
        change order, containing only JSON primitives

    Raises:
        AuditSerializationError: If a value cannot be represented in JSON
    """
    try:
        payload = [
            {
                record.field: {
                    "old_value": _serialize_value(record.old_value),
                    "new_value": _serialize_value(record.new_value),
                }
            }
            for record in changes
        ]
        # NaN and Infinity are not JSON; the database would reject them later
        json.dumps(payload, allow_nan=False)
    except Exception as exc:
        raise AuditSerializationError(
            details={"fields": [record.field for record in changes]}
        ) from exc
    return payload


def encode_changes(changes: Sequence[ChangeRecord]) -> str:
    """Compact, deterministic JSON text of a change list.

    Example:
        >>> encode_changes([ChangeRecord("Price", "****", "****")])
        '[{"Price":{"old_value":"****","new_value":"****"}}]'
    """
    return json.dumps(serialize_changes(changes), separators=(",", ":"))


def decode_changes(payload: str | Sequence[dict[str, Any]]) -> list[ChangeRecord]:
    """Parse encoded change details back into change records.

    Accepts either the JSON text or the already-decoded list stored
    in the ``details`` column.
    """
    items = json.loads(payload) if isinstance(payload, str) else payload
    records: list[ChangeRecord] = []
    for item in items:
        for name, values in item.items():
            records.append(
                ChangeRecord(
                    field=name,
                    old_value=values.get("old_value"),
                    new_value=values.get("new_value"),
                )
            )
    return records


def build_audit_entry(
    mutation: PendingMutation,
    entity_name: str,
    entity_id: UUID,
    changes: Sequence[ChangeRecord],
    actor: str,
    timestamp: datetime,
) -> AuditLog:
    """Create the audit log entry for one classified mutation.

    An entry is produced even when ``changes`` is empty. The entry is
    not added to any session.

    Args:
        mutation: The audited mutation
        entity_name: Type name recorded for the entity
        entity_id: Resolved entity identifier
        changes: Diff output for the mutation
        actor: Who made the change
        timestamp: When the change is committed

    Returns:
        A new, transient AuditLog

    Raises:
        AuditSerializationError: If the change details cannot be encoded
    """
    try:
        details = serialize_changes(changes)
    except AuditSerializationError as exc:
        exc.details.update(entity_name=entity_name, entity_id=str(entity_id))
        raise

    if timestamp.tzinfo is None:
        timestamp = timestamp.replace(tzinfo=UTC)

    return AuditLog(
        entity_name=entity_name,
        entity_id=entity_id,
        action=mutation.kind.value,
        changed_by=actor,
        changed_at=timestamp.astimezone(UTC),
        details=details,
    )
