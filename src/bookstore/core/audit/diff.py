"""Field-level diff between two snapshots of an entity.

Fields are compared on their real values and only then masked, so an
unchanged sensitive field never shows up while a changed one shows up
with both sides redacted.
"""

import math
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from decimal import Decimal
from typing import Any

import structlog

from bookstore.core.constants import REDACTION_TOKEN


log = structlog.get_logger()


@dataclass(frozen=True)
class ChangeRecord:
    """Old and new value of one changed field, possibly redacted."""

    field: str
    old_value: Any
    new_value: Any

    def to_dict(self) -> dict[str, dict[str, Any]]:
        return {self.field: {"old_value": self.old_value, "new_value": self.new_value}}


class IncomparableValueError(Exception):
    """Two field values cannot be tested for equality."""


def _is_nan(value: Any) -> bool:
    if isinstance(value, float):
        return math.isnan(value)
    if isinstance(value, Decimal):
        return value.is_nan()
    return False


def values_differ(old: Any, new: Any) -> bool:
    """Structural inequality test.

    Two NaN values count as equal, so an unchanged NaN field is not
    reported as a change.

    Raises:
        IncomparableValueError: If the comparison itself fails or does
            not produce a truth value (e.g. element-wise array results)
    """
    if _is_nan(old) and _is_nan(new):
        return False
    try:
        return bool(old != new)
    except (TypeError, ValueError, ArithmeticError) as exc:
        raise IncomparableValueError(str(exc)) from exc


def diff_snapshots(
    fields: Iterable[str],
    original: Mapping[str, Any],
    current: Mapping[str, Any],
    sensitive_fields: frozenset[str] = frozenset(),
    mask_all: bool = False,
    redaction_token: str = REDACTION_TOKEN,
    logger: Any = None,
) -> list[ChangeRecord]:
    """Compare two field snapshots of one entity.

    Args:
        fields: Field names in the type's declared order
        original: Values before the mutation
        current: Values after the mutation
        sensitive_fields: Fields whose values must be redacted
        mask_all: Redact every field (type-level sensitivity)
        redaction_token: Replacement for redacted values
        logger: structlog logger for skipped fields

    Returns:
        Change records in field order, only for fields whose values
        differ. Fields absent from either snapshot are not compared.
    """
    logger = logger or log
    changes: list[ChangeRecord] = []

    for name in fields:
        if name not in original or name not in current:
            continue

        old_value = original[name]
        new_value = current[name]
        try:
            if not values_differ(old_value, new_value):
                continue
        except IncomparableValueError as exc:
            logger.warning("audit_field_incomparable", field=name, error=str(exc))
            continue

        if mask_all or name in sensitive_fields:
            old_value = new_value = redaction_token

        changes.append(ChangeRecord(field=name, old_value=old_value, new_value=new_value))

    return changes
