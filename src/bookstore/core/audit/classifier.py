"""Classification of pending mutations into the audited subset."""

from collections.abc import Iterable
from dataclasses import dataclass
from enum import Enum
from typing import Any

from bookstore.core.audit.registry import CapabilityRegistry


class MutationKind(str, Enum):
    """Kind of change made to an entity, recorded as the audit action."""

    CREATED = "Created"
    MODIFIED = "Modified"
    DELETED = "Deleted"


@dataclass(frozen=True)
class PendingMutation:
    """An entity with a change waiting to be written."""

    entity: Any
    kind: MutationKind

    @property
    def entity_type(self) -> type:
        return type(self.entity)


def classify_mutations(
    mutations: Iterable[PendingMutation],
    registry: CapabilityRegistry,
) -> list[PendingMutation]:
    """Keep the mutations whose entity type is audited.

    A type is kept when it is auditable and does not carry the
    not-auditable override. Unregistered types are dropped. Input
    order is preserved.

    Args:
        mutations: Pending mutations in write order
        registry: Capability registry

    Returns:
        The audited mutations, in input order
    """
    return [m for m in mutations if registry.should_audit(m.entity_type)]
