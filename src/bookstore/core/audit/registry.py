"""Capability registry for audited entity types.

Maps each entity type to what the audit trail needs to know about it:
whether it is audited, which fields are sensitive, the order in which
fields are compared, and the values a freshly constructed instance holds.
The registry is built once at startup from the model declarations and is
read-only afterwards, so per-mutation lookups are plain dict accesses.
"""

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any

import structlog
from sqlalchemy import inspect
from sqlalchemy.orm import DeclarativeBase, Mapper

from bookstore.core.constants import SENSITIVE_INFO_KEY
from bookstore.core.errors import AuditRegistryError


log = structlog.get_logger()


class SensitivityPolicy(str, Enum):
    """How a type-level sensitive marker is honoured.

    ENTIRE_TYPE_EXCLUSION drops the type from the audit trail.
    PER_FIELD_MASKING keeps auditing it with every field masked.
    """

    ENTIRE_TYPE_EXCLUSION = "entire_type_exclusion"
    PER_FIELD_MASKING = "per_field_masking"


@dataclass(frozen=True)
class AuditCapability:
    """Static audit description of one entity type.

    Attributes:
        entity_name: Name recorded in audit entries
        auditable: Type declares itself auditable
        not_auditable: Exclusion override, wins over auditable
        type_sensitive: Whole type is marked sensitive
        sensitive_fields: Fields whose values are always masked
        fields: Tracked fields in declared order
        defaults: Field values of a default-constructed instance
        identifier: Attribute holding the entity's UUID
    """

    entity_name: str
    auditable: bool = False
    not_auditable: bool = False
    type_sensitive: bool = False
    sensitive_fields: frozenset[str] = frozenset()
    fields: tuple[str, ...] = ()
    defaults: Mapping[str, Any] = field(default_factory=dict)
    identifier: str | None = "id"

    def __post_init__(self) -> None:
        object.__setattr__(self, "defaults", MappingProxyType(dict(self.defaults)))


def capability_for_mapper(mapper: Mapper[Any]) -> AuditCapability:
    """Read the audit declarations of a mapped class.

    Markers are class attributes (``__audit__``, ``__not_audited__``,
    ``__sensitive__``) resolved through the MRO, and field sensitivity
    comes from ``info={"sensitive": True}`` on the column.

    Args:
        mapper: Mapper of the declarative class

    Returns:
        The capability descriptor for the class
    """
    cls = mapper.class_
    primary_keys = {column.key for column in mapper.primary_key}

    fields: list[str] = []
    sensitive: set[str] = set()
    defaults: dict[str, Any] = {}
    identifier: str | None = None

    for prop in mapper.column_attrs:
        column = prop.columns[0]
        if column.key in primary_keys:
            if len(primary_keys) == 1:
                identifier = prop.key
            continue

        fields.append(prop.key)
        if column.info.get(SENSITIVE_INFO_KEY) or prop.info.get(SENSITIVE_INFO_KEY):
            sensitive.add(prop.key)

        default = column.default
        defaults[prop.key] = (
            default.arg if default is not None and default.is_scalar else None
        )

    return AuditCapability(
        entity_name=cls.__name__,
        auditable=bool(getattr(cls, "__audit__", False)),
        not_auditable=bool(getattr(cls, "__not_audited__", False)),
        type_sensitive=bool(getattr(cls, "__sensitive__", False)),
        sensitive_fields=frozenset(sensitive),
        fields=tuple(fields),
        defaults=defaults,
        identifier=identifier,
    )


class CapabilityRegistry:
    """Lookup table from entity type to its AuditCapability.

    Types that were never registered are treated as not auditable.
    """

    def __init__(
        self,
        policy: SensitivityPolicy = SensitivityPolicy.PER_FIELD_MASKING,
    ) -> None:
        self.policy = SensitivityPolicy(policy)
        self._capabilities: dict[type, AuditCapability] = {}
        self._frozen = False

    @classmethod
    def from_models(
        cls,
        base: type[DeclarativeBase],
        policy: SensitivityPolicy = SensitivityPolicy.PER_FIELD_MASKING,
    ) -> "CapabilityRegistry":
        """Build a frozen registry from every class mapped on ``base``.

        All model modules must be imported before this is called.
        """
        registry = cls(policy=policy)
        registry.register_mappers(base.registry.mappers)
        registry.freeze()
        return registry

    def register_mappers(self, mappers: Iterable[Mapper[Any]]) -> None:
        for mapper in mappers:
            self.register(mapper.class_, capability_for_mapper(mapper))

    def register_model(self, model: type) -> AuditCapability:
        """Register a single mapped class from its declarations."""
        capability = capability_for_mapper(inspect(model))
        self.register(model, capability)
        return capability

    def register(self, entity_type: type, capability: AuditCapability) -> None:
        """Register a capability descriptor for a type.

        Raises:
            AuditRegistryError: If the registry has been frozen
        """
        if self._frozen:
            raise AuditRegistryError(
                "Capability registry is frozen",
                details={"entity_type": entity_type.__name__},
            )
        self._capabilities[entity_type] = capability
        log.debug(
            "audit_capability_registered",
            entity_type=entity_type.__name__,
            auditable=capability.auditable,
            not_auditable=capability.not_auditable,
            type_sensitive=capability.type_sensitive,
            sensitive_fields=sorted(capability.sensitive_fields),
        )

    def freeze(self) -> None:
        """Make the registry read-only."""
        self._frozen = True
        self._capabilities = MappingProxyType(dict(self._capabilities))  # type: ignore[assignment]

    @property
    def frozen(self) -> bool:
        return self._frozen

    def get(self, entity_type: type) -> AuditCapability | None:
        return self._capabilities.get(entity_type)

    def audited_types(self) -> list[type]:
        """Types whose mutations produce audit entries."""
        return [t for t in self._capabilities if self.should_audit(t)]

    def is_auditable(self, entity_type: type) -> bool:
        """Whether the type declares itself auditable.

        Under ENTIRE_TYPE_EXCLUSION a type-level sensitive type is
        reported as not auditable.
        """
        capability = self.get(entity_type)
        if capability is None or not capability.auditable:
            return False
        return not (
            capability.type_sensitive
            and self.policy is SensitivityPolicy.ENTIRE_TYPE_EXCLUSION
        )

    def is_not_auditable_override(self, entity_type: type) -> bool:
        capability = self.get(entity_type)
        return capability is not None and capability.not_auditable

    def should_audit(self, entity_type: type) -> bool:
        """Auditable and not overridden."""
        return self.is_auditable(entity_type) and not self.is_not_auditable_override(
            entity_type
        )

    def is_type_level_sensitive(self, entity_type: type) -> bool:
        capability = self.get(entity_type)
        return capability is not None and capability.type_sensitive

    def is_sensitive_field(self, entity_type: type, field_name: str) -> bool:
        capability = self.get(entity_type)
        if capability is None:
            return False
        return field_name in capability.sensitive_fields or self.masks_all_fields(
            entity_type
        )

    def masks_all_fields(self, entity_type: type) -> bool:
        """Whether every field of the type is redacted in change records."""
        return (
            self.is_type_level_sensitive(entity_type)
            and self.policy is SensitivityPolicy.PER_FIELD_MASKING
        )
