"""Tests for the audit capability registry."""

from decimal import Decimal

import pytest

from bookstore.core.audit.registry import (
    AuditCapability,
    CapabilityRegistry,
    SensitivityPolicy,
)
from bookstore.core.database import Base
from bookstore.core.errors import AuditRegistryError
from bookstore.modules.books.models import Book
from bookstore.modules.cars.models import Car


class Widget:
    """Plain class used for explicit registrations."""


class Gadget:
    """Plain class that is never registered."""


class TestCapabilityFromModels:
    """Capabilities read from model declarations."""

    def test_book_is_audited_with_sensitive_price(self, registry):
        capability = registry.get(Book)

        assert capability is not None
        assert capability.entity_name == "Book"
        assert capability.auditable is True
        assert capability.not_auditable is False
        assert capability.sensitive_fields == frozenset({"price"})
        assert registry.should_audit(Book) is True

    def test_fields_follow_declaration_order_without_identifier(self, registry):
        capability = registry.get(Book)

        assert capability.identifier == "id"
        assert "id" not in capability.fields
        assert capability.fields[:6] == (
            "title",
            "author",
            "genre",
            "publication_year",
            "isbn",
            "price",
        )

    def test_defaults_come_from_scalar_column_defaults(self, registry):
        defaults = registry.get(Book).defaults

        assert defaults["title"] == ""
        assert defaults["price"] == Decimal("0.00")
        assert defaults["pages"] == 0
        assert defaults["availability"] is False

    def test_defaults_are_read_only(self, registry):
        with pytest.raises(TypeError):
            registry.get(Book).defaults["title"] = "changed"  # type: ignore[index]

    def test_car_override_wins_over_auditable_marker(self, registry):
        capability = registry.get(Car)

        assert capability.auditable is True
        assert capability.not_auditable is True
        assert capability.type_sensitive is True
        assert registry.is_not_auditable_override(Car) is True
        assert registry.should_audit(Car) is False

    def test_audit_log_itself_is_not_audited(self, registry):
        from bookstore.core.audit.models import AuditLog

        assert registry.should_audit(AuditLog) is False

    def test_audited_types(self, registry):
        assert registry.audited_types() == [Book]

    def test_from_models_freezes(self):
        registry = CapabilityRegistry.from_models(Base)

        assert registry.frozen is True
        with pytest.raises(AuditRegistryError):
            registry.register(Widget, AuditCapability(entity_name="Widget", auditable=True))


class TestUnknownTypes:
    """Types without a registry entry are never audited."""

    def test_unknown_type_defaults_to_not_auditable(self, registry):
        assert registry.get(Gadget) is None
        assert registry.is_auditable(Gadget) is False
        assert registry.should_audit(Gadget) is False
        assert registry.is_not_auditable_override(Gadget) is False
        assert registry.is_type_level_sensitive(Gadget) is False
        assert registry.is_sensitive_field(Gadget, "anything") is False


class TestExplicitRegistration:
    """register() with hand-built capabilities."""

    def test_override_beats_inclusion(self):
        registry = CapabilityRegistry()
        registry.register(
            Widget,
            AuditCapability(entity_name="Widget", auditable=True, not_auditable=True),
        )

        assert registry.is_auditable(Widget) is True
        assert registry.should_audit(Widget) is False

    def test_register_model_reads_declarations(self):
        registry = CapabilityRegistry()
        capability = registry.register_model(Book)

        assert registry.get(Book) is capability
        assert registry.frozen is False

    def test_field_level_sensitivity(self):
        registry = CapabilityRegistry()
        registry.register(
            Widget,
            AuditCapability(
                entity_name="Widget",
                auditable=True,
                sensitive_fields=frozenset({"secret"}),
                fields=("name", "secret"),
            ),
        )

        assert registry.is_sensitive_field(Widget, "secret") is True
        assert registry.is_sensitive_field(Widget, "name") is False
        assert registry.masks_all_fields(Widget) is False


class TestSensitivityPolicy:
    """Type-level sensitivity under the two policies."""

    @pytest.fixture
    def sensitive_capability(self) -> AuditCapability:
        return AuditCapability(
            entity_name="Widget",
            auditable=True,
            type_sensitive=True,
            fields=("name", "secret"),
        )

    def test_entire_type_exclusion_drops_type(self, sensitive_capability):
        registry = CapabilityRegistry(policy=SensitivityPolicy.ENTIRE_TYPE_EXCLUSION)
        registry.register(Widget, sensitive_capability)

        assert registry.is_type_level_sensitive(Widget) is True
        assert registry.is_auditable(Widget) is False
        assert registry.should_audit(Widget) is False
        assert registry.masks_all_fields(Widget) is False

    def test_per_field_masking_audits_with_every_field_masked(self, sensitive_capability):
        registry = CapabilityRegistry(policy=SensitivityPolicy.PER_FIELD_MASKING)
        registry.register(Widget, sensitive_capability)

        assert registry.should_audit(Widget) is True
        assert registry.masks_all_fields(Widget) is True
        assert registry.is_sensitive_field(Widget, "name") is True

    def test_policy_accepts_string_value(self):
        registry = CapabilityRegistry(policy="entire_type_exclusion")  # type: ignore[arg-type]

        assert registry.policy is SensitivityPolicy.ENTIRE_TYPE_EXCLUSION

    def test_field_markers_apply_under_exclusion_policy(self):
        registry = CapabilityRegistry.from_models(
            Base, policy=SensitivityPolicy.ENTIRE_TYPE_EXCLUSION
        )

        assert registry.should_audit(Book) is True
        assert registry.is_sensitive_field(Book, "price") is True
        assert registry.is_sensitive_field(Book, "title") is False
