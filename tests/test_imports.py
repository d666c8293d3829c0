"""Tests for import chains and module integrity.

Ensures all public modules can be imported without errors and
that re-exports from __init__.py files work correctly.
"""

import pytest


class TestSchemaImports:
    def test_import_slot_schema(self):
        from booking_core.schemas.slot_schema import AvailabilitySlot, BulkCreateResult, SlotStatus
        assert SlotStatus.OPEN == "OPEN"
        assert BulkCreateResult().created == []

    def test_import_booking_schema(self):
        from booking_core.schemas.booking_schema import (
            ACTIVE_STATUSES, TERMINAL_STATUSES, Booking, BookingStatus,
        )
        assert BookingStatus.PENDING in ACTIVE_STATUSES
        assert ACTIVE_STATUSES & TERMINAL_STATUSES == {BookingStatus.COMPLETED}

    def test_import_actor_schema(self):
        from booking_core.schemas.actor_schema import Actor, Role
        assert Actor(id="u").role == Role.CLIENT


class TestServiceImports:
    def test_import_services_package(self):
        from booking_core.services import (
            AvailabilityStore, BookingLifecycle, BookingQueryService,
            SlotReconciler, SlotReservationCoordinator,
        )
        assert callable(BookingLifecycle)

    def test_import_package_root(self):
        import booking_core
        assert booking_core.__version__
        assert booking_core.build_booking_system is not None


class TestStoreImports:
    def test_memory_store_is_default_export(self):
        from booking_core.store import InMemorySlotRepository, SlotRepository
        assert issubclass(InMemorySlotRepository, SlotRepository)

    def test_sql_store_imports(self):
        from booking_core.store.sql_store import SqlSlotRepository
        assert SqlSlotRepository.supports_conditional_update is True


class TestConfigImport:
    def test_import_config(self):
        from booking_core.config import SUPPORTED_BACKENDS, settings
        assert settings.store.backend in SUPPORTED_BACKENDS
        assert settings.concurrency.lock_shards >= 1


class TestCli:
    def test_cli_parses_race(self):
        from main import build_parser
        args = build_parser().parse_args(["race", "--clients", "4"])
        assert args.clients == 4

    def test_cli_requires_command(self):
        from main import build_parser
        with pytest.raises(SystemExit):
            build_parser().parse_args([])
