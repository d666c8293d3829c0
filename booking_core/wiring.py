"""Assemble repositories and services from configuration."""

import logging
from dataclasses import dataclass
from typing import Optional

from booking_core.config import AppConfig, settings
from booking_core.events import EventPublisher
from booking_core.locks import KeyedLock
from booking_core.services.availability import AvailabilityStore
from booking_core.services.lifecycle import BookingLifecycle
from booking_core.services.queries import BookingQueryService
from booking_core.services.reconciliation import SlotReconciler
from booking_core.services.reservation import SlotReservationCoordinator
from booking_core.store.base import BookingRepository, ProfessionalDirectory, SlotRepository
from booking_core.store.memory_store import (
    InMemoryBookingRepository,
    InMemoryProfessionalDirectory,
    InMemorySlotRepository,
)
from booking_core.utils import Clock, system_clock

logger = logging.getLogger(__name__)


@dataclass
class BookingSystem:
    slots: SlotRepository
    bookings: BookingRepository
    professionals: ProfessionalDirectory
    publisher: EventPublisher
    availability: AvailabilityStore
    coordinator: SlotReservationCoordinator
    lifecycle: BookingLifecycle
    queries: BookingQueryService
    reconciler: SlotReconciler


def build_repositories(config: AppConfig) -> tuple[SlotRepository, BookingRepository, ProfessionalDirectory]:
    if config.store.backend == "sql":
        # Imported lazily so the memory backend works without a database driver.
        from booking_core.store.sql_store import (
            SqlBookingRepository,
            SqlProfessionalDirectory,
            SqlSlotRepository,
            create_session_factory,
        )

        factory = create_session_factory(config.store.database_url, echo=config.store.echo_sql)
        return SqlSlotRepository(factory), SqlBookingRepository(factory), SqlProfessionalDirectory(factory)

    shards = config.concurrency.lock_shards
    return (
        InMemorySlotRepository(lock_shards=shards),
        InMemoryBookingRepository(lock_shards=shards),
        InMemoryProfessionalDirectory(),
    )


def build_booking_system(
    config: Optional[AppConfig] = None,
    clock: Optional[Clock] = None,
    publisher: Optional[EventPublisher] = None,
    slots: Optional[SlotRepository] = None,
    bookings: Optional[BookingRepository] = None,
    professionals: Optional[ProfessionalDirectory] = None,
) -> BookingSystem:
    """Wire every service against one set of repositories.

    Any repository passed explicitly replaces the configured one.
    """
    config = config or settings
    clock = clock or system_clock
    publisher = publisher or EventPublisher()

    if slots is None or bookings is None or professionals is None:
        built_slots, built_bookings, built_professionals = build_repositories(config)
        slots = built_slots if slots is None else slots
        bookings = built_bookings if bookings is None else bookings
        professionals = built_professionals if professionals is None else professionals

    shards = config.concurrency.lock_shards
    coordinator = SlotReservationCoordinator(slots, clock=clock, lock_shards=shards)
    booking_locks = KeyedLock(shards)
    system = BookingSystem(
        slots=slots,
        bookings=bookings,
        professionals=professionals,
        publisher=publisher,
        availability=AvailabilityStore(
            slots,
            professionals,
            clock=clock,
            serialize_creation=config.concurrency.serialize_slot_creation,
            lock_shards=shards,
            max_bulk_dates=config.availability.max_bulk_dates,
            max_recurrence_weeks=config.availability.max_recurrence_weeks,
            coordinator=coordinator,
        ),
        coordinator=coordinator,
        lifecycle=BookingLifecycle(
            slots, bookings, professionals, coordinator,
            publisher=publisher, clock=clock, lock_shards=shards,
            booking_locks=booking_locks,
        ),
        queries=BookingQueryService(bookings, professionals),
        reconciler=SlotReconciler(
            slots, bookings, coordinator,
            clock=clock, grace_seconds=config.reconcile.grace_seconds,
            booking_locks=booking_locks,
        ),
    )
    logger.info("Booking system wired (store=%s, lock_shards=%d)", config.store.backend, shards)
    return system
