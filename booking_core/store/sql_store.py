"""
SQLAlchemy-backed repositories.

The conditional update is a single ``UPDATE ... WHERE id = :id AND
status = :expected`` statement; the database's row lock makes the check
and the write one step, and ``rowcount`` tells the caller whether it won.
"""

import datetime as dt
import logging
from enum import Enum
from typing import Any, Iterable, Optional

from sqlalchemy import (
    Date,
    DateTime,
    String,
    Text,
    Time,
    UniqueConstraint,
    create_engine,
    delete,
    select,
    update,
)
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, sessionmaker
from sqlalchemy.pool import StaticPool

from booking_core.errors import OverlappingSlotError
from booking_core.schemas.actor_schema import Professional
from booking_core.schemas.booking_schema import Booking, BookingStatus
from booking_core.schemas.slot_schema import AvailabilitySlot, SlotStatus
from booking_core.store.base import BookingRepository, ProfessionalDirectory, SlotRepository

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    pass


class ProfessionalRow(Base):
    __tablename__ = "professionals"

    id: Mapped[str] = mapped_column(String(32), primary_key=True)
    user_id: Mapped[str] = mapped_column(String(64), index=True, unique=True)
    display_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)


class SlotRow(Base):
    __tablename__ = "availability_slots"
    __table_args__ = (
        UniqueConstraint("professional_id", "date", "start_time", name="uq_slot_professional_start"),
    )

    id: Mapped[str] = mapped_column(String(32), primary_key=True)
    professional_id: Mapped[str] = mapped_column(String(32), index=True)
    date: Mapped[dt.date] = mapped_column(Date, index=True)
    start_time: Mapped[dt.time] = mapped_column(Time)
    end_time: Mapped[dt.time] = mapped_column(Time)
    status: Mapped[str] = mapped_column(String(16), default=SlotStatus.OPEN.value)
    created_at: Mapped[dt.datetime] = mapped_column(DateTime)
    reserved_at: Mapped[Optional[dt.datetime]] = mapped_column(DateTime, nullable=True)


class BookingRow(Base):
    __tablename__ = "bookings"

    id: Mapped[str] = mapped_column(String(32), primary_key=True)
    client_id: Mapped[str] = mapped_column(String(64), index=True)
    professional_id: Mapped[str] = mapped_column(String(32), index=True)
    slot_id: Mapped[str] = mapped_column(String(32), index=True)
    service_details: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    booking_date: Mapped[dt.date] = mapped_column(Date)
    start_time: Mapped[dt.time] = mapped_column(Time)
    end_time: Mapped[dt.time] = mapped_column(Time)
    status: Mapped[str] = mapped_column(String(16), default=BookingStatus.PENDING.value)
    created_at: Mapped[dt.datetime] = mapped_column(DateTime)
    updated_at: Mapped[dt.datetime] = mapped_column(DateTime)


def _column_values(fields: dict[str, Any]) -> dict[str, Any]:
    """Unwrap enum members so drivers receive plain strings."""
    return {key: value.value if isinstance(value, Enum) else value for key, value in fields.items()}


def build_engine(database_url: str, echo: bool = False) -> Engine:
    """Create an engine; in-memory SQLite shares one connection across threads."""
    if database_url in ("sqlite://", "sqlite:///:memory:"):
        return create_engine(
            database_url,
            echo=echo,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    return create_engine(database_url, echo=echo)


def create_session_factory(database_url: str, echo: bool = False) -> sessionmaker:
    """Build the engine, create missing tables and return a session factory."""
    engine = build_engine(database_url, echo=echo)
    Base.metadata.create_all(engine)
    logger.info("SQL store ready at %s", engine.url.render_as_string(hide_password=True))
    return sessionmaker(bind=engine, expire_on_commit=False)


class SqlSlotRepository(SlotRepository):
    def __init__(self, session_factory: sessionmaker) -> None:
        self._session_factory = session_factory

    def add(self, slot: AvailabilitySlot) -> AvailabilitySlot:
        row = SlotRow(**_column_values(slot.model_dump()))
        try:
            with self._session_factory.begin() as session:
                session.add(row)
        except IntegrityError as exc:
            # Unique (professional_id, date, start_time) hit by a concurrent creator.
            raise OverlappingSlotError(slot.professional_id, slot.date) from exc
        return slot.model_copy()

    def get(self, slot_id: str) -> Optional[AvailabilitySlot]:
        with self._session_factory() as session:
            row = session.get(SlotRow, slot_id)
            return AvailabilitySlot.model_validate(row) if row is not None else None

    def query(
        self,
        professional_id: Optional[str] = None,
        date: Optional[dt.date] = None,
        date_from: Optional[dt.date] = None,
        date_to: Optional[dt.date] = None,
        status: Optional[SlotStatus] = None,
    ) -> list[AvailabilitySlot]:
        stmt = select(SlotRow)
        if professional_id is not None:
            stmt = stmt.where(SlotRow.professional_id == professional_id)
        if date is not None:
            stmt = stmt.where(SlotRow.date == date)
        if date_from is not None:
            stmt = stmt.where(SlotRow.date >= date_from)
        if date_to is not None:
            stmt = stmt.where(SlotRow.date <= date_to)
        if status is not None:
            stmt = stmt.where(SlotRow.status == status.value)
        with self._session_factory() as session:
            return [AvailabilitySlot.model_validate(row) for row in session.scalars(stmt)]

    def update_if(self, slot_id: str, expected_status: SlotStatus, **fields: Any) -> bool:
        stmt = (
            update(SlotRow)
            .where(SlotRow.id == slot_id, SlotRow.status == expected_status.value)
            .values(**_column_values(fields))
        )
        with self._session_factory.begin() as session:
            result = session.execute(stmt)
            return result.rowcount == 1

    def delete_if(self, slot_id: str, expected_status: SlotStatus) -> bool:
        stmt = delete(SlotRow).where(
            SlotRow.id == slot_id, SlotRow.status == expected_status.value
        )
        with self._session_factory.begin() as session:
            result = session.execute(stmt)
            return result.rowcount == 1

    def save(self, slot: AvailabilitySlot) -> AvailabilitySlot:
        with self._session_factory.begin() as session:
            session.merge(SlotRow(**_column_values(slot.model_dump())))
        return slot.model_copy()


class SqlBookingRepository(BookingRepository):
    def __init__(self, session_factory: sessionmaker) -> None:
        self._session_factory = session_factory

    def add(self, booking: Booking) -> Booking:
        with self._session_factory.begin() as session:
            session.add(BookingRow(**_column_values(booking.model_dump())))
        return booking.model_copy()

    def get(self, booking_id: str) -> Optional[Booking]:
        with self._session_factory() as session:
            row = session.get(BookingRow, booking_id)
            return Booking.model_validate(row) if row is not None else None

    def query(
        self,
        client_id: Optional[str] = None,
        professional_id: Optional[str] = None,
        slot_id: Optional[str] = None,
        statuses: Optional[Iterable[BookingStatus]] = None,
        date_from: Optional[dt.date] = None,
        date_to: Optional[dt.date] = None,
    ) -> list[Booking]:
        stmt = select(BookingRow)
        if client_id is not None:
            stmt = stmt.where(BookingRow.client_id == client_id)
        if professional_id is not None:
            stmt = stmt.where(BookingRow.professional_id == professional_id)
        if slot_id is not None:
            stmt = stmt.where(BookingRow.slot_id == slot_id)
        if statuses is not None:
            stmt = stmt.where(BookingRow.status.in_([s.value for s in statuses]))
        if date_from is not None:
            stmt = stmt.where(BookingRow.booking_date >= date_from)
        if date_to is not None:
            stmt = stmt.where(BookingRow.booking_date <= date_to)
        with self._session_factory() as session:
            return [Booking.model_validate(row) for row in session.scalars(stmt)]

    def update_if(self, booking_id: str, expected_status: BookingStatus, **fields: Any) -> bool:
        stmt = (
            update(BookingRow)
            .where(BookingRow.id == booking_id, BookingRow.status == expected_status.value)
            .values(**_column_values(fields))
        )
        with self._session_factory.begin() as session:
            result = session.execute(stmt)
            return result.rowcount == 1


class SqlProfessionalDirectory(ProfessionalDirectory):
    def __init__(self, session_factory: sessionmaker) -> None:
        self._session_factory = session_factory

    def add(self, professional: Professional) -> Professional:
        with self._session_factory.begin() as session:
            session.merge(ProfessionalRow(**professional.model_dump()))
        return professional

    def get(self, professional_id: str) -> Optional[Professional]:
        with self._session_factory() as session:
            row = session.get(ProfessionalRow, professional_id)
            return Professional.model_validate(row) if row is not None else None

    def find_by_user(self, user_id: str) -> Optional[Professional]:
        stmt = select(ProfessionalRow).where(ProfessionalRow.user_id == user_id)
        with self._session_factory() as session:
            row = session.scalars(stmt).first()
            return Professional.model_validate(row) if row is not None else None
