"""SQLAlchemy ORM models for persisted itineraries."""

from datetime import date, datetime

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    Date,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.sql import func


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""

    pass


class ItineraryRow(Base):
    """Itinerary table - one plan per trip."""

    __tablename__ = "itinerary"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    trip_id: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)
    destination: Mapped[str] = mapped_column(Text, nullable=False)
    total_days: Mapped[int] = mapped_column(Integer, nullable=False)
    start_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    user_preferences: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    last_updated: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=0)


class TravelNodeRow(Base):
    """Travel node table - scheduled stops, unique per (itinerary, day, order)."""

    __tablename__ = "travel_node"
    __table_args__ = (
        UniqueConstraint("itinerary_id", "day_index", "node_order", name="uq_travel_node_slot"),
        CheckConstraint(
            "node_status IN ('normal', 'changed', 'unrealized', 'changed_original')",
            name="ck_travel_node_status",
        ),
        Index("idx_travel_node_itinerary", "itinerary_id"),
    )

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    itinerary_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("itinerary.id", ondelete="CASCADE"), nullable=False
    )
    name: Mapped[str] = mapped_column(Text, nullable=False)
    type: Mapped[str] = mapped_column(String(16), nullable=False)
    address: Mapped[str] = mapped_column(Text, nullable=False, default="")
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    activity: Mapped[str] = mapped_column(Text, nullable=False, default="")
    time_slot: Mapped[str] = mapped_column(String(16), nullable=False, default="")
    estimated_duration: Mapped[int] = mapped_column(Integer, nullable=False)
    scheduled_time: Mapped[str] = mapped_column(String(8), nullable=False)
    day_index: Mapped[int] = mapped_column(Integer, nullable=False)
    node_order: Mapped[float] = mapped_column(Float, nullable=False)
    verified: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    verification_info: Mapped[str | None] = mapped_column(Text, nullable=True)
    is_lit: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    node_status: Mapped[str] = mapped_column(String(20), nullable=False, default="normal")
    status_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    parent_node_id: Mapped[str | None] = mapped_column(
        String(64), ForeignKey("travel_node.id"), nullable=True
    )
    is_starting_point: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    scenic_area_name: Mapped[str | None] = mapped_column(Text, nullable=True)
    price_info: Mapped[str | None] = mapped_column(Text, nullable=True)
    ticket_info: Mapped[str | None] = mapped_column(Text, nullable=True)
    tips: Mapped[str | None] = mapped_column(Text, nullable=True)
    transport_mode: Mapped[str | None] = mapped_column(String(16), nullable=True)
    transport_duration: Mapped[int | None] = mapped_column(Integer, nullable=True)
    transport_note: Mapped[str | None] = mapped_column(Text, nullable=True)
