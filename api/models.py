"""SQLAlchemy models for the Property Weather API."""

import uuid
from datetime import UTC, datetime
from typing import Any

from sqlalchemy import JSON, DateTime, Float, String, UniqueConstraint
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from core.database import Base

ADDRESS_CONSTRAINT_NAME = "uq_properties_address"


def utcnow() -> datetime:
    """Return current UTC time (timezone-aware)."""
    return datetime.now(UTC)


def new_property_id() -> str:
    return str(uuid.uuid4())


class Property(Base):
    """A street address enriched with coordinates and a weather snapshot.

    Every column is written once at insert time; there is no update path.
    latitude/longitude come from the weather provider, never from the client.
    """

    __tablename__ = "properties"
    __table_args__ = (
        UniqueConstraint(
            "city", "street", "state", "zip_code", name=ADDRESS_CONSTRAINT_NAME
        ),
    )

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=new_property_id
    )
    city: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    street: Mapped[str] = mapped_column(String(255), nullable=False)
    state: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    zip_code: Mapped[str] = mapped_column(String(16), nullable=False, index=True)
    latitude: Mapped[float] = mapped_column(Float, nullable=False)
    longitude: Mapped[float] = mapped_column(Float, nullable=False)
    # Provider-defined shape, stored verbatim
    weather_data: Mapped[dict[str, Any]] = mapped_column(
        JSON().with_variant(JSONB(), "postgresql"), nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False, index=True
    )
