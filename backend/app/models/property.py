"""Property model: short-term rentals, long-term rentals and maintenance units."""

import uuid
from datetime import datetime
from decimal import Decimal

from sqlalchemy import Boolean, ForeignKey, Numeric, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.database import Base, UUIDPrimaryKeyMixin

PROPERTY_TYPES = ("maintenance", "short_term", "long_term")


class Property(UUIDPrimaryKeyMixin, Base):
    """A unit owned by an owner user.

    Pricing and stay-limit columns are only meaningful for ``short_term``
    properties; long-term rentals carry ``monthly_rent`` instead.
    """

    __tablename__ = "properties"

    owner_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    address: Mapped[str | None] = mapped_column(String(500), default=None)
    description: Mapped[str | None] = mapped_column(Text, default=None)
    property_type: Mapped[str] = mapped_column(String(50), nullable=False)  # maintenance, short_term, long_term

    # Short-term pricing and rules
    base_price: Mapped[Decimal | None] = mapped_column(Numeric(10, 2), default=None)
    cleaning_fee: Mapped[Decimal | None] = mapped_column(Numeric(10, 2), default=None)
    security_deposit: Mapped[Decimal | None] = mapped_column(Numeric(10, 2), default=None)
    max_guests: Mapped[int | None] = mapped_column(default=None)
    min_stay_days: Mapped[int | None] = mapped_column(default=None)
    max_stay_days: Mapped[int | None] = mapped_column(default=None)

    # Long-term rental
    monthly_rent: Mapped[Decimal | None] = mapped_column(Numeric(10, 2), default=None)

    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    created_at: Mapped[datetime] = mapped_column(server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(server_default=func.now(), onupdate=func.now())

    # Relationships
    owner: Mapped["User"] = relationship(back_populates="properties", lazy="selectin")  # type: ignore[name-defined]  # noqa: F821
    bookings: Mapped[list["Booking"]] = relationship(  # type: ignore[name-defined]  # noqa: F821
        back_populates="property", lazy="selectin", cascade="all, delete-orphan"
    )

    def __repr__(self) -> str:
        return f"<Property(id={self.id}, name={self.name!r}, type={self.property_type!r})>"
