"""Booking model: a guest stay on a short-term property."""

import uuid
from datetime import date, datetime
from decimal import Decimal

from sqlalchemy import DDL, CheckConstraint, Date, ForeignKey, Index, Integer, Numeric, String, Text, event, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.database import Base, UUIDPrimaryKeyMixin

BOOKING_STATUSES = ("pending", "confirmed", "checked_in", "checked_out", "cancelled", "no_show")
PAYMENT_STATUSES = ("unpaid", "partial", "paid", "refunded")


class Booking(UUIDPrimaryKeyMixin, Base):
    """A reservation of a property for a half-open ``[check_in, check_out)`` range.

    Money columns are derived by ``app.services.booking_engine`` before every
    write and are never entered independently.
    """

    __tablename__ = "bookings"

    property_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("properties.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    tenant_id: Mapped[uuid.UUID | None] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )

    # Guest details
    guest_name: Mapped[str] = mapped_column(String(255), nullable=False)
    guest_email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    guest_phone: Mapped[str] = mapped_column(String(50), nullable=False)
    number_of_guests: Mapped[int] = mapped_column(Integer, default=1, nullable=False)

    # Stay
    check_in_date: Mapped[date] = mapped_column(Date, nullable=False)
    check_out_date: Mapped[date] = mapped_column(Date, nullable=False)
    number_of_nights: Mapped[int] = mapped_column(Integer, nullable=False)
    actual_check_in: Mapped[datetime | None] = mapped_column(nullable=True)
    actual_check_out: Mapped[datetime | None] = mapped_column(nullable=True)

    # Pricing (rates copied from the property when the booking is created)
    base_price: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    total_base_amount: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    cleaning_fee: Mapped[Decimal] = mapped_column(Numeric(10, 2), default=Decimal("0"), nullable=False)
    extra_fees: Mapped[Decimal] = mapped_column(Numeric(10, 2), default=Decimal("0"), nullable=False)
    discount: Mapped[Decimal] = mapped_column(Numeric(10, 2), default=Decimal("0"), nullable=False)
    total_amount: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    paid_amount: Mapped[Decimal] = mapped_column(Numeric(10, 2), default=Decimal("0"), nullable=False)
    remaining_amount: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)

    status: Mapped[str] = mapped_column(
        String(50),
        default="pending",
        nullable=False,
        index=True,
    )  # pending, confirmed, checked_in, checked_out, cancelled, no_show
    payment_status: Mapped[str] = mapped_column(
        String(50),
        default="unpaid",
        nullable=False,
        index=True,
    )  # unpaid, partial, paid, refunded

    booking_source: Mapped[str | None] = mapped_column(String(100), default="direct")  # Airbnb, Booking.com, direct
    external_booking_id: Mapped[str | None] = mapped_column(String(255), nullable=True)
    special_requests: Mapped[str | None] = mapped_column(Text, nullable=True)
    guest_notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    internal_notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(
        server_default=func.now(),
        onupdate=func.now(),
    )

    # Relationships
    property: Mapped["Property"] = relationship(back_populates="bookings", lazy="selectin")  # type: ignore[name-defined]  # noqa: F821
    tenant: Mapped["User | None"] = relationship("User", lazy="selectin")  # type: ignore[name-defined]  # noqa: F821

    __table_args__ = (
        CheckConstraint("check_out_date > check_in_date", name="ck_bookings_dates_ordered"),
        Index("ix_bookings_dates", "check_in_date", "check_out_date"),
        Index("ix_bookings_property_dates", "property_id", "check_in_date", "check_out_date"),
    )

    def __repr__(self) -> str:
        return (
            f"<Booking(id={self.id}, property_id={self.property_id}, "
            f"{self.check_in_date}..{self.check_out_date}, status={self.status})>"
        )


# Two confirmed or checked-in stays on one property may never share a night.
# PostgreSQL only; the initial migration creates the same constraint.
OVERLAP_EXCLUSION_DDL = """
ALTER TABLE bookings ADD CONSTRAINT ex_bookings_no_overlap
EXCLUDE USING gist (
    property_id WITH =,
    daterange(check_in_date, check_out_date, '[)') WITH &&
)
WHERE (status IN ('confirmed', 'checked_in'))
"""

event.listen(
    Booking.__table__,
    "before_create",
    DDL("CREATE EXTENSION IF NOT EXISTS btree_gist").execute_if(dialect="postgresql"),
)
event.listen(Booking.__table__, "after_create", DDL(OVERLAP_EXCLUSION_DDL).execute_if(dialect="postgresql"))
