"""Payment model: money movements between guests, owners and the company."""

import uuid
from datetime import datetime
from decimal import Decimal

from sqlalchemy import Boolean, CheckConstraint, ForeignKey, Numeric, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.database import Base, TimestampMixin, UUIDPrimaryKeyMixin

PAYMENT_TYPES = ("booking_payment", "owner_deposit", "expense_payment", "refund", "commission", "other")
PAYMENT_RECORD_STATUSES = ("pending", "completed", "failed", "cancelled", "refunded")
PAYMENT_METHODS = ("cash", "bank_transfer", "credit_card", "check", "bit", "paypal", "other")


class Payment(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    """A single tagged payment record.

    ``payment_type`` classifies the economic role of the money; the ledger
    never mutates payments, it only sums them.
    """

    __tablename__ = "payments"

    amount: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    payment_date: Mapped[datetime] = mapped_column(server_default=func.now(), index=True)
    payment_method: Mapped[str] = mapped_column(String(50), default="cash", nullable=False)
    payment_type: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    status: Mapped[str] = mapped_column(String(50), default="completed", nullable=False, index=True)

    booking_id: Mapped[uuid.UUID | None] = mapped_column(
        ForeignKey("bookings.id", ondelete="SET NULL"), nullable=True, index=True
    )
    property_id: Mapped[uuid.UUID | None] = mapped_column(
        ForeignKey("properties.id", ondelete="SET NULL"), nullable=True, index=True
    )
    payer_id: Mapped[uuid.UUID | None] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True
    )
    receiver_id: Mapped[uuid.UUID | None] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True
    )
    created_by_id: Mapped[uuid.UUID | None] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )

    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    reference_number: Mapped[str | None] = mapped_column(String(255), nullable=True)
    category: Mapped[str | None] = mapped_column(String(100), nullable=True)  # renovation, maintenance, ...
    is_for_renovation: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    is_commission: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    commission_rate: Mapped[Decimal | None] = mapped_column(Numeric(5, 2), nullable=True)
    vat_amount: Mapped[Decimal | None] = mapped_column(Numeric(10, 2), nullable=True)
    internal_notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Computed accessors sit above the ``property`` relationship, which shadows
    # the builtin decorator for the rest of the class body.
    @property
    def net_amount(self) -> Decimal:
        """Amount excluding VAT."""
        return Decimal(self.amount) - Decimal(self.vat_amount or 0)

    @property
    def commission_amount(self) -> Decimal:
        if not self.is_commission or not self.commission_rate:
            return Decimal("0")
        return (Decimal(self.amount) * Decimal(self.commission_rate) / 100).quantize(Decimal("0.01"))

    # Relationships
    property: Mapped["Property | None"] = relationship("Property", lazy="selectin")  # type: ignore[name-defined]  # noqa: F821

    __table_args__ = (CheckConstraint("amount > 0", name="ck_payments_amount_positive"),)

    def __repr__(self) -> str:
        return f"<Payment(id={self.id}, type={self.payment_type!r}, amount={self.amount}, status={self.status!r})>"
