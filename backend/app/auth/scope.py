"""Role-based row filtering.

An ``AccessScope`` is built once per request from the authenticated user and
handed to every query builder, so the visibility rules live in one place:

* admin sees every row;
* owner sees their properties, bookings on those properties, and payments
  on those properties or where they are payer or receiver;
* tenant sees bookings made for them and payments where they are payer or
  receiver.

Rows outside the scope are reported as not found, never as forbidden.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass

from sqlalchemy import Select, false, or_, select

from app.models.booking import Booking
from app.models.payment import Payment
from app.models.property import Property
from app.models.user import User


@dataclass(frozen=True)
class AccessScope:
    role: str
    user_id: uuid.UUID

    @classmethod
    def for_user(cls, user: User) -> AccessScope:
        return cls(role=user.role, user_id=user.id)

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"

    @property
    def is_owner(self) -> bool:
        return self.role == "owner"

    @property
    def is_tenant(self) -> bool:
        return self.role == "tenant"

    def can_view_owner(self, owner_id: uuid.UUID) -> bool:
        """Owner-level reports are visible to admins and to the owner themself."""
        return self.is_admin or (self.is_owner and self.user_id == owner_id)

    # -- query filters -------------------------------------------------------

    def properties(self, query: Select) -> Select:
        if self.is_admin:
            return query
        if self.is_owner:
            return query.where(Property.owner_id == self.user_id)
        # Tenants may look up properties only through their own bookings.
        booked = select(Booking.property_id).where(Booking.tenant_id == self.user_id)
        return query.where(Property.id.in_(booked))

    def bookings(self, query: Select) -> Select:
        if self.is_admin:
            return query
        if self.is_owner:
            owned = select(Property.id).where(Property.owner_id == self.user_id)
            return query.where(Booking.property_id.in_(owned))
        if self.is_tenant:
            return query.where(Booking.tenant_id == self.user_id)
        return query.where(false())

    def payments(self, query: Select) -> Select:
        if self.is_admin:
            return query
        party = or_(Payment.payer_id == self.user_id, Payment.receiver_id == self.user_id)
        if self.is_owner:
            owned = select(Property.id).where(Property.owner_id == self.user_id)
            return query.where(or_(Payment.property_id.in_(owned), party))
        if self.is_tenant:
            return query.where(party)
        return query.where(false())
