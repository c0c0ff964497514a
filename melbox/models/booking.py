# melbox/models/booking.py
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional, Dict, Any, FrozenSet

from melbox.utils.datetime_utils import DateTimeUtils


class BookingStatus(Enum):
    """Lifecycle of a party booking."""
    PENDING_PAYMENT = "pending_payment"
    PAID = "paid"
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    COMPLETED = "completed"
    CANCELED = "canceled"


# Allowed next states for each status. completed / canceled are terminal.
BOOKING_TRANSITIONS: Dict[BookingStatus, FrozenSet[BookingStatus]] = {
    BookingStatus.PENDING_PAYMENT: frozenset({BookingStatus.PAID, BookingStatus.REJECTED, BookingStatus.CANCELED}),
    BookingStatus.PAID: frozenset({BookingStatus.ACCEPTED, BookingStatus.CANCELED}),
    BookingStatus.ACCEPTED: frozenset({BookingStatus.COMPLETED, BookingStatus.CANCELED}),
    BookingStatus.REJECTED: frozenset({BookingStatus.CANCELED}),
    BookingStatus.COMPLETED: frozenset(),
    BookingStatus.CANCELED: frozenset(),
}


class BookingStateError(ValueError):
    """Raised when a booking cannot move from its current status to the requested one."""

    def __init__(self, current: BookingStatus, target: BookingStatus):
        self.current = current
        self.target = target
        super().__init__(f"Booking cannot move from '{current.value}' to '{target.value}'.")


def is_terminal(status: BookingStatus) -> bool:
    return not BOOKING_TRANSITIONS[status]


def can_transition(current: BookingStatus, target: BookingStatus) -> bool:
    return target in BOOKING_TRANSITIONS[current]


def ensure_transition(current: BookingStatus, target: BookingStatus) -> None:
    """Raise BookingStateError unless current -> target is a legal move."""
    if not can_transition(current, target):
        raise BookingStateError(current, target)


@dataclass
class PartyBooking:
    """
    Document structure of the 'party_bookings' collection.
    package_price is copied from the package at booking time (dollars).
    """
    booking_id: str
    user_id: str
    package_id: str
    package_name: str
    package_price: float
    party_date: str
    party_time: str
    kids_expected: int
    location: str
    email: str
    map_link: Optional[str] = None
    notes: Optional[str] = None
    contact_email: Optional[str] = None
    phone: Optional[str] = None
    status: BookingStatus = BookingStatus.PENDING_PAYMENT
    stripe_session_id: Optional[str] = None
    payment_intent_id: Optional[str] = None
    refund_id: Optional[str] = None
    refund_amount: Optional[float] = None
    refund_status: Optional[str] = None
    read: bool = False
    created_at: datetime = field(default_factory=DateTimeUtils.now)
    updated_at: datetime = field(default_factory=DateTimeUtils.now)

    def to_dict(self) -> Dict[str, Any]:
        """Firestore representation (Enum stored as its string value)."""
        data = {k: getattr(self, k) for k in self.__dataclass_fields__}
        data['status'] = self.status.value
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PartyBooking":
        processed = {k: v for k, v in DateTimeUtils.from_firestore(data).items() if k in cls.__dataclass_fields__}
        status = processed.get('status') or BookingStatus.PENDING_PAYMENT.value
        processed['status'] = status if isinstance(status, BookingStatus) else BookingStatus(status)
        return cls(**processed)
