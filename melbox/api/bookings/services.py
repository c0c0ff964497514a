# melbox/api/bookings/services.py
import logging
from typing import Optional, Dict, Any, List, Tuple
from firebase_admin import firestore

from melbox.api.parties.services import PartyPackageService
from melbox.models.booking import PartyBooking, BookingStatus, ensure_transition
from melbox.services.payment_service import PaymentService
from melbox.utils.datetime_utils import DateTimeUtils

class BookingService:
    """
    Party bookings ('party_bookings') and the checkout / refund flow around them.

    Checkout is a small saga: the booking is written as pending_payment first,
    then a Stripe session is created for it. If Stripe fails, the booking is
    deleted again so no orphan is left behind.
    Every method that reads or changes a booking takes the acting user and
    checks ownership (or is_admin) itself.
    """
    def __init__(self, payment_service: PaymentService, package_service: PartyPackageService, db=None):
        self.db = db or firestore.client()
        self.bookings_ref = self.db.collection('party_bookings')
        self.payment_service = payment_service
        self.package_service = package_service

    def _load(self, booking_id: str) -> Tuple[Any, PartyBooking]:
        doc_ref = self.bookings_ref.document(booking_id)
        doc = doc_ref.get()
        if not doc.exists:
            raise ValueError("Booking not found.")
        return doc_ref, PartyBooking.from_dict(doc.to_dict())

    @staticmethod
    def _check_access(booking: PartyBooking, actor: Dict[str, Any]):
        if not actor.get('is_admin', False) and booking.user_id != actor.get('user_id'):
            raise PermissionError("This booking is not linked to your account.")

    # --- checkout ---

    def start_checkout(self, actor: Dict[str, Any], package_id: str, party: Dict[str, Any]) -> Dict[str, str]:
        """
        Create a pending booking and a hosted checkout session for it.

        :param party: party_date, party_time, kids_expected, location and the optional
                      map_link, notes, contact_email, phone
        :return: {'url', 'session_id', 'booking_id'}
        """
        self.payment_service.ensure_configured()

        # the price always comes from the stored package, never from the client
        package = self.package_service.get_package(package_id)
        if not package:
            raise ValueError("Package not found.")

        doc_ref = self.bookings_ref.document()
        booking = PartyBooking(
            booking_id=doc_ref.id,
            user_id=actor['user_id'],
            package_id=package_id,
            package_name=package['name'],
            package_price=float(package['price']),
            party_date=party['party_date'],
            party_time=party['party_time'],
            kids_expected=party['kids_expected'],
            location=party['location'],
            map_link=party.get('map_link'),
            notes=party.get('notes'),
            email=actor.get('email') or party.get('contact_email'),
            contact_email=party.get('contact_email'),
            phone=party.get('phone')
        )
        doc_ref.set(DateTimeUtils.for_firestore(booking.to_dict()))

        try:
            session = self.payment_service.create_checkout_session(
                booking.booking_id,
                {'package_id': package_id, 'name': booking.package_name, 'price': booking.package_price},
                party,
                customer_email=booking.contact_email or booking.email
            )
        except Exception:
            doc_ref.delete()
            logging.warning(f"Checkout failed, removed pending booking {booking.booking_id}")
            raise

        doc_ref.update({'stripe_session_id': session['session_id'], 'updated_at': DateTimeUtils.now()})
        logging.info(f"Checkout started: booking {booking.booking_id}, session {session['session_id']}")
        return {'url': session['url'], 'session_id': session['session_id'], 'booking_id': booking.booking_id}

    def mark_paid_from_session(self, booking_id: Optional[str], session_id: str,
                               payment_intent_id: Optional[str]) -> Optional[Dict[str, Any]]:
        """
        Webhook side of checkout: pending_payment -> paid.
        Unknown bookings and bookings that already moved on are ignored (returns None).
        """
        if not booking_id:
            logging.warning(f"Checkout session {session_id} carries no booking_id")
            return None
        try:
            doc_ref, booking = self._load(booking_id)
        except ValueError:
            logging.warning(f"Checkout session {session_id} points at unknown booking {booking_id}")
            return None
        if booking.status is not BookingStatus.PENDING_PAYMENT:
            logging.info(f"Booking {booking_id} is already '{booking.status.value}', ignoring payment event")
            return None

        update = {
            'status': BookingStatus.PAID.value,
            'stripe_session_id': session_id,
            'payment_intent_id': payment_intent_id,
            'updated_at': DateTimeUtils.now(),
        }
        doc_ref.update(update)
        logging.info(f"Booking {booking_id} paid (payment_intent: {payment_intent_id})")
        return self._merged(booking, update)

    # --- cancellation ---

    def cancel_booking(self, booking_id: str, actor: Dict[str, Any]) -> Dict[str, Any]:
        """
        Cancel a booking and refund it in full when it was paid.
        Cancelling twice returns the first refund without calling Stripe again.
        """
        doc_ref, booking = self._load(booking_id)
        self._check_access(booking, actor)

        if booking.status is BookingStatus.CANCELED:
            return self._cancel_result(booking, "This booking was already canceled.")
        ensure_transition(booking.status, BookingStatus.CANCELED)

        payment_intent_id = booking.payment_intent_id
        if not payment_intent_id and booking.stripe_session_id:
            payment_intent_id = self.payment_service.resolve_payment_intent(booking.stripe_session_id)

        update: Dict[str, Any] = {'status': BookingStatus.CANCELED.value, 'updated_at': DateTimeUtils.now()}
        if payment_intent_id:
            update['payment_intent_id'] = payment_intent_id
            update.update(self.payment_service.refund(payment_intent_id, booking.booking_id))
            message = "Booking canceled. Your refund is on its way."
        else:
            message = "Booking canceled."

        doc_ref.update(update)
        logging.info(f"Booking {booking_id} canceled by {actor.get('user_id')} (refund: {update.get('refund_id')})")
        return self._cancel_result(PartyBooking.from_dict(self._merged(booking, update)), message)

    @staticmethod
    def _cancel_result(booking: PartyBooking, message: str) -> Dict[str, Any]:
        return {
            'booking_id': booking.booking_id,
            'status': booking.status.value,
            'refund_id': booking.refund_id,
            'refund_amount': booking.refund_amount,
            'refund_status': booking.refund_status,
            'payment_intent_id': booking.payment_intent_id,
            'message': message,
        }

    # --- admin ---

    def change_status(self, booking_id: str, status: str, actor: Dict[str, Any]) -> Dict[str, Any]:
        """Admin status change. Moving to canceled goes through cancel_booking so paid bookings get refunded."""
        if not actor.get('is_admin', False):
            raise PermissionError("Only admins can change a booking's status.")
        target = BookingStatus(status)
        if target is BookingStatus.CANCELED:
            self.cancel_booking(booking_id, actor)
            return self.get_booking_for_user(booking_id, actor)

        doc_ref, booking = self._load(booking_id)
        ensure_transition(booking.status, target)
        update = {'status': target.value, 'updated_at': DateTimeUtils.now()}
        doc_ref.update(update)
        logging.info(f"Booking {booking_id}: {booking.status.value} -> {target.value}")
        return self._merged(booking, update)

    def mark_read(self, booking_id: str, read: bool = True) -> Dict[str, Any]:
        doc_ref, booking = self._load(booking_id)
        update = {'read': read}
        doc_ref.update(update)
        return self._merged(booking, update)

    def list_all(self, status: Optional[str] = None) -> List[Dict[str, Any]]:
        query = self.bookings_ref
        if status:
            query = query.where('status', '==', BookingStatus(status).value)
        return self._newest_first(query)

    # --- owner ---

    def get_booking_for_user(self, booking_id: str, actor: Dict[str, Any]) -> Dict[str, Any]:
        _, booking = self._load(booking_id)
        self._check_access(booking, actor)
        return booking.to_dict()

    def list_for_user(self, user_id: str) -> List[Dict[str, Any]]:
        return self._newest_first(self.bookings_ref.where('user_id', '==', user_id))

    @staticmethod
    def _newest_first(query) -> List[Dict[str, Any]]:
        # sorted here rather than with order_by, so no composite index is needed
        bookings = [PartyBooking.from_dict(doc.to_dict()).to_dict() for doc in query.stream()]
        bookings.sort(key=lambda b: b['created_at'], reverse=True)
        return bookings

    @staticmethod
    def _merged(booking: PartyBooking, update: Dict[str, Any]) -> Dict[str, Any]:
        data = booking.to_dict()
        data.update(update)
        return data
