# melbox/api/bookings/test_services.py
"""
Checkout / cancellation flow with Stripe calls replaced by mocks.

Usage: python -m pytest melbox/api/bookings/test_services.py -v
"""
from datetime import datetime, timezone, timedelta

import pytest
import stripe

from melbox.models.booking import BookingStatus, BookingStateError, PartyBooking
from melbox.services.payment_service import PaymentConfigurationError, PaymentProcessorError

MEL = {'user_id': 'u1', 'email': 'mel@example.com', 'name': 'Mel', 'is_admin': False}
SAM = {'user_id': 'u2', 'email': 'sam@example.com', 'name': 'Sam', 'is_admin': False}
ADMIN = {'user_id': 'admin', 'email': 'admin@example.com', 'name': 'Admin', 'is_admin': True}

PARTY = {
    'party_date': '2025-06-01', 'party_time': '14:00', 'kids_expected': 12,
    'location': 'Riverside Park', 'contact_email': 'parent@example.com',
}


@pytest.fixture
def bookings(services, fairy_package):
    return services['bookings']


def _seed_booking(bookings, booking_id='b1', user_id='u1', created_minutes_ago=0, **overrides):
    booking = PartyBooking(
        booking_id=booking_id, user_id=user_id, package_id='pkg1', package_name='Fairy Party',
        package_price=250.0, party_date='2025-06-01', party_time='14:00', kids_expected=12,
        location='Riverside Park', email='mel@example.com',
        created_at=datetime(2025, 5, 1, tzinfo=timezone.utc) - timedelta(minutes=created_minutes_ago),
        **overrides
    )
    bookings.bookings_ref.document(booking_id).set(booking.to_dict())
    return booking


def _stored(bookings, booking_id='b1'):
    return PartyBooking.from_dict(bookings.bookings_ref.document(booking_id).get().to_dict())

# --- checkout ---

def test_checkout_creates_pending_booking_and_session(bookings, stripe_api):
    result = bookings.start_checkout(MEL, 'pkg1', dict(PARTY))

    assert result['url'] == 'https://checkout.stripe.com/c/pay/cs_test_1'
    assert result['session_id'] == 'cs_test_1'
    booking = _stored(bookings, result['booking_id'])
    assert booking.status is BookingStatus.PENDING_PAYMENT
    assert booking.stripe_session_id == 'cs_test_1'
    assert booking.package_price == 250.0
    assert booking.user_id == 'u1'

    kwargs = stripe_api.create_session.call_args.kwargs
    assert kwargs['line_items'][0]['price_data']['unit_amount'] == 25000
    assert kwargs['metadata'] == {'booking_id': result['booking_id'], 'package_id': 'pkg1'}
    assert kwargs['customer_email'] == 'parent@example.com'
    assert kwargs['success_url'] == f"http://testserver/parties/success?bookingId={result['booking_id']}"
    assert kwargs['cancel_url'] == f"http://testserver/parties/pkg1/book?canceled=1&bookingId={result['booking_id']}"

def test_checkout_falls_back_to_account_email(bookings, stripe_api):
    party = dict(PARTY, contact_email=None)
    bookings.start_checkout(MEL, 'pkg1', party)
    assert stripe_api.create_session.call_args.kwargs['customer_email'] == 'mel@example.com'

def test_checkout_unknown_package(bookings, stripe_api):
    with pytest.raises(ValueError):
        bookings.start_checkout(MEL, 'nope', dict(PARTY))
    assert list(bookings.bookings_ref.stream()) == []
    stripe_api.create_session.assert_not_called()

def test_failed_session_leaves_no_booking_behind(bookings, stripe_api):
    stripe_api.create_session.side_effect = stripe.StripeError("card network down")

    with pytest.raises(PaymentProcessorError):
        bookings.start_checkout(MEL, 'pkg1', dict(PARTY))
    assert list(bookings.bookings_ref.stream()) == []

def test_checkout_without_stripe_keys(bookings, payment_service, stripe_api):
    payment_service.secret_key = None

    with pytest.raises(PaymentConfigurationError):
        bookings.start_checkout(MEL, 'pkg1', dict(PARTY))
    assert list(bookings.bookings_ref.stream()) == []

# --- webhook ---

def test_completed_session_marks_booking_paid_once(bookings):
    _seed_booking(bookings, stripe_session_id='cs_1')

    paid = bookings.mark_paid_from_session('b1', 'cs_1', 'pi_1')
    assert paid['status'] == 'paid'
    assert _stored(bookings).payment_intent_id == 'pi_1'

    assert bookings.mark_paid_from_session('b1', 'cs_1', 'pi_1') is None
    assert bookings.mark_paid_from_session('ghost', 'cs_2', 'pi_2') is None
    assert bookings.mark_paid_from_session(None, 'cs_3', 'pi_3') is None

# --- cancellation ---

def test_cancel_paid_booking_refunds_full_price(bookings, stripe_api):
    _seed_booking(bookings, status=BookingStatus.PAID, payment_intent_id='pi_1', stripe_session_id='cs_1')

    result = bookings.cancel_booking('b1', MEL)

    assert result['status'] == 'canceled'
    assert result['refund_id'] == 're_1'
    assert result['refund_amount'] == 250.0
    assert result['refund_status'] == 'succeeded'
    stripe_api.create_refund.assert_called_once()
    kwargs = stripe_api.create_refund.call_args.kwargs
    assert kwargs['payment_intent'] == 'pi_1'
    assert kwargs['reason'] == 'requested_by_customer'
    assert kwargs['idempotency_key'] == 'refund-b1'
    stripe_api.retrieve_session.assert_not_called()

    stored = _stored(bookings)
    assert stored.status is BookingStatus.CANCELED
    assert stored.refund_amount == stored.package_price

def test_cancel_resolves_payment_intent_from_session(bookings, stripe_api):
    _seed_booking(bookings, status=BookingStatus.ACCEPTED, stripe_session_id='cs_1')

    result = bookings.cancel_booking('b1', MEL)
    assert result['payment_intent_id'] == 'pi_from_session'
    assert stripe_api.create_refund.call_args.kwargs['payment_intent'] == 'pi_from_session'

def test_cancel_unpaid_booking_skips_refund(bookings, stripe_api):
    _seed_booking(bookings)

    result = bookings.cancel_booking('b1', MEL)
    assert result['status'] == 'canceled'
    assert result['refund_id'] is None
    stripe_api.create_refund.assert_not_called()

def test_cancel_twice_does_not_refund_twice(bookings, stripe_api):
    _seed_booking(bookings, status=BookingStatus.PAID, payment_intent_id='pi_1')

    first = bookings.cancel_booking('b1', MEL)
    second = bookings.cancel_booking('b1', MEL)

    assert stripe_api.create_refund.call_count == 1
    assert second['refund_id'] == first['refund_id'] == 're_1'
    assert second['refund_amount'] == 250.0

def test_completed_booking_cannot_be_canceled(bookings, stripe_api):
    _seed_booking(bookings, status=BookingStatus.COMPLETED, payment_intent_id='pi_1')

    with pytest.raises(BookingStateError):
        bookings.cancel_booking('b1', MEL)
    assert _stored(bookings).status is BookingStatus.COMPLETED
    stripe_api.create_refund.assert_not_called()

def test_refund_failure_leaves_booking_unchanged(bookings, stripe_api):
    _seed_booking(bookings, status=BookingStatus.PAID, payment_intent_id='pi_1')
    stripe_api.create_refund.side_effect = stripe.StripeError("refund rejected")

    with pytest.raises(PaymentProcessorError):
        bookings.cancel_booking('b1', MEL)
    assert _stored(bookings).status is BookingStatus.PAID

def test_only_owner_or_admin_can_cancel_or_view(bookings, stripe_api):
    _seed_booking(bookings)

    with pytest.raises(PermissionError, match="not linked to your account"):
        bookings.cancel_booking('b1', SAM)
    with pytest.raises(PermissionError):
        bookings.get_booking_for_user('b1', SAM)

    assert bookings.get_booking_for_user('b1', ADMIN)['booking_id'] == 'b1'
    assert bookings.cancel_booking('b1', ADMIN)['status'] == 'canceled'

def test_missing_booking(bookings):
    with pytest.raises(ValueError):
        bookings.cancel_booking('nope', MEL)

# --- admin ---

def test_admin_moves_booking_along_the_state_machine(bookings):
    _seed_booking(bookings, status=BookingStatus.PAID)

    assert bookings.change_status('b1', 'accepted', ADMIN)['status'] == 'accepted'
    assert bookings.change_status('b1', 'completed', ADMIN)['status'] == 'completed'
    with pytest.raises(BookingStateError):
        bookings.change_status('b1', 'accepted', ADMIN)
    assert _stored(bookings).status is BookingStatus.COMPLETED

def test_admin_cancel_goes_through_refund(bookings, stripe_api):
    _seed_booking(bookings, status=BookingStatus.PAID, payment_intent_id='pi_1')

    booking = bookings.change_status('b1', 'canceled', ADMIN)
    assert booking['status'] == 'canceled'
    assert booking['refund_id'] == 're_1'

def test_status_change_requires_admin(bookings):
    _seed_booking(bookings, status=BookingStatus.PAID)
    with pytest.raises(PermissionError):
        bookings.change_status('b1', 'accepted', MEL)

def test_mark_read(bookings):
    _seed_booking(bookings)
    assert bookings.mark_read('b1')['read'] is True
    assert _stored(bookings).read is True

def test_listing(bookings):
    _seed_booking(bookings, 'old', created_minutes_ago=10)
    _seed_booking(bookings, 'new', created_minutes_ago=1, status=BookingStatus.PAID)
    _seed_booking(bookings, 'other', user_id='u2', created_minutes_ago=5)

    assert [b['booking_id'] for b in bookings.list_for_user('u1')] == ['new', 'old']
    assert [b['booking_id'] for b in bookings.list_all()] == ['new', 'other', 'old']
    assert [b['booking_id'] for b in bookings.list_all('paid')] == ['new']
    with pytest.raises(ValueError):
        bookings.list_all('lost')
