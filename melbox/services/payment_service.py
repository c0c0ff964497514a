# melbox/services/payment_service.py
import logging
from typing import Optional, Dict, Any
from flask import Flask
import stripe


class PaymentConfigurationError(RuntimeError):
    """Stripe keys are missing, so no payment call can be made."""


class PaymentProcessorError(Exception):
    """Stripe rejected a request or could not be reached."""


class PaymentService:
    """
    Thin wrapper around the Stripe SDK: hosted checkout sessions, refunds and webhooks.
    Every call passes api_key explicitly so the global stripe.api_key is never touched.
    """

    def __init__(self, secret_key: Optional[str] = None, webhook_secret: Optional[str] = None,
                 currency: str = 'usd', base_url: str = 'http://localhost:3000'):
        self.secret_key = secret_key
        self.webhook_secret = webhook_secret
        self.currency = currency
        self.base_url = base_url

    def init_app(self, app: Flask):
        """
        Read the Stripe settings from the app config.
        A missing secret key is not fatal here: the app still serves the feed,
        and checkout calls fail with PaymentConfigurationError instead.
        """
        self.secret_key = app.config.get('STRIPE_SECRET_KEY')
        self.webhook_secret = app.config.get('STRIPE_WEBHOOK_SECRET')
        self.currency = app.config.get('CURRENCY', 'usd')
        self.base_url = app.config.get('BASE_URL', self.base_url).rstrip('/')
        if not self.secret_key:
            logging.warning("PaymentService: STRIPE_SECRET_KEY is not set, checkout is disabled.")
        else:
            logging.info("PaymentService: Stripe configured.")

    def ensure_configured(self) -> str:
        if not self.secret_key:
            raise PaymentConfigurationError("Stripe is not configured.")
        return self.secret_key

    @staticmethod
    def to_minor_units(price: float) -> int:
        """Dollars -> cents, e.g. 249.99 -> 24999."""
        return int(round(float(price) * 100))

    def create_checkout_session(self, booking_id: str, package: Dict[str, Any], party: Dict[str, Any],
                                customer_email: Optional[str]) -> Dict[str, str]:
        """
        Create a Stripe hosted checkout session for one booking.

        :param package: {'package_id', 'name', 'price'}
        :param party: {'party_date', 'location'}
        :return: {'session_id', 'url'}
        """
        api_key = self.ensure_configured()
        package_id = package['package_id']
        try:
            session = stripe.checkout.Session.create(
                api_key=api_key,
                mode='payment',
                line_items=[{
                    'price_data': {
                        'currency': self.currency,
                        'product_data': {
                            'name': package['name'],
                            'description': f"Party on {party['party_date']} at {party['location']}",
                        },
                        'unit_amount': self.to_minor_units(package['price']),
                    },
                    'quantity': 1,
                }],
                success_url=f"{self.base_url}/parties/success?bookingId={booking_id}",
                cancel_url=f"{self.base_url}/parties/{package_id}/book?canceled=1&bookingId={booking_id}",
                metadata={'booking_id': booking_id, 'package_id': package_id},
                customer_email=customer_email or None,
            )
        except stripe.StripeError as e:
            logging.error(f"Stripe checkout session creation failed (booking_id: {booking_id}): {e}", exc_info=True)
            raise PaymentProcessorError(str(e)) from e

        return {'session_id': session.id, 'url': session.url}

    def resolve_payment_intent(self, session_id: str) -> Optional[str]:
        """Payment intent id behind a checkout session, or None if it was never paid."""
        api_key = self.ensure_configured()
        try:
            session = stripe.checkout.Session.retrieve(session_id, api_key=api_key)
        except stripe.StripeError as e:
            logging.error(f"Stripe session lookup failed (session_id: {session_id}): {e}", exc_info=True)
            raise PaymentProcessorError(str(e)) from e

        payment_intent = getattr(session, 'payment_intent', None)
        # expanded sessions return the whole object instead of its id
        if payment_intent is not None and not isinstance(payment_intent, str):
            payment_intent = getattr(payment_intent, 'id', None)
        return payment_intent or None

    def refund(self, payment_intent_id: str, booking_id: str) -> Dict[str, Any]:
        """
        Full refund of a payment intent.
        The idempotency key makes a repeated request for the same booking return the first refund.
        """
        api_key = self.ensure_configured()
        try:
            refund = stripe.Refund.create(
                api_key=api_key,
                payment_intent=payment_intent_id,
                reason='requested_by_customer',
                idempotency_key=f"refund-{booking_id}",
            )
        except stripe.StripeError as e:
            logging.error(f"Stripe refund failed (booking_id: {booking_id}): {e}", exc_info=True)
            raise PaymentProcessorError(str(e)) from e

        logging.info(f"Refund {refund.id} created for booking {booking_id} ({refund.status})")
        return {
            'refund_id': refund.id,
            'refund_amount': refund.amount / 100,
            'refund_status': refund.status,
        }

    def construct_webhook_event(self, payload: bytes, signature: Optional[str]):
        """Verify a webhook payload. Raises ValueError for a bad payload or signature."""
        if not self.webhook_secret:
            raise PaymentConfigurationError("Stripe webhook secret is not configured.")
        try:
            return stripe.Webhook.construct_event(payload, signature, self.webhook_secret)
        except stripe.SignatureVerificationError as e:
            raise ValueError("Invalid Stripe signature.") from e
