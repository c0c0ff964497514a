# melbox/api/bookings/routes.py
import logging
from flask import Blueprint, request, jsonify, current_app
from flask_jwt_extended import jwt_required
from marshmallow import ValidationError

from melbox.api.bookings.schemas import (
    CheckoutRequestSchema, CancelRequestSchema, StatusChangeSchema, MarkReadSchema,
    CheckoutResponseSchema, CancelResponseSchema, BookingResponseSchema
)
from melbox.core.security import current_actor, admin_required
from melbox.models.booking import BookingStateError
from melbox.services.payment_service import PaymentConfigurationError, PaymentProcessorError

bookings_bp = Blueprint('bookings_bp', __name__)

def _payment_error(e: Exception):
    """Shared JSON bodies for Stripe problems."""
    if isinstance(e, PaymentConfigurationError):
        return jsonify({"error_code": "PAYMENT_NOT_CONFIGURED", "message": "Payments are not available right now."}), 500
    return jsonify({"error_code": "PAYMENT_PROCESSOR_ERROR", "message": "The payment provider could not process the request."}), 502

# --- customer ---

@bookings_bp.route('/checkout', methods=['POST'])
@jwt_required()
def checkout():
    """
    Start a hosted checkout for a party package.
    - Creates a pending_payment booking and a Stripe session for it.
    - The client redirects to the returned url.
    """
    booking_service = current_app.services['bookings']
    try:
        data = CheckoutRequestSchema().load(request.get_json() or {})
        package_id = data.pop('package_id')
        result = booking_service.start_checkout(current_actor(), package_id, data)
        return jsonify(CheckoutResponseSchema().dump(result)), 200
    except ValidationError as err:
        return jsonify({"error_code": "VALIDATION_ERROR", "details": err.messages}), 400
    except (PaymentConfigurationError, PaymentProcessorError) as e:
        return _payment_error(e)
    except ValueError as e:
        return jsonify({"error_code": "PACKAGE_NOT_FOUND", "message": str(e)}), 404
    except Exception as e:
        logging.error(f"Checkout failed: {e}", exc_info=True)
        return jsonify({"error_code": "CHECKOUT_FAILED", "message": "Could not start checkout."}), 500

@bookings_bp.route('/bookings/cancel', methods=['POST'])
@jwt_required()
def cancel_booking():
    """Cancel a booking (owner or admin). Paid bookings are refunded in full."""
    booking_service = current_app.services['bookings']
    try:
        data = CancelRequestSchema().load(request.get_json() or {})
        result = booking_service.cancel_booking(data['booking_id'], current_actor())
        return jsonify(CancelResponseSchema().dump(result)), 200
    except ValidationError as err:
        return jsonify({"error_code": "VALIDATION_ERROR", "details": err.messages}), 400
    except BookingStateError as e:
        return jsonify({"error_code": "INVALID_BOOKING_STATE", "message": str(e)}), 409
    except PermissionError as e:
        return jsonify({"error_code": "FORBIDDEN", "message": str(e)}), 403
    except (PaymentConfigurationError, PaymentProcessorError) as e:
        return _payment_error(e)
    except ValueError as e:
        return jsonify({"error_code": "BOOKING_NOT_FOUND", "message": str(e)}), 404
    except Exception as e:
        logging.error(f"Cancel failed: {e}", exc_info=True)
        return jsonify({"error_code": "CANCEL_FAILED", "message": "Could not cancel the booking."}), 500

@bookings_bp.route('/bookings', methods=['GET'])
@jwt_required()
def list_my_bookings():
    bookings = current_app.services['bookings'].list_for_user(current_actor()['user_id'])
    return jsonify({"bookings": BookingResponseSchema(many=True).dump(bookings)}), 200

@bookings_bp.route('/bookings/<string:booking_id>', methods=['GET'])
@jwt_required()
def get_booking(booking_id: str):
    booking_service = current_app.services['bookings']
    try:
        booking = booking_service.get_booking_for_user(booking_id, current_actor())
        return jsonify(BookingResponseSchema().dump(booking)), 200
    except PermissionError as e:
        return jsonify({"error_code": "FORBIDDEN", "message": str(e)}), 403
    except ValueError as e:
        return jsonify({"error_code": "BOOKING_NOT_FOUND", "message": str(e)}), 404

# --- admin ---

@bookings_bp.route('/admin/bookings', methods=['GET'])
@admin_required
def list_all_bookings():
    status = request.args.get('status')
    try:
        bookings = current_app.services['bookings'].list_all(status)
        return jsonify({"bookings": BookingResponseSchema(many=True).dump(bookings)}), 200
    except ValueError:
        return jsonify({"error_code": "INVALID_STATUS", "message": f"'{status}' is not a booking status."}), 400

@bookings_bp.route('/admin/bookings/<string:booking_id>/status', methods=['POST'])
@admin_required
def change_booking_status(booking_id: str):
    booking_service = current_app.services['bookings']
    try:
        data = StatusChangeSchema().load(request.get_json() or {})
        booking = booking_service.change_status(booking_id, data['status'], current_actor())
        return jsonify(BookingResponseSchema().dump(booking)), 200
    except ValidationError as err:
        return jsonify({"error_code": "VALIDATION_ERROR", "details": err.messages}), 400
    except BookingStateError as e:
        return jsonify({"error_code": "INVALID_BOOKING_STATE", "message": str(e)}), 409
    except (PaymentConfigurationError, PaymentProcessorError) as e:
        return _payment_error(e)
    except ValueError as e:
        return jsonify({"error_code": "BOOKING_NOT_FOUND", "message": str(e)}), 404

@bookings_bp.route('/admin/bookings/<string:booking_id>/read', methods=['POST'])
@admin_required
def mark_booking_read(booking_id: str):
    booking_service = current_app.services['bookings']
    try:
        data = MarkReadSchema().load(request.get_json(silent=True) or {})
        booking = booking_service.mark_read(booking_id, data['read'])
        return jsonify(BookingResponseSchema().dump(booking)), 200
    except ValidationError as err:
        return jsonify({"error_code": "VALIDATION_ERROR", "details": err.messages}), 400
    except ValueError as e:
        return jsonify({"error_code": "BOOKING_NOT_FOUND", "message": str(e)}), 404

# --- Stripe ---

@bookings_bp.route('/payments/webhook', methods=['POST'])
def stripe_webhook():
    """
    Stripe calls this after a checkout completes.
    Only checkout.session.completed changes anything; other events are acknowledged.
    """
    payment_service = current_app.services['payments']
    booking_service = current_app.services['bookings']
    try:
        event = payment_service.construct_webhook_event(request.get_data(), request.headers.get('Stripe-Signature'))
    except PaymentConfigurationError as e:
        return _payment_error(e)
    except ValueError as e:
        logging.warning(f"Rejected webhook: {e}")
        return jsonify({"error_code": "INVALID_SIGNATURE", "message": str(e)}), 400

    if event.type == 'checkout.session.completed':
        session = event.data.object
        metadata = getattr(session, 'metadata', None)
        payment_intent = getattr(session, 'payment_intent', None)
        if payment_intent is not None and not isinstance(payment_intent, str):
            payment_intent = getattr(payment_intent, 'id', None)
        booking_service.mark_paid_from_session(
            getattr(metadata, 'booking_id', None) if metadata else None,
            session.id,
            payment_intent
        )
    return jsonify({"received": True}), 200
