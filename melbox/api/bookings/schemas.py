# melbox/api/bookings/schemas.py
from marshmallow import Schema, fields, validate, post_load

from melbox.models.booking import BookingStatus

class CheckoutRequestSchema(Schema):
    """Body of POST /api/checkout. The price is never taken from the client."""
    package_id = fields.Str(required=True)
    party_date = fields.Date(required=True)
    party_time = fields.Str(required=True, validate=validate.Length(min=1, max=20))
    kids_expected = fields.Int(required=True, validate=validate.Range(min=1, max=200))
    location = fields.Str(required=True, validate=validate.Length(min=1, max=300))
    map_link = fields.URL(allow_none=True, load_default=None)
    notes = fields.Str(allow_none=True, load_default=None, validate=validate.Length(max=2000))
    contact_email = fields.Email(allow_none=True, load_default=None)
    phone = fields.Str(allow_none=True, load_default=None, validate=validate.Length(max=40))

    @post_load
    def date_as_text(self, data, **kwargs):
        # bookings keep the party date as 'YYYY-MM-DD'
        data['party_date'] = data['party_date'].isoformat()
        return data

class CancelRequestSchema(Schema):
    booking_id = fields.Str(required=True, validate=validate.Length(min=1))

class StatusChangeSchema(Schema):
    status = fields.Str(required=True, validate=validate.OneOf([s.value for s in BookingStatus]))

class MarkReadSchema(Schema):
    read = fields.Bool(load_default=True)

class CheckoutResponseSchema(Schema):
    url = fields.Str(required=True)
    session_id = fields.Str(required=True)
    booking_id = fields.Str(required=True)

class CancelResponseSchema(Schema):
    booking_id = fields.Str(required=True)
    status = fields.Str(required=True)
    refund_id = fields.Str(allow_none=True)
    refund_amount = fields.Float(allow_none=True)
    refund_status = fields.Str(allow_none=True)
    payment_intent_id = fields.Str(allow_none=True)
    message = fields.Str(required=True)

class BookingResponseSchema(Schema):
    booking_id = fields.Str(required=True)
    user_id = fields.Str(required=True)
    package_id = fields.Str(required=True)
    package_name = fields.Str(required=True)
    package_price = fields.Float(required=True)
    party_date = fields.Str(required=True)
    party_time = fields.Str(required=True)
    kids_expected = fields.Int(required=True)
    location = fields.Str(required=True)
    map_link = fields.Str(allow_none=True)
    notes = fields.Str(allow_none=True)
    email = fields.Str(allow_none=True)
    contact_email = fields.Str(allow_none=True)
    phone = fields.Str(allow_none=True)
    status = fields.Str(required=True)
    stripe_session_id = fields.Str(allow_none=True)
    payment_intent_id = fields.Str(allow_none=True)
    refund_id = fields.Str(allow_none=True)
    refund_amount = fields.Float(allow_none=True)
    refund_status = fields.Str(allow_none=True)
    read = fields.Bool()
    created_at = fields.DateTime()
    updated_at = fields.DateTime()
