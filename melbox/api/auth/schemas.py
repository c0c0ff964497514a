# melbox/api/auth/schemas.py
from marshmallow import Schema, fields

class SessionRequestSchema(Schema):
    """Body of POST /api/auth/session."""
    id_token = fields.Str(
        required=True,
        metadata={"description": "Firebase Authentication ID token from the client SDK"}
    )

class LogoutRequestSchema(Schema):
    access_token = fields.Str(required=True)
    refresh_token = fields.Str(required=True)

class UserInfoSchema(Schema):
    user_id = fields.Str(required=True)
    email = fields.Str(allow_none=True)
    display_name = fields.Str(allow_none=True)
    is_admin = fields.Bool(required=True)
