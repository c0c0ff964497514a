# melbox/api/videos/schemas.py
from marshmallow import Schema, fields, validate

class VideoCreateSchema(Schema):
    """Body of POST /api/videos."""
    title = fields.Str(required=True, validate=validate.Length(min=1, max=120))
    description = fields.Str(load_default="", validate=validate.Length(max=2000))
    duration = fields.Str(required=True, validate=validate.Length(min=1, max=30))
    tags = fields.List(fields.Str(validate=validate.Length(min=1, max=40)), load_default=list)
    thumbnail_url = fields.URL(required=True)
    video_url = fields.URL(required=True)

class VideoResponseSchema(Schema):
    video_id = fields.Str(required=True)
    title = fields.Str(required=True)
    description = fields.Str()
    duration = fields.Str()
    tags = fields.List(fields.Str())
    thumbnail_url = fields.Str()
    video_url = fields.Str()
    views = fields.Int()
    created_at = fields.DateTime()
