# melbox/api/social/schemas.py
from marshmallow import Schema, fields, validate, validates_schema, ValidationError

# --- requests ---

class PostCreateSchema(Schema):
    """Body of POST /api/social/posts. At least one of content / image_url is required."""
    content = fields.Str(allow_none=True, validate=validate.Length(max=2000))
    image_url = fields.URL(allow_none=True)

    @validates_schema
    def validate_not_empty(self, data, **kwargs):
        if not (data.get('content') or '').strip() and not data.get('image_url'):
            raise ValidationError("A post needs text or an image.", field_name="content")

class CommentCreateSchema(Schema):
    """Body of POST /api/social/posts/{post_id}/comments."""
    text = fields.Str(required=True, validate=validate.Length(min=1, max=1000, error="Comments must be 1-1000 characters."))

class FeedQuerySchema(Schema):
    """Query string of GET /api/social/posts."""
    limit = fields.Int(validate=validate.Range(min=1, max=50))
    cursor = fields.DateTime(allow_none=True, load_default=None)

# --- responses ---

class CommentResponseSchema(Schema):
    comment_id = fields.Str(required=True)
    post_id = fields.Str(required=True)
    author_id = fields.Str(required=True)
    author_email = fields.Str(allow_none=True)
    author_name = fields.Str(allow_none=True)
    text = fields.Str(required=True)
    created_at = fields.DateTime(required=True)

class PostResponseSchema(Schema):
    post_id = fields.Str(required=True)
    author_id = fields.Str(required=True)
    author_email = fields.Str(allow_none=True)
    author_name = fields.Str(allow_none=True)
    content = fields.Str(allow_none=True)
    image_url = fields.Str(allow_none=True)
    like_count = fields.Int(required=True)
    comment_count = fields.Int(required=True)
    created_at = fields.DateTime(required=True)

    # filled in by the service for the current viewer
    is_liked = fields.Bool(dump_only=True, dump_default=False)

class LikeResponseSchema(Schema):
    post_id = fields.Str(required=True)
    liked = fields.Bool(required=True)
    like_count = fields.Int(required=True)
