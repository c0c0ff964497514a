# melbox/api/gallery/schemas.py
from marshmallow import Schema, fields, validate

class PhotoCreateSchema(Schema):
    title = fields.Str(required=True, validate=validate.Length(min=1, max=120))
    date = fields.Str(required=True)
    category = fields.Str(required=True, validate=validate.Length(min=1, max=60))
    category_color = fields.Str(load_default="#f472b6")
    image_url = fields.URL(required=True)
    description = fields.Str(allow_none=True, load_default=None, validate=validate.Length(max=1000))

class PhotoLikeSchema(Schema):
    delta = fields.Int(load_default=1, validate=validate.OneOf([1, -1]))

class PhotoResponseSchema(Schema):
    photo_id = fields.Str(required=True)
    title = fields.Str(required=True)
    date = fields.Str(required=True)
    category = fields.Str(required=True)
    category_color = fields.Str()
    image_url = fields.Str(required=True)
    description = fields.Str(allow_none=True)
    likes = fields.Int()
    downloads = fields.Int()
    created_at = fields.DateTime()
