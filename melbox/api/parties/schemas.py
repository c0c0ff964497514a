# melbox/api/parties/schemas.py
from marshmallow import Schema, fields, validate

class PackageCreateSchema(Schema):
    """Body of POST /api/parties/packages."""
    name = fields.Str(required=True, validate=validate.Length(min=1, max=120))
    price = fields.Float(required=True, validate=validate.Range(min=0, min_inclusive=False))
    duration = fields.Str(required=True, validate=validate.Length(min=1, max=60))
    kids_count = fields.Int(required=True, validate=validate.Range(min=1))
    includes = fields.List(fields.Str(validate=validate.Length(min=1)), load_default=list)
    icon = fields.Str(allow_none=True, load_default=None)
    badge = fields.Str(allow_none=True, load_default=None)
    description = fields.Str(allow_none=True, load_default=None, validate=validate.Length(max=2000))

class PackageResponseSchema(Schema):
    package_id = fields.Str(required=True)
    name = fields.Str(required=True)
    price = fields.Float(required=True)
    duration = fields.Str(required=True)
    kids_count = fields.Int(required=True)
    includes = fields.List(fields.Str())
    icon = fields.Str(allow_none=True)
    badge = fields.Str(allow_none=True)
    description = fields.Str(allow_none=True)
    created_at = fields.DateTime()
