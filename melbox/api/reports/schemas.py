# melbox/api/reports/schemas.py
from marshmallow import Schema, fields, validate

from melbox.models.report import ReportStatus

class ReportCreateSchema(Schema):
    post_id = fields.Str(required=True)
    comment_id = fields.Str(allow_none=True, load_default=None)
    reason = fields.Str(required=True, validate=validate.Length(min=1, max=500))

class ReportResponseSchema(Schema):
    report_id = fields.Str(required=True)
    post_id = fields.Str(required=True)
    comment_id = fields.Str(allow_none=True)
    reason = fields.Str(required=True)
    reporter_id = fields.Str(required=True)
    reporter_email = fields.Str(allow_none=True)
    status = fields.Str(required=True, validate=validate.OneOf([s.value for s in ReportStatus]))
    created_at = fields.DateTime(required=True)
    resolved_at = fields.DateTime(allow_none=True)
