# melbox/api/courses/schemas.py
from marshmallow import Schema, fields, validate

# --- requests ---

class LessonSchema(Schema):
    title = fields.Str(required=True, validate=validate.Length(min=1, max=200))
    duration = fields.Str(allow_none=True, load_default=None)
    video_url = fields.URL(required=True)
    preview = fields.Bool(load_default=False)
    download_url = fields.URL(allow_none=True, load_default=None)

class SectionSchema(Schema):
    title = fields.Str(required=True, validate=validate.Length(min=1, max=200))
    lessons = fields.List(fields.Nested(LessonSchema), load_default=list)

class CourseCreateSchema(Schema):
    """Body of POST /api/courses. lessons defaults to the number of lessons in sections."""
    title = fields.Str(required=True, validate=validate.Length(min=1, max=120))
    description = fields.Str(required=True, validate=validate.Length(min=1, max=4000))
    price = fields.Float(required=True, validate=validate.Range(min=0))
    duration = fields.Str(required=True, validate=validate.Length(min=1, max=60))
    level = fields.Str(required=True, validate=validate.Length(min=1, max=60))
    thumbnail_url = fields.URL(required=True)
    preview_url = fields.URL(required=True)
    lessons = fields.Int(validate=validate.Range(min=0))
    rating = fields.Float(load_default=5.0, validate=validate.Range(min=0, max=5))
    tags = fields.List(fields.Str(validate=validate.Length(min=1)), load_default=list)
    highlights = fields.List(fields.Str(validate=validate.Length(min=1)), load_default=list)
    preview_headline = fields.Str(allow_none=True, load_default=None, validate=validate.Length(max=200))
    sections = fields.List(fields.Nested(SectionSchema), load_default=list)

class AccessGrantSchema(Schema):
    """Body of POST /api/courses/{course_id}/access."""
    user_id = fields.Str(required=True, validate=validate.Length(min=1))

# --- responses ---

class LessonResponseSchema(Schema):
    title = fields.Str(required=True)
    duration = fields.Str(allow_none=True)
    video_url = fields.Str(allow_none=True)
    download_url = fields.Str(allow_none=True)
    preview = fields.Bool()
    locked = fields.Bool()

class SectionResponseSchema(Schema):
    title = fields.Str(required=True)
    lessons = fields.List(fields.Nested(LessonResponseSchema))

class CourseResponseSchema(Schema):
    course_id = fields.Str(required=True)
    title = fields.Str(required=True)
    description = fields.Str()
    price = fields.Float(required=True)
    duration = fields.Str()
    level = fields.Str()
    thumbnail_url = fields.Str()
    preview_url = fields.Str()
    lessons = fields.Int()
    students = fields.Int()
    rating = fields.Float()
    tags = fields.List(fields.Str())
    highlights = fields.List(fields.Str())
    preview_headline = fields.Str(allow_none=True)
    sections = fields.List(fields.Nested(SectionResponseSchema))
    owned = fields.Bool()
    created_at = fields.DateTime()
