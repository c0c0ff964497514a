# melbox/api/profile/schemas.py
from marshmallow import Schema, fields

from melbox.api.games.schemas import GameSummaryResponseSchema

class ProfileStatsResponseSchema(Schema):
    stories_watched = fields.Int()
    updated_at = fields.DateTime(allow_none=True)
    games = fields.Nested(GameSummaryResponseSchema)
