# melbox/api/games/schemas.py
from marshmallow import Schema, fields, validate

# the mini-games that keep level progress
GAME_IDS = (
    'coloring', 'counting', 'dress-up', 'match-the-fairies',
    'painting', 'spelling', 'spot-the-difference', 'word-puzzle',
)

class GamePathSchema(Schema):
    game_id = fields.Str(required=True, validate=validate.OneOf(GAME_IDS, error="Unknown game."))

class LevelResultSchema(Schema):
    """Body of POST /api/games/{game_id}/levels."""
    level = fields.Int(required=True, strict=True, validate=validate.Range(min=1))
    points = fields.Int(required=True, strict=True, validate=validate.Range(min=0))

class GameProgressResponseSchema(Schema):
    game_id = fields.Str()
    total_points = fields.Int()
    completed_levels = fields.List(fields.Int())
    level_scores = fields.Dict(keys=fields.Str(), values=fields.Int())
    next_unlocked_level = fields.Int()
    updated_at = fields.DateTime(allow_none=True)

class GameSummaryResponseSchema(Schema):
    total_points = fields.Int()
    total_levels_completed = fields.Int()
    total_games_played = fields.Int()
    games = fields.Dict(keys=fields.Str(), values=fields.Nested(GameProgressResponseSchema))
