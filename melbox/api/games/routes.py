# melbox/api/games/routes.py
import logging
from flask import Blueprint, request, jsonify, current_app
from flask_jwt_extended import jwt_required, get_jwt_identity
from marshmallow import ValidationError

from melbox.api.games.schemas import (
    GamePathSchema, LevelResultSchema, GameProgressResponseSchema, GameSummaryResponseSchema
)

games_bp = Blueprint('games_bp', __name__)

@games_bp.route('/summary', methods=['GET'])
@jwt_required()
def get_summary():
    """Points, completed levels and games played across every mini-game."""
    summary = current_app.services['games'].get_summary(get_jwt_identity())
    return jsonify(GameSummaryResponseSchema().dump(summary)), 200

@games_bp.route('/points', methods=['GET'])
@jwt_required()
def get_total_points():
    return jsonify({"total_points": current_app.services['games'].get_total_points(get_jwt_identity())}), 200

@games_bp.route('/<string:game_id>/progress', methods=['GET'])
@jwt_required()
def get_progress(game_id: str):
    game_service = current_app.services['games']
    try:
        GamePathSchema().load({'game_id': game_id})
        progress = game_service.get_progress(get_jwt_identity(), game_id)
        return jsonify(GameProgressResponseSchema().dump(game_service.describe(game_id, progress))), 200
    except ValidationError as err:
        return jsonify({"error_code": "VALIDATION_ERROR", "details": err.messages}), 400

@games_bp.route('/<string:game_id>/levels', methods=['POST'])
@jwt_required()
def save_level(game_id: str):
    """Body: {"level": 3, "points": 120}. Returns the game's progress after saving."""
    game_service = current_app.services['games']
    user_id = get_jwt_identity()
    try:
        GamePathSchema().load({'game_id': game_id})
        data = LevelResultSchema().load(request.get_json() or {})
        progress = game_service.save_level(user_id, game_id, data['level'], data['points'])
        return jsonify(GameProgressResponseSchema().dump(game_service.describe(game_id, progress))), 200
    except ValidationError as err:
        return jsonify({"error_code": "VALIDATION_ERROR", "details": err.messages}), 400
    except Exception as e:
        logging.error(f"Failed to save game level (user_id: {user_id}, game: {game_id}): {e}", exc_info=True)
        return jsonify({"error_code": "PROGRESS_SAVE_FAILED", "message": "Could not save your progress."}), 500
