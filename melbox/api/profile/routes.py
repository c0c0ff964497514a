# melbox/api/profile/routes.py
import logging
from flask import Blueprint, jsonify, Response, current_app
from flask_jwt_extended import jwt_required, get_jwt_identity

from melbox.api.profile.schemas import ProfileStatsResponseSchema

profile_bp = Blueprint('profile_bp', __name__)

@profile_bp.route('/stats', methods=['GET'])
@jwt_required()
def get_stats():
    """Everything the profile page shows: stories watched plus the mini-game summary."""
    user_id = get_jwt_identity()
    try:
        stats = current_app.services['stats'].get_stats(user_id)
        stats['games'] = current_app.services['games'].get_summary(user_id)
        return jsonify(ProfileStatsResponseSchema().dump(stats)), 200
    except Exception as e:
        logging.error(f"Failed to load profile stats (user_id: {user_id}): {e}", exc_info=True)
        return jsonify({"error_code": "INTERNAL_SERVER_ERROR", "message": "Could not load stats. Please try again."}), 500

@profile_bp.route('/activity', methods=['DELETE'])
@jwt_required()
def delete_activity():
    """
    Remove the caller's game progress and activity counters.
    The client calls this before deleting the Firebase account itself.
    """
    user_id = get_jwt_identity()
    try:
        current_app.services['games'].delete_progress(user_id)
        current_app.services['stats'].delete_stats(user_id)
        return Response(status=204)
    except Exception as e:
        logging.error(f"Failed to delete activity (user_id: {user_id}): {e}", exc_info=True)
        return jsonify({"error_code": "ACTIVITY_DELETE_FAILED", "message": "Could not delete your activity."}), 500
