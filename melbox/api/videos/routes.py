# melbox/api/videos/routes.py
import logging
from flask import Blueprint, request, jsonify, Response, current_app
from flask_jwt_extended import jwt_required
from marshmallow import ValidationError

from melbox.api.videos.schemas import VideoCreateSchema, VideoResponseSchema
from melbox.core.security import current_actor, admin_required

videos_bp = Blueprint('videos_bp', __name__)

@videos_bp.route('/videos', methods=['GET'])
def list_videos():
    videos = current_app.services['videos'].list_videos(request.args.get('tag'))
    return jsonify({"videos": VideoResponseSchema(many=True).dump(videos)}), 200

@videos_bp.route('/videos/<string:video_id>', methods=['GET'])
def get_video(video_id: str):
    video = current_app.services['videos'].get_video(video_id)
    if not video:
        return jsonify({"error_code": "VIDEO_NOT_FOUND", "message": "Video not found."}), 404
    return jsonify(VideoResponseSchema().dump(video)), 200

@videos_bp.route('/videos', methods=['POST'])
@admin_required
def create_video():
    try:
        data = VideoCreateSchema().load(request.get_json() or {})
        video = current_app.services['videos'].create_video(data)
        return jsonify(VideoResponseSchema().dump(video)), 201
    except ValidationError as err:
        return jsonify({"error_code": "VALIDATION_ERROR", "details": err.messages}), 400

@videos_bp.route('/videos/<string:video_id>', methods=['DELETE'])
@admin_required
def delete_video(video_id: str):
    try:
        current_app.services['videos'].delete_video(video_id)
        return Response(status=204)
    except ValueError as e:
        return jsonify({"error_code": "VIDEO_NOT_FOUND", "message": str(e)}), 404

@videos_bp.route('/videos/<string:video_id>/view', methods=['POST'])
@jwt_required(optional=True)
def record_view(video_id: str):
    """
    Called when playback starts. Counts the view on the video and,
    for a signed-in caller, adds one to their stories-watched total.
    """
    actor = current_actor(optional=True)
    try:
        views = current_app.services['videos'].record_view(video_id)
    except ValueError as e:
        return jsonify({"error_code": "VIDEO_NOT_FOUND", "message": str(e)}), 404

    if actor:
        try:
            current_app.services['stats'].increment_story_watched(actor['user_id'])
        except Exception as e:
            # the view itself is already counted
            logging.error(f"Failed to update stories watched (user_id: {actor['user_id']}): {e}", exc_info=True)
    return jsonify({"video_id": video_id, "views": views}), 200
