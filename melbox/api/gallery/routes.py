# melbox/api/gallery/routes.py
from flask import Blueprint, request, jsonify, Response, current_app
from flask_jwt_extended import jwt_required
from marshmallow import ValidationError

from melbox.api.gallery.schemas import PhotoCreateSchema, PhotoLikeSchema, PhotoResponseSchema
from melbox.core.security import admin_required

gallery_bp = Blueprint('gallery_bp', __name__)

@gallery_bp.route('/photos', methods=['GET'])
def list_photos():
    photos = current_app.services['gallery'].list_photos(request.args.get('category'))
    return jsonify({"photos": PhotoResponseSchema(many=True).dump(photos)}), 200

@gallery_bp.route('/photos', methods=['POST'])
@admin_required
def create_photo():
    try:
        data = PhotoCreateSchema().load(request.get_json() or {})
        photo = current_app.services['gallery'].create_photo(data)
        return jsonify(PhotoResponseSchema().dump(photo)), 201
    except ValidationError as err:
        return jsonify({"error_code": "VALIDATION_ERROR", "details": err.messages}), 400

@gallery_bp.route('/photos/<string:photo_id>', methods=['DELETE'])
@admin_required
def delete_photo(photo_id: str):
    try:
        current_app.services['gallery'].delete_photo(photo_id)
        return Response(status=204)
    except ValueError as e:
        return jsonify({"error_code": "PHOTO_NOT_FOUND", "message": str(e)}), 404

@gallery_bp.route('/photos/<string:photo_id>/like', methods=['POST'])
@jwt_required()
def like_photo(photo_id: str):
    """Body: {"delta": 1} to like, {"delta": -1} to take it back."""
    try:
        data = PhotoLikeSchema().load(request.get_json(silent=True) or {})
        likes = current_app.services['gallery'].adjust_likes(photo_id, data['delta'])
        return jsonify({"photo_id": photo_id, "likes": likes}), 200
    except ValidationError as err:
        return jsonify({"error_code": "VALIDATION_ERROR", "details": err.messages}), 400
    except ValueError as e:
        return jsonify({"error_code": "PHOTO_NOT_FOUND", "message": str(e)}), 404
