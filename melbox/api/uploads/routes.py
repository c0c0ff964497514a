# melbox/api/uploads/routes.py

import logging
from flask import request, jsonify, Blueprint, current_app
from flask_jwt_extended import jwt_required, get_jwt_identity
from marshmallow import Schema, fields, validate, validates_schema, ValidationError

from melbox.services.storage_service import StorageService

uploads_bp = Blueprint('uploads', __name__)

class UploadUrlSchema(Schema):
    upload_type = fields.Str(required=True, validate=validate.OneOf(list(StorageService.PATH_MAP)))
    filename = fields.Str(required=True, validate=validate.Length(min=1, max=255))
    content_type = fields.Str(required=True, validate=validate.Regexp(r'^(image|video)/[\w.+-]+$', error="Only images or videos can be uploaded."))

    @validates_schema
    def validate_media_kind(self, data, **kwargs):
        if data['content_type'].startswith('video/') and data['upload_type'] not in StorageService.VIDEO_UPLOAD_TYPES:
            raise ValidationError("Only images can be uploaded here.", field_name="content_type")

class FilePathSchema(Schema):
    file_path = fields.Str(required=True, error_messages={"required": "file_path is required."})


@uploads_bp.route('/url', methods=['POST'])
@jwt_required()
def get_upload_url():
    """
    Issue a pre-signed PUT URL. The client uploads the file straight to Storage,
    then calls /finalize with the returned file_path.
    """
    user_id = get_jwt_identity()
    storage_service = current_app.services['storage']
    try:
        data = UploadUrlSchema().load(request.get_json() or {})
        url_info = storage_service.generate_upload_url(user_id, data['upload_type'], data['filename'], data['content_type'])
        return jsonify(url_info), 200
    except ValidationError as err:
        logging.warning(f"Upload URL request rejected: {err.messages}")
        return jsonify({"error_code": "VALIDATION_ERROR", "details": err.messages}), 400
    except ValueError as e:
        return jsonify({"error_code": "INVALID_UPLOAD_TYPE", "message": str(e)}), 400
    except Exception as e:
        logging.error(f"Failed to create pre-signed URL: {e}", exc_info=True)
        return jsonify({"error_code": "URL_GENERATION_FAILED", "message": "Could not create an upload URL."}), 500


@uploads_bp.route('/finalize', methods=['POST'])
@jwt_required()
def finalize_upload():
    """Make an uploaded file public and return its URL. Only the uploader's own folder is allowed."""
    user_id = get_jwt_identity()
    storage_service = current_app.services['storage']
    try:
        file_path = FilePathSchema().load(request.get_json() or {})['file_path']
        owner_folders = [template.format(user_id=user_id) + '/' for template in StorageService.PATH_MAP.values()]
        if not any(file_path.startswith(folder) for folder in owner_folders):
            return jsonify({"error_code": "FORBIDDEN", "message": "You can only publish your own uploads."}), 403

        public_url = storage_service.make_public_and_get_url(file_path)
        return jsonify({"public_url": public_url}), 200
    except ValidationError as err:
        return jsonify({"error_code": "VALIDATION_ERROR", "details": err.messages}), 400
    except FileNotFoundError as e:
        return jsonify({"error_code": "FILE_NOT_FOUND", "message": str(e)}), 404
    except Exception as e:
        logging.error(f"Failed to publish upload: {e}", exc_info=True)
        return jsonify({"error_code": "INTERNAL_SERVER_ERROR", "message": "Could not process the file."}), 500
