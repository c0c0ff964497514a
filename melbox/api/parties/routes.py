# melbox/api/parties/routes.py
import logging
from flask import Blueprint, request, jsonify, Response, current_app
from marshmallow import ValidationError

from melbox.api.parties.schemas import PackageCreateSchema, PackageResponseSchema
from melbox.core.security import admin_required

parties_bp = Blueprint('parties_bp', __name__)

@parties_bp.route('/packages', methods=['GET'])
def list_packages():
    package_service = current_app.services['packages']
    try:
        packages = package_service.list_packages()
        return jsonify({"packages": PackageResponseSchema(many=True).dump(packages)}), 200
    except Exception as e:
        logging.error(f"Failed to list party packages: {e}", exc_info=True)
        return jsonify({"error_code": "INTERNAL_SERVER_ERROR", "message": "Could not load packages."}), 500

@parties_bp.route('/packages/<string:package_id>', methods=['GET'])
def get_package(package_id: str):
    package = current_app.services['packages'].get_package(package_id)
    if not package:
        return jsonify({"error_code": "PACKAGE_NOT_FOUND", "message": "Package not found."}), 404
    return jsonify(PackageResponseSchema().dump(package)), 200

@parties_bp.route('/packages', methods=['POST'])
@admin_required
def create_package():
    package_service = current_app.services['packages']
    try:
        data = PackageCreateSchema().load(request.get_json() or {})
        package = package_service.create_package(data)
        return jsonify(PackageResponseSchema().dump(package)), 201
    except ValidationError as err:
        return jsonify({"error_code": "VALIDATION_ERROR", "details": err.messages}), 400

@parties_bp.route('/packages/<string:package_id>', methods=['PATCH'])
@admin_required
def update_package(package_id: str):
    package_service = current_app.services['packages']
    try:
        # partial: only the fields present in the body change
        data = PackageCreateSchema(partial=True).load(request.get_json() or {})
        package = package_service.update_package(package_id, data)
        return jsonify(PackageResponseSchema().dump(package)), 200
    except ValidationError as err:
        return jsonify({"error_code": "VALIDATION_ERROR", "details": err.messages}), 400
    except ValueError as e:
        return jsonify({"error_code": "PACKAGE_NOT_FOUND", "message": str(e)}), 404

@parties_bp.route('/packages/<string:package_id>', methods=['DELETE'])
@admin_required
def delete_package(package_id: str):
    try:
        current_app.services['packages'].delete_package(package_id)
        return Response(status=204)
    except ValueError as e:
        return jsonify({"error_code": "PACKAGE_NOT_FOUND", "message": str(e)}), 404
