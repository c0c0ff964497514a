# melbox/api/reports/routes.py
import logging
from flask import Blueprint, request, jsonify, current_app
from flask_jwt_extended import jwt_required
from marshmallow import ValidationError

from melbox.api.reports.schemas import ReportCreateSchema, ReportResponseSchema
from melbox.core.security import current_actor, admin_required

reports_bp = Blueprint('reports_bp', __name__)

@reports_bp.route('', methods=['POST'])
@jwt_required()
def create_report():
    """Report a post, or one of its comments, to the moderators."""
    report_service = current_app.services['reports']
    try:
        data = ReportCreateSchema().load(request.get_json() or {})
        report = report_service.create_report(current_actor(), data['post_id'], data['reason'], data.get('comment_id'))
        return jsonify(ReportResponseSchema().dump(report)), 201
    except ValidationError as err:
        return jsonify({"error_code": "VALIDATION_ERROR", "details": err.messages}), 400
    except ValueError as e:
        return jsonify({"error_code": "RESOURCE_NOT_FOUND", "message": str(e)}), 404

@reports_bp.route('', methods=['GET'])
@admin_required
def list_reports():
    report_service = current_app.services['reports']
    try:
        reports = report_service.list_reports(request.args.get('status'))
        return jsonify({"reports": ReportResponseSchema(many=True).dump(reports)}), 200
    except ValueError:
        return jsonify({"error_code": "INVALID_STATUS", "message": "status must be 'open' or 'resolved'."}), 400
    except Exception as e:
        logging.error(f"Failed to list reports: {e}", exc_info=True)
        return jsonify({"error_code": "INTERNAL_SERVER_ERROR", "message": "Could not load reports."}), 500

@reports_bp.route('/<string:report_id>/resolve', methods=['POST'])
@admin_required
def resolve_report(report_id: str):
    report_service = current_app.services['reports']
    try:
        report = report_service.resolve_report(report_id)
        return jsonify(ReportResponseSchema().dump(report)), 200
    except ValueError as e:
        return jsonify({"error_code": "REPORT_NOT_FOUND", "message": str(e)}), 404
