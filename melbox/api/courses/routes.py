# melbox/api/courses/routes.py
import logging
from flask import Blueprint, request, jsonify, Response, current_app
from flask_jwt_extended import jwt_required
from marshmallow import ValidationError

from melbox.api.courses.schemas import CourseCreateSchema, AccessGrantSchema, CourseResponseSchema
from melbox.core.security import current_actor, admin_required

courses_bp = Blueprint('courses_bp', __name__)

def _unlocked_for(actor, owned_ids, course_id: str) -> bool:
    if actor and actor['is_admin']:
        return True
    return course_id in owned_ids

@courses_bp.route('/courses', methods=['GET'])
@jwt_required(optional=True)
def list_courses():
    """All courses, newest first. Lesson links are filled in only where the caller may watch them."""
    course_service = current_app.services['courses']
    actor = current_actor(optional=True)
    try:
        owned_ids = course_service.owned_course_ids(actor['user_id'] if actor else None)
        courses = [
            course_service.present(course, _unlocked_for(actor, owned_ids, course['course_id']))
            for course in course_service.list_courses()
        ]
        return jsonify({"courses": CourseResponseSchema(many=True).dump(courses)}), 200
    except Exception as e:
        logging.error(f"Failed to list courses: {e}", exc_info=True)
        return jsonify({"error_code": "INTERNAL_SERVER_ERROR", "message": "Could not load courses."}), 500

@courses_bp.route('/courses/owned', methods=['GET'])
@jwt_required()
def list_owned_courses():
    """The caller's course library."""
    course_service = current_app.services['courses']
    actor = current_actor()
    courses = [course_service.present(course, True) for course in course_service.list_owned_courses(actor['user_id'])]
    return jsonify({"courses": CourseResponseSchema(many=True).dump(courses)}), 200

@courses_bp.route('/courses/<string:course_id>', methods=['GET'])
@jwt_required(optional=True)
def get_course(course_id: str):
    course_service = current_app.services['courses']
    actor = current_actor(optional=True)
    course = course_service.get_course(course_id)
    if not course:
        return jsonify({"error_code": "COURSE_NOT_FOUND", "message": "Course not found."}), 404
    owned_ids = course_service.owned_course_ids(actor['user_id'] if actor else None)
    view = course_service.present(course, _unlocked_for(actor, owned_ids, course_id))
    return jsonify(CourseResponseSchema().dump(view)), 200

@courses_bp.route('/courses', methods=['POST'])
@admin_required
def create_course():
    try:
        data = CourseCreateSchema().load(request.get_json() or {})
        course_service = current_app.services['courses']
        course = course_service.create_course(data)
        return jsonify(CourseResponseSchema().dump(course_service.present(course, True))), 201
    except ValidationError as err:
        return jsonify({"error_code": "VALIDATION_ERROR", "details": err.messages}), 400

@courses_bp.route('/courses/<string:course_id>', methods=['PATCH'])
@admin_required
def update_course(course_id: str):
    try:
        data = CourseCreateSchema(partial=True).load(request.get_json() or {})
        course_service = current_app.services['courses']
        course = course_service.update_course(course_id, data)
        return jsonify(CourseResponseSchema().dump(course_service.present(course, True))), 200
    except ValidationError as err:
        return jsonify({"error_code": "VALIDATION_ERROR", "details": err.messages}), 400
    except ValueError as e:
        return jsonify({"error_code": "COURSE_NOT_FOUND", "message": str(e)}), 404

@courses_bp.route('/courses/<string:course_id>', methods=['DELETE'])
@admin_required
def delete_course(course_id: str):
    try:
        current_app.services['courses'].delete_course(course_id)
        return Response(status=204)
    except ValueError as e:
        return jsonify({"error_code": "COURSE_NOT_FOUND", "message": str(e)}), 404

@courses_bp.route('/courses/<string:course_id>/access', methods=['POST'])
@admin_required
def grant_course_access(course_id: str):
    """Admin: unlock a course for a user. 201 when newly granted, 200 when they already had it."""
    try:
        data = AccessGrantSchema().load(request.get_json() or {})
        granted = current_app.services['courses'].grant_access(course_id, data['user_id'], current_actor()['user_id'])
        return jsonify({"course_id": course_id, "user_id": data['user_id'], "granted": granted}), 201 if granted else 200
    except ValidationError as err:
        return jsonify({"error_code": "VALIDATION_ERROR", "details": err.messages}), 400
    except ValueError as e:
        return jsonify({"error_code": "COURSE_NOT_FOUND", "message": str(e)}), 404
