# melbox/api/social/routes.py
import logging
from flask import Blueprint, request, jsonify, Response, current_app
from flask_jwt_extended import jwt_required
from marshmallow import ValidationError

from melbox.api.social.schemas import (
    PostCreateSchema, CommentCreateSchema, FeedQuerySchema,
    PostResponseSchema, CommentResponseSchema, LikeResponseSchema
)
from melbox.core.security import current_actor
from melbox.utils.datetime_utils import DateTimeUtils

social_bp = Blueprint('social_bp', __name__)

# --- posts ---

@social_bp.route('/posts', methods=['GET'])
@jwt_required(optional=True)
def get_feed():
    """
    One page of the feed, newest first.
    - ?cursor= is the next_cursor of the previous page; next_cursor is null on the last page.
    - is_liked is filled in when the caller is signed in.
    """
    social_service = current_app.services['social']
    actor = current_actor(optional=True)
    try:
        query = FeedQuerySchema().load(request.args)
        limit = query.get('limit') or current_app.config['FEED_PAGE_SIZE']
        posts, next_cursor = social_service.get_posts(
            limit, query.get('cursor'), current_user_id=actor['user_id'] if actor else None
        )
        return jsonify({
            "posts": PostResponseSchema(many=True).dump(posts),
            "next_cursor": DateTimeUtils.to_iso_string(next_cursor) if next_cursor else None
        }), 200
    except ValidationError as err:
        return jsonify({"error_code": "VALIDATION_ERROR", "details": err.messages}), 400
    except Exception as e:
        logging.error(f"Failed to load the feed: {e}", exc_info=True)
        return jsonify({"error_code": "INTERNAL_SERVER_ERROR", "message": "Could not load the feed."}), 500

@social_bp.route('/posts', methods=['POST'])
@jwt_required()
def create_post():
    social_service = current_app.services['social']
    try:
        data = PostCreateSchema().load(request.get_json() or {})
        new_post = social_service.create_post(current_actor(), data.get('content'), data.get('image_url'))
        return jsonify(PostResponseSchema().dump(new_post)), 201
    except ValidationError as err:
        return jsonify({"error_code": "VALIDATION_ERROR", "details": err.messages}), 400
    except ValueError as e:
        return jsonify({"error_code": "VALIDATION_ERROR", "message": str(e)}), 400
    except Exception as e:
        logging.error(f"Failed to create post: {e}", exc_info=True)
        return jsonify({"error_code": "POST_CREATION_FAILED", "message": "Could not create the post."}), 500

@social_bp.route('/posts/<string:post_id>', methods=['GET'])
@jwt_required(optional=True)
def get_post(post_id: str):
    social_service = current_app.services['social']
    actor = current_actor(optional=True)
    post = social_service.get_post(post_id, current_user_id=actor['user_id'] if actor else None)
    if not post:
        return jsonify({"error_code": "POST_NOT_FOUND", "message": "Post not found."}), 404
    return jsonify(PostResponseSchema().dump(post)), 200

@social_bp.route('/posts/<string:post_id>', methods=['DELETE'])
@jwt_required()
def delete_post(post_id: str):
    """Delete a post with its likes and comments. Author or admin only."""
    social_service = current_app.services['social']
    try:
        social_service.delete_post(post_id, current_actor())
        return Response(status=204)
    except PermissionError as e:
        return jsonify({"error_code": "FORBIDDEN", "message": str(e)}), 403
    except ValueError as e:
        return jsonify({"error_code": "POST_NOT_FOUND", "message": str(e)}), 404
    except Exception as e:
        logging.error(f"Failed to delete post (post_id: {post_id}): {e}", exc_info=True)
        return jsonify({"error_code": "INTERNAL_SERVER_ERROR", "message": "Could not delete the post."}), 500

# --- likes ---

@social_bp.route('/posts/<string:post_id>/like', methods=['POST'])
@jwt_required()
def toggle_like(post_id: str):
    social_service = current_app.services['social']
    try:
        result = social_service.toggle_like(post_id, current_actor()['user_id'])
        return jsonify(LikeResponseSchema().dump(result)), 200
    except ValueError as e:
        return jsonify({"error_code": "POST_NOT_FOUND", "message": str(e)}), 404
    except Exception as e:
        logging.error(f"Failed to toggle like (post_id: {post_id}): {e}", exc_info=True)
        return jsonify({"error_code": "LIKE_TOGGLE_FAILED", "message": "Could not update the like."}), 500

# --- comments ---

@social_bp.route('/posts/<string:post_id>/comments', methods=['GET'])
def get_comments(post_id: str):
    social_service = current_app.services['social']
    limit = request.args.get('limit', current_app.config['COMMENT_FETCH_SIZE'], type=int)
    limit = max(1, min(limit, 100))
    try:
        comments = social_service.get_comments(post_id, limit)
        return jsonify({"comments": CommentResponseSchema(many=True).dump(comments)}), 200
    except Exception as e:
        logging.error(f"Failed to load comments (post_id: {post_id}): {e}", exc_info=True)
        return jsonify({"error_code": "INTERNAL_SERVER_ERROR", "message": "Could not load comments."}), 500

@social_bp.route('/posts/<string:post_id>/comments', methods=['POST'])
@jwt_required()
def create_comment(post_id: str):
    social_service = current_app.services['social']
    try:
        data = CommentCreateSchema().load(request.get_json() or {})
        new_comment = social_service.add_comment(post_id, current_actor(), data['text'])
        return jsonify(CommentResponseSchema().dump(new_comment)), 201
    except ValidationError as err:
        return jsonify({"error_code": "VALIDATION_ERROR", "details": err.messages}), 400
    except ValueError as e:
        return jsonify({"error_code": "RESOURCE_NOT_FOUND", "message": str(e)}), 404
    except Exception as e:
        logging.error(f"Failed to add comment (post_id: {post_id}): {e}", exc_info=True)
        return jsonify({"error_code": "COMMENT_CREATION_FAILED", "message": "Could not add the comment."}), 500

@social_bp.route('/posts/<string:post_id>/comments/<string:comment_id>', methods=['DELETE'])
@jwt_required()
def delete_comment(post_id: str, comment_id: str):
    """Delete a comment. Its author or an admin only."""
    social_service = current_app.services['social']
    try:
        social_service.delete_comment(post_id, comment_id, current_actor())
        return Response(status=204)
    except PermissionError as e:
        return jsonify({"error_code": "FORBIDDEN", "message": str(e)}), 403
    except ValueError as e:
        return jsonify({"error_code": "NOT_FOUND", "message": str(e)}), 404
