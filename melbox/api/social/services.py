# melbox/api/social/services.py
import logging
from dataclasses import asdict
from datetime import datetime
from typing import Optional, Dict, Any, List, Tuple
from firebase_admin import firestore

from melbox.models.post import SocialPost, SocialLike
from melbox.models.comment import SocialComment
from melbox.services.storage_service import StorageService
from melbox.utils.datetime_utils import DateTimeUtils

class SocialService:
    """
    Business logic for the social feed: posts, likes and comments.
    - posts:    'social_posts/{post_id}'
    - likes:    'social_posts/{post_id}/likes/{user_id}'  (existence == liked)
    - comments: 'social_posts/{post_id}/comments/{comment_id}'
    Ownership checks (author or admin) are enforced here, not in the routes.
    """
    def __init__(self, db=None, storage_service: Optional[StorageService] = None):
        self.db = db or firestore.client()
        self.posts_ref = self.db.collection('social_posts')
        self.storage_service = storage_service

    def _likes_ref(self, post_id: str):
        return self.posts_ref.document(post_id).collection('likes')

    def _comments_ref(self, post_id: str):
        return self.posts_ref.document(post_id).collection('comments')

    @staticmethod
    def _can_modify(owner_id: Optional[str], actor: Dict[str, Any]) -> bool:
        return actor.get('is_admin', False) or owner_id == actor.get('user_id')

    # --- posts ---

    def create_post(self, author: Dict[str, Any], content: Optional[str], image_url: Optional[str] = None) -> Dict[str, Any]:
        """Create a post. author is {'user_id', 'email', 'name'}."""
        content = content.strip() if content else None
        if not content and not image_url:
            raise ValueError("A post needs text or an image.")

        doc_ref = self.posts_ref.document()
        new_post = SocialPost(
            post_id=doc_ref.id,
            author_id=author['user_id'],
            author_email=author.get('email'),
            author_name=author.get('name'),
            content=content,
            image_url=image_url
        )
        try:
            doc_ref.set(DateTimeUtils.for_firestore(asdict(new_post)))
        except Exception as e:
            logging.error(f"Failed to create post (user_id: {author['user_id']}): {e}", exc_info=True)
            raise
        logging.info(f"Post created: {new_post.post_id} by {new_post.author_id}")
        return asdict(new_post)

    def get_posts(self, page_size: int, cursor: Optional[datetime] = None,
                  current_user_id: Optional[str] = None) -> Tuple[List[Dict[str, Any]], Optional[datetime]]:
        """
        One page of the feed, newest first.
        cursor is the created_at of the last post of the previous page.
        next_cursor is None when there is nothing after this page.
        """
        query = self.posts_ref.order_by('created_at', direction=firestore.Query.DESCENDING)
        if cursor:
            query = query.start_after({'created_at': cursor})

        # one extra row tells us whether another page exists
        docs = list(query.limit(page_size + 1).stream())
        has_more = len(docs) > page_size
        posts = [asdict(SocialPost.from_dict(doc.to_dict())) for doc in docs[:page_size]]

        liked_post_ids = self._check_likes_for_posts(current_user_id, [p['post_id'] for p in posts]) if current_user_id else set()
        for post in posts:
            post['is_liked'] = post['post_id'] in liked_post_ids

        next_cursor = posts[-1]['created_at'] if has_more and posts else None
        return posts, next_cursor

    def get_post(self, post_id: str, current_user_id: Optional[str] = None) -> Optional[Dict[str, Any]]:
        doc = self.posts_ref.document(post_id).get()
        if not doc.exists:
            return None
        post = asdict(SocialPost.from_dict(doc.to_dict()))
        post['is_liked'] = self.has_user_liked(post_id, current_user_id) if current_user_id else False
        return post

    def delete_post(self, post_id: str, actor: Dict[str, Any]) -> None:
        """Delete a post with its likes, comments and stored image. Author or admin only."""
        post_ref = self.posts_ref.document(post_id)
        doc = post_ref.get()
        if not doc.exists:
            raise ValueError("Post not found.")
        post_data = doc.to_dict()
        if not self._can_modify(post_data.get('author_id'), actor):
            raise PermissionError("You can only delete your own posts.")

        # Firestore does not cascade deletes to sub-collections
        self._delete_collection(self._likes_ref(post_id))
        self._delete_collection(self._comments_ref(post_id))
        post_ref.delete()

        image_url = post_data.get('image_url')
        if image_url and self.storage_service:
            try:
                self.storage_service.delete_by_url(image_url)
            except Exception as e:
                logging.error(f"Failed to delete post image (url: {image_url}): {e}")

        logging.info(f"Post deleted: {post_id} by {actor.get('user_id')} (admin={actor.get('is_admin', False)})")

    def _delete_collection(self, collection_ref, batch_size: int = 200) -> int:
        deleted = 0
        while True:
            docs = list(collection_ref.limit(batch_size).stream())
            if not docs:
                return deleted
            batch = self.db.batch()
            for doc in docs:
                batch.delete(doc.reference)
            batch.commit()
            deleted += len(docs)

    # --- likes ---

    def has_user_liked(self, post_id: str, user_id: str) -> bool:
        return self._likes_ref(post_id).document(user_id).get().exists

    def _check_likes_for_posts(self, user_id: str, post_ids: List[str]) -> set:
        """Batch-check which of the given posts the user has liked."""
        if not post_ids:
            return set()
        like_refs = [self._likes_ref(post_id).document(user_id) for post_id in post_ids]
        liked = set()
        for post_id, snapshot in zip(post_ids, self.db.get_all(like_refs)):
            if snapshot.exists:
                liked.add(post_id)
        return liked

    def toggle_like(self, post_id: str, user_id: str) -> Dict[str, Any]:
        """
        Like or unlike a post in one transaction.
        Creates/deletes the user's like document and moves like_count by +-1,
        so calling it twice always restores the original state.
        """
        transaction = self.db.transaction()
        post_ref = self.posts_ref.document(post_id)
        like_ref = self._likes_ref(post_id).document(user_id)

        @firestore.transactional
        def _toggle_in_transaction(transaction):
            post_doc = post_ref.get(transaction=transaction)
            like_doc = like_ref.get(transaction=transaction)
            if not post_doc.exists:
                raise ValueError("Post not found.")

            like_count = int(post_doc.to_dict().get('like_count') or 0)
            if like_doc.exists:
                transaction.delete(like_ref)
                if like_count > 0:
                    transaction.update(post_ref, {'like_count': firestore.Increment(-1)})
                else:
                    transaction.update(post_ref, {'like_count': 0})
                return False, max(like_count - 1, 0)

            transaction.set(like_ref, DateTimeUtils.for_firestore(asdict(SocialLike(user_id=user_id))))
            transaction.update(post_ref, {'like_count': firestore.Increment(1)})
            return True, like_count + 1

        try:
            liked, like_count = _toggle_in_transaction(transaction)
        except ValueError:
            raise
        except Exception as e:
            logging.error(f"Failed to toggle like (user_id: {user_id}, post_id: {post_id}): {e}", exc_info=True)
            raise
        return {"post_id": post_id, "liked": liked, "like_count": like_count}

    # --- comments ---

    def add_comment(self, post_id: str, author: Dict[str, Any], text: str) -> Dict[str, Any]:
        """Add a comment and bump the post's comment_count atomically."""
        text = (text or '').strip()
        if not text:
            raise ValueError("Comment text is required.")

        transaction = self.db.transaction()
        post_ref = self.posts_ref.document(post_id)
        comment_ref = self._comments_ref(post_id).document()

        @firestore.transactional
        def _add_in_transaction(transaction):
            post_snapshot = post_ref.get(transaction=transaction)
            if not post_snapshot.exists:
                raise ValueError("The post you are commenting on does not exist.")

            new_comment = SocialComment(
                comment_id=comment_ref.id,
                post_id=post_id,
                author_id=author['user_id'],
                author_email=author.get('email'),
                author_name=author.get('name'),
                text=text
            )
            transaction.set(comment_ref, DateTimeUtils.for_firestore(asdict(new_comment)))
            transaction.update(post_ref, {'comment_count': firestore.Increment(1)})
            return new_comment

        new_comment = _add_in_transaction(transaction)
        return asdict(new_comment)

    def get_comments(self, post_id: str, limit: int = 50) -> List[Dict[str, Any]]:
        """Most recent comments of a post, newest first."""
        query = self._comments_ref(post_id).order_by('created_at', direction=firestore.Query.DESCENDING).limit(limit)
        return [DateTimeUtils.from_firestore(doc.to_dict()) for doc in query.stream()]

    def delete_comment(self, post_id: str, comment_id: str, actor: Dict[str, Any]) -> None:
        """
        Delete a comment (its author or an admin).
        Deleting a comment that is already gone raises ValueError and leaves comment_count alone.
        """
        transaction = self.db.transaction()
        post_ref = self.posts_ref.document(post_id)
        comment_ref = self._comments_ref(post_id).document(comment_id)

        @firestore.transactional
        def _delete_in_transaction(transaction):
            comment_doc = comment_ref.get(transaction=transaction)
            post_doc = post_ref.get(transaction=transaction)
            if not comment_doc.exists:
                raise ValueError("Comment not found.")
            if not self._can_modify(comment_doc.to_dict().get('author_id'), actor):
                raise PermissionError("You can only delete your own comments.")

            transaction.delete(comment_ref)
            if post_doc.exists and int(post_doc.to_dict().get('comment_count') or 0) > 0:
                transaction.update(post_ref, {'comment_count': firestore.Increment(-1)})

        try:
            _delete_in_transaction(transaction)
        except (ValueError, PermissionError):
            raise
        except Exception as e:
            logging.error(f"Failed to delete comment (comment_id: {comment_id}): {e}", exc_info=True)
            raise
