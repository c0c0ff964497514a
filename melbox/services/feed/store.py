# melbox/services/feed/store.py
from datetime import datetime
from typing import Optional, Dict, Any, List, Tuple


class SocialFeedStore:
    """
    Binds a SocialService to one viewer so the feed controller only needs post ids.
    viewer is the dict returned by melbox.core.security.current_actor, or None for guests.
    """

    def __init__(self, social_service, viewer: Optional[Dict[str, Any]] = None):
        self.social_service = social_service
        self.viewer = viewer

    @property
    def user_id(self) -> Optional[str]:
        return self.viewer['user_id'] if self.viewer else None

    def _require_viewer(self) -> Dict[str, Any]:
        if not self.viewer:
            raise PermissionError("Sign in to do that.")
        return self.viewer

    def load_page(self, page_size: int, cursor: Optional[datetime] = None) -> Tuple[List[Dict[str, Any]], Optional[datetime]]:
        return self.social_service.get_posts(page_size, cursor, current_user_id=self.user_id)

    def create_post(self, content: Optional[str], image_url: Optional[str] = None) -> Dict[str, Any]:
        return self.social_service.create_post(self._require_viewer(), content, image_url)

    def toggle_like(self, post_id: str) -> Dict[str, Any]:
        return self.social_service.toggle_like(post_id, self._require_viewer()['user_id'])

    def add_comment(self, post_id: str, text: str) -> Dict[str, Any]:
        return self.social_service.add_comment(post_id, self._require_viewer(), text)

    def get_comments(self, post_id: str, limit: int) -> List[Dict[str, Any]]:
        return self.social_service.get_comments(post_id, limit)

    def delete_comment(self, post_id: str, comment_id: str) -> None:
        self.social_service.delete_comment(post_id, comment_id, self._require_viewer())

    def delete_post(self, post_id: str) -> None:
        self.social_service.delete_post(post_id, self._require_viewer())
