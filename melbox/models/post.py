# melbox/models/post.py
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional, Dict, Any

from melbox.utils.datetime_utils import DateTimeUtils

@dataclass
class SocialPost:
    """
    Document structure of the Firestore 'social_posts' collection.
    Likes and comments live in the 'likes' / 'comments' sub-collections of each post.
    """
    post_id: str
    author_id: str
    author_email: Optional[str] = None
    author_name: Optional[str] = None
    content: Optional[str] = None
    image_url: Optional[str] = None
    like_count: int = 0
    comment_count: int = 0
    created_at: datetime = field(default_factory=DateTimeUtils.now)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SocialPost":
        """Build a post from a Firestore document, ignoring unknown fields."""
        known = {k: v for k, v in DateTimeUtils.from_firestore(data).items() if k in cls.__dataclass_fields__}
        # counters can be missing on documents written before they existed
        known['like_count'] = max(int(known.get('like_count') or 0), 0)
        known['comment_count'] = max(int(known.get('comment_count') or 0), 0)
        return cls(**known)

@dataclass
class SocialLike:
    """
    A 'social_posts/{post_id}/likes/{user_id}' document.
    Its existence means the user liked the post.
    """
    user_id: str
    created_at: datetime = field(default_factory=DateTimeUtils.now)
