# melbox/models/comment.py
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from melbox.utils.datetime_utils import DateTimeUtils

@dataclass
class SocialComment:
    """
    Document structure of 'social_posts/{post_id}/comments/{comment_id}'.
    """
    comment_id: str
    post_id: str
    author_id: str
    text: str
    author_email: Optional[str] = None
    author_name: Optional[str] = None
    created_at: datetime = field(default_factory=DateTimeUtils.now)
