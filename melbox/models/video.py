# melbox/models/video.py
from dataclasses import dataclass, field
from datetime import datetime
from typing import List

from melbox.utils.datetime_utils import DateTimeUtils

@dataclass
class StoryVideo:
    """Document structure of the 'videos' collection (Story Time)."""
    video_id: str
    title: str
    description: str
    duration: str
    thumbnail_url: str
    video_url: str
    tags: List[str] = field(default_factory=list)
    views: int = 0
    created_at: datetime = field(default_factory=DateTimeUtils.now)
