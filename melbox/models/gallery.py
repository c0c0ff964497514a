# melbox/models/gallery.py
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from melbox.utils.datetime_utils import DateTimeUtils

@dataclass
class GalleryPhoto:
    """Document structure of the 'gallery_photos' collection."""
    photo_id: str
    title: str
    date: str
    category: str
    category_color: str
    image_url: str
    description: Optional[str] = None
    likes: int = 0
    downloads: int = 0
    created_at: datetime = field(default_factory=DateTimeUtils.now)
