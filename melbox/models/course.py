# melbox/models/course.py
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional, List, Dict, Any

from melbox.utils.datetime_utils import DateTimeUtils

@dataclass
class Course:
    """
    Document structure of the 'courses' collection (the paid dress-up video courses).

    sections is a list of {"title", "lessons": [{"title", "duration", "video_url",
    "preview", "download_url"}]}. Lessons with preview=True are free to watch,
    the rest need the course to be owned.
    """
    course_id: str
    title: str
    description: str
    price: float
    duration: str
    level: str
    thumbnail_url: str
    preview_url: str
    lessons: int = 0
    students: int = 0
    rating: float = 5.0
    tags: List[str] = field(default_factory=list)
    highlights: List[str] = field(default_factory=list)
    preview_headline: Optional[str] = None
    sections: List[Dict[str, Any]] = field(default_factory=list)
    created_at: datetime = field(default_factory=DateTimeUtils.now)

@dataclass
class CourseAccess:
    """
    A 'users/{user_id}/owned_courses/{course_id}' document.
    Its existence means every lesson of the course is unlocked for the user.
    """
    course_id: str
    granted_by: Optional[str] = None
    purchased_at: datetime = field(default_factory=DateTimeUtils.now)
