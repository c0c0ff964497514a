# melbox/models/report.py
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional

from melbox.utils.datetime_utils import DateTimeUtils

class ReportStatus(Enum):
    OPEN = "open"
    RESOLVED = "resolved"

@dataclass
class SocialReport:
    """
    Document structure of the 'social_reports' collection.
    A report points at a post and, optionally, one of its comments.
    """
    report_id: str
    post_id: str
    reason: str
    reporter_id: str
    reporter_email: Optional[str] = None
    comment_id: Optional[str] = None
    status: ReportStatus = ReportStatus.OPEN
    created_at: datetime = field(default_factory=DateTimeUtils.now)
    resolved_at: Optional[datetime] = None
