# melbox/models/user.py
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from melbox.utils.datetime_utils import DateTimeUtils

@dataclass
class User:
    """
    Document structure of the Firestore 'users' collection.
    user_id is the Firebase Authentication uid.
    """
    user_id: str
    email: Optional[str] = None
    display_name: Optional[str] = None
    is_admin: bool = False
    join_date: datetime = field(default_factory=DateTimeUtils.now)
