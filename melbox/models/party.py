# melbox/models/party.py
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional, List

from melbox.utils.datetime_utils import DateTimeUtils

@dataclass
class PartyPackage:
    """
    Document structure of the 'party_packages' collection.
    price is in dollars; Stripe amounts are derived from it at checkout time.
    """
    package_id: str
    name: str
    price: float
    duration: str
    kids_count: int
    includes: List[str] = field(default_factory=list)
    icon: Optional[str] = None
    badge: Optional[str] = None
    description: Optional[str] = None
    created_at: datetime = field(default_factory=DateTimeUtils.now)
