# melbox/api/profile/services.py
import logging
from dataclasses import asdict
from typing import Dict, Any
from firebase_admin import firestore

from melbox.models.progress import UserStats
from melbox.utils.datetime_utils import DateTimeUtils

class UserStatsService:
    """Per-user activity counters ('user_stats/{user_id}')."""

    def __init__(self, db=None):
        self.db = db or firestore.client()
        self.stats_ref = self.db.collection('user_stats')

    def get_stats(self, user_id: str) -> Dict[str, Any]:
        doc = self.stats_ref.document(user_id).get()
        if not doc.exists:
            return asdict(UserStats())
        data = DateTimeUtils.from_firestore(doc.to_dict())
        return asdict(UserStats(stories_watched=int(data.get('stories_watched') or 0),
                              updated_at=data.get('updated_at')))

    def increment_story_watched(self, user_id: str) -> None:
        """+1 stories watched; creates the document on the first story."""
        self.stats_ref.document(user_id).set({
            'stories_watched': firestore.Increment(1),
            'updated_at': DateTimeUtils.now(),
        }, merge=True)

    def delete_stats(self, user_id: str) -> None:
        self.stats_ref.document(user_id).delete()
        logging.info(f"User stats deleted (user_id: {user_id})")
