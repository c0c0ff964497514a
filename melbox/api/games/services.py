# melbox/api/games/services.py
import logging
from dataclasses import asdict
from typing import Dict, Any
from firebase_admin import firestore

from melbox.models.progress import GameProgress
from melbox.utils.datetime_utils import DateTimeUtils

class GameProgressService:
    """
    Mini-game progress. One 'game_progress/{user_id}' document per player,
    holding a games.{game_id} map entry per game played.
    """

    def __init__(self, db=None):
        self.db = db or firestore.client()
        self.progress_ref = self.db.collection('game_progress')

    @staticmethod
    def _stored_games(doc) -> Dict[str, Any]:
        if not doc.exists:
            return {}
        return (doc.to_dict() or {}).get('games') or {}

    def _games(self, user_id: str) -> Dict[str, GameProgress]:
        doc = self.progress_ref.document(user_id).get()
        return {game_id: GameProgress.from_dict(data) for game_id, data in self._stored_games(doc).items()}

    def get_progress(self, user_id: str, game_id: str) -> GameProgress:
        """Progress in one game; an empty GameProgress when it was never played."""
        return self._games(user_id).get(game_id) or GameProgress()

    def save_level(self, user_id: str, game_id: str, level: int, points: int) -> GameProgress:
        """
        Record a finished level. The level's best score is kept and only
        an improvement on it is added to the game's total_points.
        """
        transaction = self.db.transaction()
        doc_ref = self.progress_ref.document(user_id)

        @firestore.transactional
        def _save_in_transaction(transaction):
            doc = doc_ref.get(transaction=transaction)
            stored = self._stored_games(doc).get(game_id)
            updated = GameProgress.from_dict(stored).record(level, points)
            transaction.set(doc_ref, {
                'games': {game_id: DateTimeUtils.for_firestore(asdict(updated))},
                'updated_at': updated.updated_at,
            }, merge=True)
            return updated

        updated = _save_in_transaction(transaction)
        logging.info(f"Game level saved (user_id: {user_id}, game: {game_id}, level: {level}, "
                     f"points: {points}, total: {updated.total_points})")
        return updated

    def get_total_points(self, user_id: str) -> int:
        return sum(progress.total_points for progress in self._games(user_id).values())

    def get_summary(self, user_id: str) -> Dict[str, Any]:
        games = self._games(user_id)
        return {
            'total_points': sum(p.total_points for p in games.values()),
            'total_levels_completed': sum(len(p.completed_levels) for p in games.values()),
            'total_games_played': sum(1 for p in games.values() if p.completed_levels),
            'games': {game_id: self.describe(game_id, p) for game_id, p in games.items()},
        }

    def delete_progress(self, user_id: str) -> None:
        self.progress_ref.document(user_id).delete()
        logging.info(f"Game progress deleted (user_id: {user_id})")

    @staticmethod
    def describe(game_id: str, progress: GameProgress) -> Dict[str, Any]:
        return dict(asdict(progress), game_id=game_id, next_unlocked_level=progress.next_unlocked_level)
