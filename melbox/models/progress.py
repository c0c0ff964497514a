# melbox/models/progress.py
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional, List, Dict, Any

from melbox.utils.datetime_utils import DateTimeUtils

@dataclass
class GameProgress:
    """
    One game's entry in the 'game_progress/{user_id}' document, stored under games.{game_id}.
    level_scores maps the level number (as a string, Firestore map keys are strings)
    to the best score reached on it.
    """
    total_points: int = 0
    completed_levels: List[int] = field(default_factory=list)
    level_scores: Dict[str, int] = field(default_factory=dict)
    updated_at: Optional[datetime] = None

    @property
    def next_unlocked_level(self) -> int:
        """Highest level the player may start: one past the best completed level."""
        return max(self.completed_levels, default=0) + 1

    def record(self, level: int, points: int) -> "GameProgress":
        """
        Progress after finishing `level` with `points`.
        Only the best score per level counts, so a worse replay adds nothing.
        """
        previous = self.level_scores.get(str(level), 0)
        best = max(previous, points)
        completed = self.completed_levels if level in self.completed_levels else sorted(self.completed_levels + [level])
        return GameProgress(
            total_points=self.total_points + max(best - previous, 0),
            completed_levels=completed,
            level_scores=dict(self.level_scores, **{str(level): best}),
            updated_at=DateTimeUtils.now(),
        )

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "GameProgress":
        data = DateTimeUtils.from_firestore(data or {})
        return cls(
            total_points=int(data.get('total_points') or 0),
            completed_levels=[int(level) for level in data.get('completed_levels') or []],
            level_scores={str(k): int(v) for k, v in (data.get('level_scores') or {}).items()},
            updated_at=data.get('updated_at'),
        )

@dataclass
class UserStats:
    """Document structure of the 'user_stats' collection, keyed by user id."""
    stories_watched: int = 0
    updated_at: Optional[datetime] = None
