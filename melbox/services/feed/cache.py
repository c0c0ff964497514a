# melbox/services/feed/cache.py
import json
import logging
import os
import re
import tempfile
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional, List, Dict, Any

from marshmallow import Schema, fields, post_load, ValidationError, EXCLUDE

logger = logging.getLogger(__name__)

GUEST_IDENTITY = 'guest'
CACHE_FILE_TEMPLATE = 'social-cache-{identity}.json'


@dataclass
class FeedSnapshot:
    """What the feed looked like the last time it was saved."""
    posts: List[Dict[str, Any]] = field(default_factory=list)
    next_cursor: Optional[datetime] = None
    liked: Dict[str, bool] = field(default_factory=dict)

    @property
    def is_empty(self) -> bool:
        return not self.posts


class CachedCommentSchema(Schema):
    class Meta:
        unknown = EXCLUDE

    comment_id = fields.Str(required=True)
    post_id = fields.Str(required=True)
    author_id = fields.Str(allow_none=True)
    author_email = fields.Str(allow_none=True)
    author_name = fields.Str(allow_none=True)
    text = fields.Str(required=True)
    created_at = fields.DateTime(allow_none=True)
    pending = fields.Bool()


class CachedPostSchema(Schema):
    """A feed post as the controller holds it: the stored post plus local view state."""
    class Meta:
        unknown = EXCLUDE

    post_id = fields.Str(required=True)
    author_id = fields.Str(allow_none=True)
    author_email = fields.Str(allow_none=True)
    author_name = fields.Str(allow_none=True)
    content = fields.Str(allow_none=True)
    image_url = fields.Str(allow_none=True)
    like_count = fields.Int()
    comment_count = fields.Int()
    created_at = fields.DateTime(allow_none=True)
    liked = fields.Bool()
    pending = fields.Bool()
    comments = fields.List(fields.Nested(CachedCommentSchema))


class FeedSnapshotSchema(Schema):
    posts = fields.List(fields.Nested(CachedPostSchema), required=True)
    next_cursor = fields.DateTime(allow_none=True, load_default=None)
    liked = fields.Dict(keys=fields.Str(), values=fields.Bool(), load_default=dict)

    @post_load
    def make_snapshot(self, data, **kwargs):
        return FeedSnapshot(**data)


class FeedCache:
    """
    Persisted copy of the feed for one identity (a user id, or the shared 'guest' slot).

    The file is read once, then served from memory. Every write replaces the
    file atomically. The cache is advisory: unreadable or corrupt files are
    logged and treated as a miss, and failed writes never reach the caller.
    """

    def __init__(self, cache_dir: str, identity: Optional[str] = None):
        self.cache_dir = cache_dir
        self.identity = identity or GUEST_IDENTITY
        self._snapshot: Optional[FeedSnapshot] = None
        self._loaded = False

    @property
    def path(self) -> str:
        safe_identity = re.sub(r'[^A-Za-z0-9_.-]', '_', self.identity)
        return os.path.join(self.cache_dir, CACHE_FILE_TEMPLATE.format(identity=safe_identity))

    def read(self) -> Optional[FeedSnapshot]:
        if self._loaded:
            return self._snapshot

        self._loaded = True
        try:
            with open(self.path, 'r', encoding='utf-8') as f:
                raw = json.load(f)
            self._snapshot = FeedSnapshotSchema().load(raw)
        except FileNotFoundError:
            self._snapshot = None
        except (OSError, ValueError, ValidationError) as e:
            logger.warning(f"Ignoring unreadable feed cache {self.path}: {e}")
            self._snapshot = None
        return self._snapshot

    def write(self, snapshot: FeedSnapshot) -> None:
        self._snapshot = snapshot
        self._loaded = True

        payload = FeedSnapshotSchema().dump(snapshot)
        tmp_path = None
        try:
            os.makedirs(self.cache_dir, exist_ok=True)
            with tempfile.NamedTemporaryFile('w', encoding='utf-8', dir=self.cache_dir,
                                             prefix='.social-cache-', suffix='.tmp', delete=False) as tmp:
                tmp_path = tmp.name
                json.dump(payload, tmp, ensure_ascii=False)
            os.replace(tmp_path, self.path)
        except OSError as e:
            logger.warning(f"Failed to write feed cache {self.path}: {e}")
            if tmp_path and os.path.exists(tmp_path):
                os.remove(tmp_path)

    def clear(self) -> None:
        """Forget the in-memory copy; the next read goes back to disk."""
        self._snapshot = None
        self._loaded = False

    def purge(self) -> None:
        """Forget the in-memory copy and delete the file."""
        self.clear()
        try:
            os.remove(self.path)
        except FileNotFoundError:
            pass
