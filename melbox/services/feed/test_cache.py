# melbox/services/feed/test_cache.py
import json
import logging
import os
from datetime import datetime, timezone, timedelta

from melbox.services.feed.cache import FeedCache, FeedSnapshot, GUEST_IDENTITY

BASE_TIME = datetime(2025, 5, 1, 12, 0, 0, 250000, tzinfo=timezone.utc)

def _snapshot():
    posts = [
        {
            'post_id': 'p2', 'author_id': 'u1', 'author_email': 'mel@example.com', 'author_name': 'Mel',
            'content': 'Unicorn cake!', 'image_url': None, 'like_count': 3, 'comment_count': 1,
            'created_at': BASE_TIME, 'liked': True,
            'comments': [{
                'comment_id': 'c1', 'post_id': 'p2', 'author_id': 'u2', 'author_email': None,
                'author_name': 'Sam', 'text': 'So cute', 'created_at': BASE_TIME + timedelta(minutes=5)
            }],
        },
        {
            'post_id': 'p1', 'author_id': 'u2', 'author_email': None, 'author_name': None,
            'content': None, 'image_url': 'https://storage.googleapis.com/b/social/u2/a.jpg',
            'like_count': 0, 'comment_count': 0, 'created_at': BASE_TIME - timedelta(hours=1), 'liked': False,
        },
    ]
    return FeedSnapshot(posts=posts, next_cursor=BASE_TIME - timedelta(hours=1), liked={'p2': True, 'p1': False})

def test_write_then_read_from_disk_reproduces_snapshot(tmp_path):
    snapshot = _snapshot()
    FeedCache(str(tmp_path), 'u1').write(snapshot)

    restored = FeedCache(str(tmp_path), 'u1').read()
    assert restored == snapshot

def test_cursor_is_stored_as_iso_text(tmp_path):
    cache = FeedCache(str(tmp_path), 'u1')
    cache.write(_snapshot())
    with open(cache.path, encoding='utf-8') as f:
        raw = json.load(f)
    assert raw['next_cursor'].startswith('2025-05-01T11:00:00.250000')
    assert os.path.basename(cache.path) == 'social-cache-u1.json'

def test_identities_do_not_share_a_file(tmp_path):
    FeedCache(str(tmp_path), 'u1').write(_snapshot())
    assert FeedCache(str(tmp_path), 'u2').read() is None
    assert FeedCache(str(tmp_path)).identity == GUEST_IDENTITY

def test_identity_is_sanitized_into_the_cache_dir(tmp_path):
    cache = FeedCache(str(tmp_path), '../../etc/passwd')
    assert os.path.dirname(cache.path) == str(tmp_path)

def test_corrupt_file_is_a_cache_miss(tmp_path, caplog):
    cache = FeedCache(str(tmp_path), 'u1')
    with open(cache.path, 'w', encoding='utf-8') as f:
        f.write('{not json')

    with caplog.at_level(logging.WARNING):
        assert cache.read() is None
    assert 'unreadable feed cache' in caplog.text

def test_clear_drops_memory_but_purge_removes_file(tmp_path):
    cache = FeedCache(str(tmp_path), 'u1')
    cache.write(_snapshot())

    cache.clear()
    assert cache.read() == _snapshot()

    cache.purge()
    assert not os.path.exists(cache.path)
    assert cache.read() is None

def test_empty_snapshot_round_trip(tmp_path):
    cache = FeedCache(str(tmp_path), GUEST_IDENTITY)
    cache.write(FeedSnapshot())
    restored = FeedCache(str(tmp_path), GUEST_IDENTITY).read()
    assert restored == FeedSnapshot()
    assert restored.is_empty
