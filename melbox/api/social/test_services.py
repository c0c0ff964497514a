# melbox/api/social/test_services.py
"""
SocialService against the in-memory Firestore from conftest.py.

Usage: python -m pytest melbox/api/social/test_services.py -v
"""
from datetime import datetime, timezone, timedelta

import pytest

from melbox.api.social.services import SocialService
from melbox.services.feed import FeedController, HydrationState

NEWEST = datetime(2025, 5, 1, 12, 0, tzinfo=timezone.utc)
MEL = {'user_id': 'u1', 'email': 'mel@example.com', 'name': 'Mel', 'is_admin': False}
SAM = {'user_id': 'u2', 'email': 'sam@example.com', 'name': 'Sam', 'is_admin': False}
ADMIN = {'user_id': 'admin', 'email': 'admin@example.com', 'name': 'Admin', 'is_admin': True}


@pytest.fixture
def social(fake_db, storage_service):
    return SocialService(db=fake_db, storage_service=storage_service)


def _seed_posts(social, count, author_id='u1'):
    for i in range(count):
        social.posts_ref.document(f'p{i}').set({
            'post_id': f'p{i}', 'author_id': author_id, 'author_email': None, 'author_name': None,
            'content': f'post {i}', 'image_url': None, 'like_count': 0, 'comment_count': 0,
            'created_at': NEWEST - timedelta(minutes=i),
        })


def _seed_comment(social, post_id, comment_id, author_id, minutes_ago=0):
    social._comments_ref(post_id).document(comment_id).set({
        'comment_id': comment_id, 'post_id': post_id, 'author_id': author_id, 'text': 'hi',
        'author_email': None, 'author_name': None, 'created_at': NEWEST - timedelta(minutes=minutes_ago),
    })
    social.posts_ref.document(post_id).update({'comment_count': social.posts_ref.document(post_id).get().to_dict()['comment_count'] + 1})

# --- posts ---

def test_create_post_stores_author_and_zero_counters(social):
    post = social.create_post(MEL, '  Fairy party!  ')

    stored = social.posts_ref.document(post['post_id']).get().to_dict()
    assert stored['content'] == 'Fairy party!'
    assert stored['author_id'] == 'u1'
    assert stored['author_name'] == 'Mel'
    assert stored['like_count'] == 0 and stored['comment_count'] == 0
    assert stored['created_at'].tzinfo is not None

def test_create_post_needs_text_or_image(social):
    with pytest.raises(ValueError):
        social.create_post(MEL, '   ', None)
    assert social.create_post(MEL, None, 'https://example.com/a.jpg')['image_url'] == 'https://example.com/a.jpg'

def test_pages_cover_every_post_once_newest_first(social):
    _seed_posts(social, 23)

    seen, cursor, pages = [], None, 0
    while True:
        posts, cursor = social.get_posts(10, cursor)
        seen.extend(p['post_id'] for p in posts)
        pages += 1
        if cursor is None:
            break

    assert pages == 3
    assert seen == [f'p{i}' for i in range(23)]

def test_exactly_full_last_page_has_no_next_cursor(social):
    _seed_posts(social, 20)

    first, cursor = social.get_posts(10)
    second, cursor = social.get_posts(10, cursor)
    assert len(first) == len(second) == 10
    assert cursor is None

def test_posts_are_annotated_with_the_viewers_likes(social):
    _seed_posts(social, 3)
    social.toggle_like('p1', 'u2')

    posts, _ = social.get_posts(10, current_user_id='u2')
    assert {p['post_id']: p['is_liked'] for p in posts} == {'p0': False, 'p1': True, 'p2': False}
    anonymous, _ = social.get_posts(10)
    assert not any(p['is_liked'] for p in anonymous)

def test_get_post_missing_returns_none(social):
    assert social.get_post('nope') is None

# --- likes ---

def test_toggle_like_twice_restores_count_and_like_doc(social):
    _seed_posts(social, 1)

    first = social.toggle_like('p0', 'u2')
    assert first == {'post_id': 'p0', 'liked': True, 'like_count': 1}
    assert social.has_user_liked('p0', 'u2')

    second = social.toggle_like('p0', 'u2')
    assert second == {'post_id': 'p0', 'liked': False, 'like_count': 0}
    assert not social.has_user_liked('p0', 'u2')
    assert social.posts_ref.document('p0').get().to_dict()['like_count'] == 0

def test_unlike_never_drives_the_counter_negative(social):
    _seed_posts(social, 1)
    social._likes_ref('p0').document('u2').set({'user_id': 'u2', 'created_at': NEWEST})

    result = social.toggle_like('p0', 'u2')
    assert result['like_count'] == 0
    assert social.posts_ref.document('p0').get().to_dict()['like_count'] == 0

def test_like_missing_post(social):
    with pytest.raises(ValueError):
        social.toggle_like('nope', 'u1')

# --- comments ---

def test_add_comment_bumps_count(social):
    _seed_posts(social, 1)

    comment = social.add_comment('p0', SAM, ' so cute ')
    assert comment['text'] == 'so cute'
    assert comment['author_id'] == 'u2'
    assert social.posts_ref.document('p0').get().to_dict()['comment_count'] == 1
    assert [c['comment_id'] for c in social.get_comments('p0')] == [comment['comment_id']]

def test_comment_on_missing_post(social):
    with pytest.raises(ValueError):
        social.add_comment('nope', SAM, 'hello')

def test_get_comments_newest_first_with_limit(social):
    _seed_posts(social, 1)
    for i in range(5):
        _seed_comment(social, 'p0', f'c{i}', 'u2', minutes_ago=i)

    comments = social.get_comments('p0', limit=3)
    assert [c['comment_id'] for c in comments] == ['c0', 'c1', 'c2']

def test_only_author_or_admin_can_delete_comment(social):
    _seed_posts(social, 1)
    _seed_comment(social, 'p0', 'c1', 'u2')
    _seed_comment(social, 'p0', 'c2', 'u2', minutes_ago=1)

    with pytest.raises(PermissionError):
        social.delete_comment('p0', 'c1', MEL)

    social.delete_comment('p0', 'c1', SAM)
    social.delete_comment('p0', 'c2', ADMIN)
    assert social.get_comments('p0') == []
    assert social.posts_ref.document('p0').get().to_dict()['comment_count'] == 0

def test_deleting_a_gone_comment_does_not_decrement(social):
    _seed_posts(social, 1)
    _seed_comment(social, 'p0', 'c1', 'u2')
    _seed_comment(social, 'p0', 'c2', 'u2', minutes_ago=1)
    social.delete_comment('p0', 'c1', SAM)

    with pytest.raises(ValueError):
        social.delete_comment('p0', 'c1', SAM)
    assert social.posts_ref.document('p0').get().to_dict()['comment_count'] == 1

# --- post deletion ---

def test_delete_post_cascades_and_removes_image(social, fake_db, storage_service):
    _seed_posts(social, 1, author_id='u2')
    social.posts_ref.document('p0').update({'image_url': 'https://storage.googleapis.com/bucket/social/u2/a.jpg'})
    social.toggle_like('p0', 'u1')
    social.add_comment('p0', MEL, 'hello')

    social.delete_post('p0', SAM)

    assert not any(path.startswith('social_posts/p0') for path in fake_db.docs)
    storage_service.delete_by_url.assert_called_once_with('https://storage.googleapis.com/bucket/social/u2/a.jpg')

def test_delete_post_is_restricted_to_author_or_admin(social):
    _seed_posts(social, 2, author_id='u2')

    with pytest.raises(PermissionError):
        social.delete_post('p0', MEL)
    social.delete_post('p1', ADMIN)

    assert social.get_post('p0') is not None
    assert social.get_post('p1') is None

def test_delete_missing_post(social):
    with pytest.raises(ValueError):
        social.delete_post('nope', ADMIN)

def test_image_cleanup_failure_does_not_undo_delete(social, storage_service):
    _seed_posts(social, 1)
    social.posts_ref.document('p0').update({'image_url': 'https://storage.googleapis.com/bucket/social/u1/a.jpg'})
    storage_service.delete_by_url.side_effect = RuntimeError("storage down")

    social.delete_post('p0', MEL)
    assert social.get_post('p0') is None

# --- feed controller over the real service ---

def test_feed_controller_round_trip_through_the_service(social, tmp_path):
    _seed_posts(social, 12, author_id='u2')
    feed = FeedController.for_viewer(social, MEL, str(tmp_path), page_size=5, run_in_background=lambda fn: fn())

    assert feed.hydrate() is HydrationState.READY
    while feed.has_more:
        feed.load_more()
    assert [p['post_id'] for p in feed.posts] == [f'p{i}' for i in range(12)]

    feed.toggle_like('p3')
    assert social.has_user_liked('p3', 'u1')

    feed.add_comment('p3', 'Lovely!')
    assert [c['text'] for c in feed.posts[3]['comments']] == ['Lovely!']
    assert social.get_post('p3')['comment_count'] == 1

    again = FeedController.for_viewer(social, MEL, str(tmp_path), run_in_background=lambda fn: None)
    assert again.hydrate() is HydrationState.NETWORK_SYNCING
    assert again.is_liked('p3')
