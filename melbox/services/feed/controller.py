# melbox/services/feed/controller.py
import copy
import logging
import threading
import uuid
from datetime import datetime
from enum import Enum
from typing import Optional, Dict, Any, List, Callable

from melbox.services.feed.cache import FeedCache, FeedSnapshot, GUEST_IDENTITY
from melbox.services.feed.optimistic import OptimisticCommand, GENERIC_FAILURE_MESSAGE
from melbox.services.feed.store import SocialFeedStore
from melbox.utils.datetime_utils import DateTimeUtils

logger = logging.getLogger(__name__)

TEMP_ID_PREFIX = 'temp-'


class HydrationState(Enum):
    UNINITIALIZED = "uninitialized"
    CACHE_HYDRATED = "cache-hydrated"
    NETWORK_SYNCING = "network-syncing"
    READY = "ready"


class FeedMutationError(Exception):
    """A mutation failed remotely and its optimistic change was rolled back."""

    def __init__(self, action: str, message: str = GENERIC_FAILURE_MESSAGE):
        self.action = action
        super().__init__(message)


def run_in_daemon_thread(fn: Callable[[], None]) -> threading.Thread:
    thread = threading.Thread(target=fn, daemon=True)
    thread.start()
    return thread


class FeedController:
    """
    Client-side view of the social feed.

    Shows cached posts immediately, refreshes them from the store, pages with
    load_more() and applies every mutation optimistically: local state and the
    cache change first, the store is called afterwards, and a failed call puts
    back only the fields that mutation touched.

    The store is any object with the SocialFeedStore methods and a `viewer` attribute.

    Every refresh and identity switch starts a new generation. Store calls
    remember the generation they started in, and their results, rollbacks and
    cache writes are dropped once it is no longer current.
    """

    def __init__(self, store, cache: FeedCache, page_size: int = 10, comment_fetch_size: int = 50,
                 run_in_background: Callable[[Callable[[], None]], Any] = run_in_daemon_thread):
        self.store = store
        self.cache = cache
        self.page_size = page_size
        self.comment_fetch_size = comment_fetch_size
        self._run_in_background = run_in_background

        self._lock = threading.RLock()
        self._listeners: List[Callable[[List[Dict[str, Any]]], None]] = []
        self._generation = 0
        self._reset_state()

    @classmethod
    def for_viewer(cls, social_service, viewer: Optional[Dict[str, Any]], cache_dir: str, **kwargs) -> "FeedController":
        """Controller over a SocialService for one viewer (None for guests), cached per user id."""
        store = SocialFeedStore(social_service, viewer)
        cache = FeedCache(cache_dir, viewer['user_id'] if viewer else None)
        return cls(store, cache, **kwargs)

    @classmethod
    def for_app(cls, app, viewer: Optional[Dict[str, Any]], **kwargs) -> "FeedController":
        """for_viewer with the app's SocialService and its FEED_* settings."""
        kwargs.setdefault('page_size', app.config['FEED_PAGE_SIZE'])
        kwargs.setdefault('comment_fetch_size', app.config['COMMENT_FETCH_SIZE'])
        return cls.for_viewer(app.services['social'], viewer, app.config['FEED_CACHE_DIR'], **kwargs)

    def _reset_state(self):
        self._posts: List[Dict[str, Any]] = []
        self._cursor: Optional[datetime] = None
        self._liked: Dict[str, bool] = {}
        self._state = HydrationState.UNINITIALIZED
        self._loading_more = False

    # --- read-only views ---

    @property
    def state(self) -> HydrationState:
        return self._state

    @property
    def posts(self) -> List[Dict[str, Any]]:
        with self._lock:
            return copy.deepcopy(self._posts)

    @property
    def next_cursor(self) -> Optional[datetime]:
        return self._cursor

    @property
    def has_more(self) -> bool:
        return self._cursor is not None

    def is_liked(self, post_id: str) -> bool:
        with self._lock:
            return self._liked.get(post_id, False)

    def subscribe(self, callback: Callable[[List[Dict[str, Any]]], None]) -> Callable[[], None]:
        """Register a listener for list changes. Returns a function that unsubscribes it."""
        self._listeners.append(callback)

        def unsubscribe():
            if callback in self._listeners:
                self._listeners.remove(callback)

        return unsubscribe

    # --- loading ---

    def hydrate(self) -> HydrationState:
        """
        Show the cached feed right away and refresh it in the background,
        or fetch the first page synchronously when there is no cache.
        """
        with self._lock:
            if self._state is not HydrationState.UNINITIALIZED:
                return self._state
            generation = self._generation
            snapshot = self.cache.read()
            from_cache = snapshot is not None and not snapshot.is_empty
            if from_cache:
                self._posts = copy.deepcopy(snapshot.posts)
                self._cursor = snapshot.next_cursor
                self._liked = dict(snapshot.liked)
                self._state = HydrationState.CACHE_HYDRATED
                visible = copy.deepcopy(self._posts)

        if not from_cache:
            self._fetch_first_page()
            return self._state

        self._notify(visible)
        with self._lock:
            if generation != self._generation:
                return self._state
            self._state = HydrationState.NETWORK_SYNCING
        self._run_in_background(lambda: self._background_refresh(generation))
        return self._state

    def _background_refresh(self, generation: int):
        with self._lock:
            if generation != self._generation:
                return
            store = self.store
        try:
            posts, next_cursor = store.load_page(self.page_size)
        except Exception as e:
            # keep showing the cached posts
            logger.warning(f"Background feed refresh failed, keeping cached posts: {e}", exc_info=True)
            self._finish_loading(generation)
            return
        self._replace_with_first_page(generation, posts, next_cursor)

    def _fetch_first_page(self):
        with self._lock:
            generation, store = self._generation, self.store
        try:
            posts, next_cursor = store.load_page(self.page_size)
        except Exception as e:
            logger.error(f"Failed to load the feed: {e}", exc_info=True)
            self._finish_loading(generation)
            return
        self._replace_with_first_page(generation, posts, next_cursor)

    def _finish_loading(self, generation: int):
        with self._lock:
            if generation == self._generation:
                self._state = HydrationState.READY

    def _replace_with_first_page(self, generation: int, posts: List[Dict[str, Any]],
                                 next_cursor: Optional[datetime]):
        with self._lock:
            if generation != self._generation:
                logger.info("Dropping a feed page fetched before the last refresh or viewer change")
                return
            self._posts = [self._ingest(p) for p in posts]
            self._cursor = next_cursor
            self._liked = {p['post_id']: p['liked'] for p in self._posts}
            self._state = HydrationState.READY
        self._commit(generation)

    def refresh(self) -> List[Dict[str, Any]]:
        """Drop the in-memory cache and fetch the first page again."""
        with self._lock:
            self._generation += 1
            self.cache.clear()
        self._fetch_first_page()
        return self.posts

    def load_more(self) -> List[Dict[str, Any]]:
        """
        Append the next page to the list, in server order.
        Returns the newly added posts, or [] when there is nothing more or the fetch failed.
        """
        with self._lock:
            cursor = self._cursor
            if cursor is None or self._loading_more:
                return []
            self._loading_more = True
            generation, store = self._generation, self.store

        try:
            posts, next_cursor = store.load_page(self.page_size, cursor)
        except Exception as e:
            logger.error(f"Failed to load more posts (cursor: {cursor}): {e}", exc_info=True)
            return []
        finally:
            with self._lock:
                if generation == self._generation:
                    self._loading_more = False

        with self._lock:
            if generation != self._generation or self._cursor != cursor:
                return []
            new_posts = [self._ingest(p) for p in posts]
            self._posts.extend(new_posts)
            self._cursor = next_cursor
            for post in new_posts:
                self._liked[post['post_id']] = post['liked']
            added = copy.deepcopy(new_posts)
        self._commit(generation)
        return added

    def load_comments(self, post_id: str) -> List[Dict[str, Any]]:
        """Fetch the latest comments of a post and attach them to it."""
        with self._lock:
            generation, store = self._generation, self.store
        try:
            comments = store.get_comments(post_id, self.comment_fetch_size)
        except Exception as e:
            logger.error(f"Failed to load comments (post_id: {post_id}): {e}", exc_info=True)
            return []

        with self._lock:
            if generation != self._generation:
                return []
            post = self._find(post_id)
            if post is not None:
                post['comments'] = list(comments)
        self._commit(generation)
        return copy.deepcopy(list(comments))

    def switch_identity(self, identity: Optional[str], store) -> None:
        """
        Forget everything about the previous viewer and bind a new cache and store.

        Signing out (identity None) also deletes the previous user's cache file,
        so the next person on the device never sees it.
        """
        with self._lock:
            self._generation += 1
            previous = self.cache
            if identity is None and previous.identity != GUEST_IDENTITY:
                previous.purge()
            else:
                previous.clear()
            self.cache = FeedCache(previous.cache_dir, identity)
            self.store = store
            self._reset_state()
        self._notify([])

    # --- mutations ---

    def toggle_like(self, post_id: str) -> Dict[str, Any]:
        def capture():
            post = self._require_post(post_id)
            return {'liked': self._liked.get(post_id, post.get('liked', False)),
                    'like_count': post.get('like_count', 0)}

        def apply(before):
            post = self._require_post(post_id)
            liked = not before['liked']
            self._liked[post_id] = liked
            post['liked'] = liked
            post['like_count'] = max(before['like_count'] + (1 if liked else -1), 0)

        def revert(before):
            self._liked[post_id] = before['liked']
            post = self._find(post_id)
            if post is not None:
                post['liked'] = before['liked']
                post['like_count'] = before['like_count']

        return self._execute(OptimisticCommand(
            name='toggle_like',
            capture=capture,
            apply=apply,
            remote=lambda store: store.toggle_like(post_id),
            revert=revert,
        ))

    def add_comment(self, post_id: str, text: str) -> Dict[str, Any]:
        text = (text or '').strip()
        if not text:
            raise ValueError("Comment text is required.")
        viewer = self._require_viewer()
        temp_id = f"{TEMP_ID_PREFIX}{uuid.uuid4().hex}"

        def capture():
            post = self._require_post(post_id)
            return {'comment_count': post.get('comment_count', 0)}

        def apply(before):
            post = self._require_post(post_id)
            post.setdefault('comments', []).insert(0, {
                'comment_id': temp_id,
                'post_id': post_id,
                'author_id': viewer.get('user_id'),
                'author_email': viewer.get('email'),
                'author_name': viewer.get('name'),
                'text': text,
                'created_at': DateTimeUtils.now(),
                'pending': True,
            })
            post['comment_count'] = before['comment_count'] + 1

        def revert(before):
            post = self._find(post_id)
            if post is None:
                return
            post['comments'] = [c for c in post.get('comments', []) if c['comment_id'] != temp_id]
            post['comment_count'] = before['comment_count']

        def reconcile(before, comments):
            post = self._find(post_id)
            if post is not None:
                post['comments'] = list(comments)

        return self._execute(OptimisticCommand(
            name='add_comment',
            capture=capture,
            apply=apply,
            remote=lambda store: store.add_comment(post_id, text),
            revert=revert,
            refetch=lambda store, created: store.get_comments(post_id, self.comment_fetch_size),
            reconcile=reconcile,
        ))

    def delete_comment(self, post_id: str, comment_id: str) -> None:
        def capture():
            post = self._require_post(post_id)
            comments = post.get('comments', [])
            index = next((i for i, c in enumerate(comments) if c['comment_id'] == comment_id), None)
            return {
                'index': index,
                'comment': copy.deepcopy(comments[index]) if index is not None else None,
                'comment_count': post.get('comment_count', 0),
            }

        def apply(before):
            post = self._require_post(post_id)
            if before['comment'] is not None:
                post['comments'] = [c for c in post['comments'] if c['comment_id'] != comment_id]
            post['comment_count'] = max(before['comment_count'] - 1, 0)

        def revert(before):
            post = self._find(post_id)
            if post is None:
                return
            if before['comment'] is not None:
                comments = post.setdefault('comments', [])
                if not any(c['comment_id'] == comment_id for c in comments):
                    comments.insert(min(before['index'], len(comments)), before['comment'])
            post['comment_count'] = before['comment_count']

        self._execute(OptimisticCommand(
            name='delete_comment',
            capture=capture,
            apply=apply,
            remote=lambda store: store.delete_comment(post_id, comment_id),
            revert=revert,
        ))

    def delete_post(self, post_id: str) -> None:
        def capture():
            post = self._require_post(post_id)
            return {
                'index': self._posts.index(post),
                'post': copy.deepcopy(post),
                'liked': self._liked.get(post_id),
            }

        def apply(before):
            self._posts = [p for p in self._posts if p['post_id'] != post_id]
            self._liked.pop(post_id, None)

        def revert(before):
            if self._find(post_id) is None:
                self._posts.insert(min(before['index'], len(self._posts)), before['post'])
            if before['liked'] is not None:
                self._liked[post_id] = before['liked']

        self._execute(OptimisticCommand(
            name='delete_post',
            capture=capture,
            apply=apply,
            remote=lambda store: store.delete_post(post_id),
            revert=revert,
        ))

    def create_post(self, content: Optional[str], image_url: Optional[str] = None) -> Dict[str, Any]:
        content = content.strip() if content else None
        if not content and not image_url:
            raise ValueError("A post needs text or an image.")
        viewer = self._require_viewer()
        temp_id = f"{TEMP_ID_PREFIX}{uuid.uuid4().hex}"

        def apply(before):
            self._posts.insert(0, {
                'post_id': temp_id,
                'author_id': viewer.get('user_id'),
                'author_email': viewer.get('email'),
                'author_name': viewer.get('name'),
                'content': content,
                'image_url': image_url,
                'like_count': 0,
                'comment_count': 0,
                'created_at': DateTimeUtils.now(),
                'liked': False,
                'pending': True,
            })
            self._liked[temp_id] = False

        def revert(before):
            self._posts = [p for p in self._posts if p['post_id'] != temp_id]
            self._liked.pop(temp_id, None)

        def reconcile(before, created):
            stored = self._ingest(created)
            self._liked.pop(temp_id, None)
            self._liked[stored['post_id']] = stored['liked']
            for i, post in enumerate(self._posts):
                if post['post_id'] == temp_id:
                    self._posts[i] = stored
                    break
            else:
                self._posts.insert(0, stored)

        return self._execute(OptimisticCommand(
            name='create_post',
            apply=apply,
            remote=lambda store: store.create_post(content, image_url),
            revert=revert,
            reconcile=reconcile,
        ))

    # --- internals ---

    def _execute(self, command: OptimisticCommand) -> Any:
        with self._lock:
            generation, store = self._generation, self.store
            before = command.capture()
            command.apply(before)
        self._commit(generation)

        try:
            result = command.remote(store)
        except Exception as e:
            logger.error(f"Feed mutation '{command.name}' failed, rolling back: {e}", exc_info=True)
            with self._lock:
                if generation == self._generation:
                    command.revert(before)
            self._commit(generation)
            raise FeedMutationError(command.name, command.failure_message) from e

        if command.reconcile is not None:
            try:
                outcome = command.refetch(store, result) if command.refetch is not None else result
                with self._lock:
                    if generation == self._generation:
                        command.reconcile(before, outcome)
            except Exception as e:
                # the mutation itself succeeded; the next fetch will catch up
                logger.warning(f"Could not reconcile '{command.name}': {e}", exc_info=True)
            self._commit(generation)
        return result

    def _commit(self, generation: int):
        """Persist the current state and tell listeners about it, unless `generation` is stale."""
        with self._lock:
            if generation != self._generation:
                return
            snapshot = FeedSnapshot(
                posts=copy.deepcopy(self._posts),
                next_cursor=self._cursor,
                liked=dict(self._liked),
            )
            self.cache.write(snapshot)
            visible = copy.deepcopy(self._posts)
        self._notify(visible)

    def _notify(self, visible: List[Dict[str, Any]]):
        for listener in list(self._listeners):
            try:
                listener(visible)
            except Exception as e:
                logger.warning(f"Feed listener raised: {e}", exc_info=True)

    def _find(self, post_id: str) -> Optional[Dict[str, Any]]:
        for post in self._posts:
            if post['post_id'] == post_id:
                return post
        return None

    def _require_post(self, post_id: str) -> Dict[str, Any]:
        post = self._find(post_id)
        if post is None:
            raise ValueError(f"Post {post_id} is not in the feed.")
        return post

    def _require_viewer(self) -> Dict[str, Any]:
        viewer = getattr(self.store, 'viewer', None)
        if not viewer:
            raise PermissionError("Sign in to do that.")
        return viewer

    @staticmethod
    def _ingest(post: Dict[str, Any]) -> Dict[str, Any]:
        """Store record -> feed entry: 'is_liked' from the service becomes the local 'liked' flag."""
        entry = dict(post)
        entry['liked'] = bool(entry.pop('is_liked', entry.get('liked', False)))
        entry.pop('pending', None)
        return entry
